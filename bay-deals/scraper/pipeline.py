"""
Per-store pipeline: scrape → validate → translate → shape into ``Deal``.

The scrape step is the only one that talks to the outside world, so it
alone is retried.  Known bot-block / network signatures end the store's
run with an empty result; anything else propagates to the driver.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from playwright.async_api import TimeoutError as PlaywrightTimeout

from categorize import assign_category
from config.stores import HOT_SAVINGS_THRESHOLD, SCRAPE_MAX_RETRIES
from models import Deal, TranslatedDealCandidate
from platforms.base import StoreScraper
from retry import with_retry
from translator import Translator
from validator import validate

logger = logging.getLogger(__name__)

KNOWN_BLOCK_PATTERNS = [
    "ERR_HTTP2_PROTOCOL_ERROR",
    "net::ERR_",
    "Timeout",
    "Navigation failed",
    "ECONNRESET",
    "Connection reset",
]


def is_block_error(exc: BaseException) -> bool:
    if isinstance(exc, (PlaywrightTimeout, TimeoutError, asyncio.TimeoutError, ConnectionError)):
        return True
    message = str(exc)
    return any(pattern in message for pattern in KNOWN_BLOCK_PATTERNS)


def to_deal(
    candidate: TranslatedDealCandidate,
    index: int,
    *,
    store_id: str,
    locations: list[str],
) -> Deal:
    """Shape the *index*-th (0-based) translated candidate into a ``Deal``."""
    return Deal(
        id=f"{store_id}-{index + 1:03d}",
        store_id=store_id,
        category_id=assign_category(candidate.title, candidate.category_hints),
        title=candidate.title,
        title_zh=candidate.title_zh,
        description=candidate.description,
        description_zh=candidate.description_zh,
        original_price=candidate.original_price,
        sale_price=candidate.sale_price,
        start_date=candidate.start_date,
        expiry_date=candidate.expiry_date,
        is_hot=candidate.original_price - candidate.sale_price >= HOT_SAVINGS_THRESHOLD,
        locations=list(locations),
        unit=candidate.unit,
        unit_zh=candidate.unit_zh,
        details=candidate.details,
        details_zh=candidate.details_zh,
        image_url=candidate.image_url,
    )


class ScraperPipeline:
    def __init__(
        self,
        translator: Translator,
        *,
        max_retries: int = SCRAPE_MAX_RETRIES,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ):
        self.translator = translator
        self.max_retries = max_retries
        self.sleep = sleep

    async def run(self, scraper: StoreScraper) -> list[Deal]:
        store_id = scraper.store_id
        logger.info("[%s] Starting scrape...", store_id)

        try:
            raw = await with_retry(scraper.scrape, max_retries=self.max_retries, sleep=self.sleep)
        except Exception as exc:
            if is_block_error(exc):
                logger.warning("[%s] Blocked or connection error: %s", store_id, exc)
                return []
            raise
        logger.info("[%s] Scraped %d raw deals", store_id, len(raw))

        result = validate(raw)
        if result.errors:
            logger.info("[%s] %d deals failed validation", store_id, len(result.errors))

        if not result.valid:
            logger.info("[%s] No valid deals to process", store_id)
            return []

        translated = await self.translator.translate_batch(result.valid)
        deals = [
            to_deal(t, i, store_id=store_id, locations=scraper.locations)
            for i, t in enumerate(translated)
        ]
        logger.info("[%s] Produced %d final deals", store_id, len(deals))
        return deals
