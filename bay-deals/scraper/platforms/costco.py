"""
Costco warehouse-savings scraper.

Each product tile carries its own validity range ("Valid 1/29/26 -
2/23/26") and two dollar amounts (regular price and instant savings, or
was/now).  Tiles without both a price pair and a date range are dropped.
"""

from __future__ import annotations

import logging

from config.stores import MAX_TITLE_LEN, get_store
from models import RawDealCandidate
from parser import (
    Resolved, accept_prices, amount_plus_off, parse_date_range, truncate,
    two_amount_prices,
)
from platforms.base import Fetcher

logger = logging.getLogger(__name__)

# Selectors Costco has used historically, newest first.
PRODUCT_SELECTORS = [
    ".product-tile-set .product-tile",
    ".product-list .product",
    '[data-testid="product-tile"]',
    ".warehouse-savings-item",
    ".col-xs-6.col-md-4",
    ".product-img-holder",
    'div[class*="product"]',
]

DESCRIPTION = "Costco warehouse savings"
DETAILS = "Costco warehouse savings. Member only."


def parse_costco_prices(text: str) -> Resolved | None:
    """Price pair from a tile's text.

    >>> parse_costco_prices("Was $1,299.99 Now $999.99")
    Resolved(original=1299.99, sale=999.99)
    >>> parse_costco_prices("Only $5.99") is None
    True
    """
    prices = two_amount_prices(text) or amount_plus_off(text)
    if prices is None or not accept_prices(prices.original, prices.sale):
        return None
    return prices


def parse_costco_dates(text: str) -> tuple[str, str] | None:
    dates = parse_date_range(text)
    if dates is None or dates[0] >= dates[1]:
        return None
    return dates


def tile_title(text: str) -> str | None:
    """First two non-empty lines; ``None`` when shorter than 5 chars."""
    lines = [line.strip() for line in (text or "").split("\n") if line.strip()]
    title = " ".join(lines[:2]).strip()
    if len(title) < 5:
        return None
    return truncate(title, MAX_TITLE_LEN)


def costco_candidate(text: str) -> RawDealCandidate | None:
    title = tile_title(text)
    prices = parse_costco_prices(text)
    dates = parse_costco_dates(text)
    if not title or prices is None or dates is None:
        return None
    return RawDealCandidate(
        title=title,
        description=DESCRIPTION,
        original_price=prices.original,
        sale_price=prices.sale,
        start_date=dates[0],
        expiry_date=dates[1],
        unit="",
        details=DETAILS,
    )


class CostcoScraper:
    def __init__(self, fetcher: Fetcher, store: dict | None = None):
        store = store or get_store("costco")
        self.fetcher = fetcher
        self.store_id: str = store["id"]
        self.name: str = store["name"]
        self.url: str = store["url"]
        self.wait_until: str = store["wait_until"]
        self.locations: list[str] = list(store["locations"])

    async def scrape(self) -> list[RawDealCandidate]:
        async with self.fetcher.open(self.url, wait_until=self.wait_until, settle_sec=3.0) as session:
            await session.scroll(2, pause_sec=2.0)
            selector, tiles = await session.query(PRODUCT_SELECTORS)

        if selector is None:
            logger.info("[%s] No product tiles found with known selectors", self.store_id)
            return []
        logger.info("[%s] Found %d raw tiles via %s", self.store_id, len(tiles), selector)

        deals = []
        for tile in tiles:
            candidate = costco_candidate(tile.text)
            if candidate is not None:
                deals.append(candidate)
        return deals
