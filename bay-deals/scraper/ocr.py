"""
Flyer OCR: turn one weekly-ad image into a list of ``OcrDeal``.

Used by the image-only stores (99 Ranch always, H Mart when its weekly ad
has no structured tiles).  Results are cached per image URL (SHA-256 of
the URL, not of the bytes); empty results are never cached so a flaky run
is retried next time.  Every failure path returns ``[]``.
"""

from __future__ import annotations

import base64
import hashlib
import logging
from typing import Any, Protocol

import httpx

from cache_store import JsonFileStore, KeyValueStore
from config.stores import (
    CACHE_DIR, IMAGE_FETCH_TIMEOUT_SEC, MAX_TITLE_LEN, get_user_agent, is_ci,
)
from llm_cli import ClaudeCliBackend
from models import OcrDeal, RawDealCandidate
from parser import accept_prices, truncate

logger = logging.getLogger(__name__)


class OcrBackend(Protocol):
    def is_available(self) -> bool: ...

    async def extract(self, image_b64: str) -> list[Any]: ...


def image_hash(url: str) -> str:
    return hashlib.sha256(url.encode("utf-8")).hexdigest()


def coerce_ocr_deals(items: list[Any]) -> list[OcrDeal]:
    """Convert raw backend items; malformed ones are dropped."""
    deals: list[OcrDeal] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        try:
            deals.append(OcrDeal.from_dict(item))
        except (KeyError, TypeError, ValueError) as exc:
            logger.debug("OCR: dropping malformed item %r: %s", item, exc)
    return deals


def ocr_candidate(
    deal: OcrDeal,
    start_date: str,
    expiry_date: str,
    *,
    description: str,
    details: str,
) -> RawDealCandidate | None:
    """Flyer item → candidate; ``None`` when the prices are not a discount."""
    if not accept_prices(deal.original_price, deal.sale_price):
        return None
    return RawDealCandidate(
        title=truncate(deal.title, MAX_TITLE_LEN),
        description=description,
        original_price=deal.original_price,
        sale_price=deal.sale_price,
        start_date=start_date,
        expiry_date=expiry_date,
        unit=deal.unit or None,
        category_hints=list(deal.category_hints),
        details=details,
    )


class FlyerOcr:
    def __init__(
        self,
        backend: OcrBackend | None = None,
        cache: KeyValueStore | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        ci: bool | None = None,
    ):
        self.backend = backend or ClaudeCliBackend()
        self.cache = cache if cache is not None else JsonFileStore(CACHE_DIR / "ocr.json")
        self.client = client
        self.ci = is_ci() if ci is None else ci

    async def extract(self, image_url: str) -> list[OcrDeal]:
        short_url = image_url[:60]

        if self.ci:
            logger.info("OCR: skipping in CI environment")
            return []

        key = image_hash(image_url)
        cached = self.cache.get(key)
        if isinstance(cached, list) and cached:
            logger.info("OCR: cache hit for %s...", short_url)
            return coerce_ocr_deals(cached)

        if not self.backend.is_available():
            logger.info("OCR: backend not found, skipping")
            return []

        image_b64 = await self._download(image_url)
        if image_b64 is None:
            return []

        try:
            items = await self.backend.extract(image_b64)
        except Exception as exc:
            logger.warning("OCR: backend error: %s", exc)
            return []

        deals = coerce_ocr_deals(items)
        if deals:
            self.cache.update({key: [d.to_dict() for d in deals]})
            logger.info("OCR: extracted %d deals from %s", len(deals), short_url)
        else:
            logger.info("OCR: no deals extracted from %s", short_url)
        return deals

    async def _download(self, image_url: str) -> str | None:
        headers = {
            "Accept": "image/avif,image/webp,image/apng,image/*,*/*;q=0.8",
            "User-Agent": get_user_agent(),
        }
        try:
            if self.client is not None:
                resp = await self.client.get(
                    image_url, headers=headers, timeout=httpx.Timeout(IMAGE_FETCH_TIMEOUT_SEC),
                )
            else:
                async with httpx.AsyncClient(follow_redirects=True) as client:
                    resp = await client.get(
                        image_url, headers=headers, timeout=httpx.Timeout(IMAGE_FETCH_TIMEOUT_SEC),
                    )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.info("OCR: image download error: %s", exc)
            return None

        if not resp.is_success:
            logger.info("OCR: image fetch failed (%d) for %s", resp.status_code, image_url[:60])
            return None
        return base64.b64encode(resp.content).decode("ascii")
