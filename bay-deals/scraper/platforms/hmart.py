"""
H Mart (Northern California) weekly-ad scraper.

The weekly-ad page is a VTEX storefront that sometimes renders product
tiles and sometimes only a stack of flyer images.  ``detect_content_type``
decides which: structured pages are parsed tile by tile, image-based pages
are sent through flyer OCR.  The ad runs Friday → Thursday.

Tiles only expose the sale price, so the regular price is estimated with
``ESTIMATED_MARKUP``.  A bare "XX% off" tile has no price to anchor on and
is dropped.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date
from urllib.parse import urljoin

from config.stores import MAX_TITLE_LEN, get_store
from models import RawDealCandidate
from ocr import FlyerOcr, ocr_candidate
from parser import (
    FRIDAY, NeedsReferencePrice, PriceParse, SaleOnly, accept_prices,
    estimate_original, multi_buy, parse_amount, truncate, unit_from_text,
    week_window,
)
from platforms.base import Fetcher

logger = logging.getLogger(__name__)

PRODUCT_SELECTORS = [
    ".vtex-product-summary",
    '[class*="product-summary"]',
    '[class*="productSummary"]',
    ".product-item",
    ".product-card",
    '[data-testid="product"]',
    '[class*="product"]',
    "article",
]
PRODUCT_MIN_COUNT = 3

TITLE_SELECTORS = ["h2", "h3", "h4", '[class*="name"]', '[class*="title"]']
PRICE_SELECTORS = ['[class*="price"]', '[class*="Price"]', "span", ".price"]

FALLBACK_SELECTORS = ["article", "section", "li", "div"]

UNITS = ("lb", "oz", "ea", "pk", "ct", "kg")

DETAILS = "H Mart weekly ad special."

_STRUCTURED_INDICATORS = [
    re.compile(r'class="[^"]*product[-_]?(grid|item|summary|card|list)[^"]*"', re.IGNORECASE),
    re.compile(r'class="[^"]*vtex[-_]?product', re.IGNORECASE),
    re.compile(r'class="[^"]*price[^"]*"[^>]*>\s*\$[\d,.]+', re.IGNORECASE),
    re.compile(r'data-testid="product', re.IGNORECASE),
]

_RE_PER_UNIT = re.compile(r"\$?([\d,.]+)\s*/\s*(?:lb|oz|ea|pk|ct|kg)\b", re.IGNORECASE)
_RE_EACH = re.compile(r"\$?([\d,.]+)\s*ea\b", re.IGNORECASE)
_RE_PERCENT = re.compile(r"(\d+)%\s*off", re.IGNORECASE)
_RE_PLAIN = re.compile(r"\$?([\d,.]+)")
_RE_PRICE_HINT = re.compile(r"\$|for|%", re.IGNORECASE)
_RE_PRICE_IN_TEXT = re.compile(r"\$[\d,.]+(?:\s*/\s*\w+)?|\d+\s+for\s+\$[\d,.]+", re.IGNORECASE)
_RE_FLYER_IMAGE = re.compile(r"weekly|flyer|ad|circular", re.IGNORECASE)
_FLYER_MIN_WIDTH = 400


@dataclass
class HMartItem:
    title: str
    price_text: str
    image_url: str = ""


def detect_content_type(html: str) -> str:
    """``"structured"`` when the HTML shows product tiles, else ``"image-based"``."""
    if not html:
        return "image-based"
    for pattern in _STRUCTURED_INDICATORS:
        if pattern.search(html):
            return "structured"
    return "image-based"


def parse_hmart_price(text: str) -> PriceParse | None:
    """
    >>> parse_hmart_price("$2.99/lb")
    SaleOnly(sale=2.99, basis='per_unit')
    >>> parse_hmart_price("20% off")
    NeedsReferencePrice(kind='percent_off', percent=20.0, buy_qty=1, get_qty=1)
    """
    if not text:
        return None

    multi = multi_buy(text)
    if multi is not None:
        return multi

    for pattern, basis in ((_RE_PER_UNIT, "per_unit"), (_RE_EACH, "each")):
        m = pattern.search(text)
        sale = parse_amount(m.group(1)) if m else None
        if sale and sale > 0:
            return SaleOnly(sale=sale, basis=basis)

    m = _RE_PERCENT.search(text)
    if m and 0 < int(m.group(1)) <= 100:
        return NeedsReferencePrice(kind="percent_off", percent=float(m.group(1)))

    m = _RE_PLAIN.search(text)
    sale = parse_amount(m.group(1)) if m else None
    if sale and sale > 0:
        return SaleOnly(sale=sale, basis="plain")

    return None


def hmart_candidate(item: HMartItem, start_date: str, expiry_date: str) -> RawDealCandidate | None:
    parsed = parse_hmart_price(item.price_text)
    if not isinstance(parsed, SaleOnly):
        return None

    sale = parsed.sale
    original = estimate_original(sale)
    if not accept_prices(original, sale):
        return None

    return RawDealCandidate(
        title=truncate(item.title, MAX_TITLE_LEN),
        description=f"H Mart weekly special: ${sale:.2f}",
        original_price=original,
        sale_price=sale,
        start_date=start_date,
        expiry_date=expiry_date,
        unit=unit_from_text(item.price_text, UNITS, after_slash=True),
        details=DETAILS,
        image_url=item.image_url or None,
    )


def is_flyer_image(src: str, alt: str = "", width: str | int | None = None) -> bool:
    if not src:
        return False
    if _RE_FLYER_IMAGE.search(src) or _RE_FLYER_IMAGE.search(alt or ""):
        return True
    try:
        return int(float(width or 0)) > _FLYER_MIN_WIDTH
    except ValueError:
        return False


class HMartScraper:
    def __init__(
        self,
        fetcher: Fetcher,
        ocr: FlyerOcr | None = None,
        store: dict | None = None,
        *,
        today: date | None = None,
    ):
        store = store or get_store("hmart")
        self.fetcher = fetcher
        self.ocr = ocr or FlyerOcr()
        self.store_id: str = store["id"]
        self.name: str = store["name"]
        self.url: str = store["url"]
        self.wait_until: str = store["wait_until"]
        self.locations: list[str] = list(store["locations"])
        self.today = today

    async def scrape(self) -> list[RawDealCandidate]:
        start, expiry = week_window(self.today or date.today(), FRIDAY)
        image_urls: list[str] = []
        items: list[HMartItem] = []

        async with self.fetcher.open(self.url, wait_until=self.wait_until, settle_sec=5.0) as session:
            await session.scroll(3, step_px=600)
            content_type = detect_content_type(await session.content())
            logger.info("[%s] Content type: %s", self.store_id, content_type)

            if content_type == "image-based":
                image_urls = await self._flyer_images(session)
            else:
                items = await self._structured_items(session)

        if content_type == "image-based":
            logger.info("[%s] Found %d flyer image(s), running OCR", self.store_id, len(image_urls))
            return await self._ocr_flyers(image_urls, start, expiry)

        logger.info("[%s] Extracted %d structured deals", self.store_id, len(items))
        deals = []
        for item in items:
            candidate = hmart_candidate(item, start, expiry)
            if candidate is not None:
                deals.append(candidate)
        return deals

    async def _flyer_images(self, session) -> list[str]:
        _, images = await session.query(
            ["img"], attributes=["src", "data-src", "alt", "width", "naturalWidth"],
        )
        urls: list[str] = []
        for img in images:
            attrs = img.attributes
            src = attrs.get("src") or attrs.get("data-src") or ""
            width = attrs.get("naturalWidth") or attrs.get("width")
            if not is_flyer_image(src, attrs.get("alt", ""), width):
                continue
            url = urljoin(self.url, src)
            if url not in urls:
                urls.append(url)
        return urls

    async def _ocr_flyers(self, image_urls: list[str], start: str, expiry: str) -> list[RawDealCandidate]:
        deals: list[RawDealCandidate] = []
        for url in image_urls:
            for ocr_deal in await self.ocr.extract(url):
                candidate = ocr_candidate(
                    ocr_deal, start, expiry,
                    description=f"H Mart weekly special: ${ocr_deal.sale_price:.2f}",
                    details=DETAILS,
                )
                if candidate is not None:
                    deals.append(candidate)
        logger.info("[%s] Extracted %d deals via OCR", self.store_id, len(deals))
        return deals

    async def _structured_items(self, session) -> list[HMartItem]:
        selector, tiles = await session.query(
            PRODUCT_SELECTORS,
            min_count=PRODUCT_MIN_COUNT,
            fields={"title": TITLE_SELECTORS, "price": PRICE_SELECTORS, "image": ["img@src"]},
        )
        if selector is None:
            logger.info("[%s] No structured product elements found, scanning page blocks", self.store_id)
            return await self._fallback_items(session)

        items: list[HMartItem] = []
        seen: set[str] = set()
        for tile in tiles:
            if len(tile.text) < 5:
                continue
            title = tile.fields.get("title", "")
            if len(title) < 3 or title in seen:
                continue
            price_text = tile.fields.get("price", "")
            if not _RE_PRICE_HINT.search(price_text):
                m = _RE_PRICE_IN_TEXT.search(tile.text)
                price_text = m.group(0) if m else ""
            if not price_text:
                continue
            seen.add(title)
            items.append(HMartItem(title=title, price_text=price_text, image_url=tile.fields.get("image", "")))
        return items

    async def _fallback_items(self, session) -> list[HMartItem]:
        items: list[HMartItem] = []
        seen: set[str] = set()
        for selector in FALLBACK_SELECTORS:
            _, blocks = await session.query(
                [selector], fields={"title": TITLE_SELECTORS, "image": ["img@src"]},
            )
            for block in blocks:
                if not 10 <= len(block.text) <= 500:
                    continue
                title = block.fields.get("title", "")
                if not 3 <= len(title) <= MAX_TITLE_LEN or title in seen:
                    continue
                m = _RE_PRICE_IN_TEXT.search(block.text)
                if not m:
                    continue
                seen.add(title)
                items.append(HMartItem(title=title, price_text=m.group(0), image_url=block.fields.get("image", "")))
        return items
