"""
Safeway weekly-ad scraper.

Tiles are free text ("CLUB PRICE $4.49", "2 for $5", "Save $2.00",
"Buy 1 Get 1 Free" ...).  The validity window comes from a page header
("Valid 2/12 - 2/18"), falling back to the current Wednesday → Tuesday
week when no header is found.

Conventions specific to Safeway:
  * a sale-only price gets an estimated original (``ESTIMATED_MARKUP``);
  * "Save $X" tiles carry no price, so sale = X * SAFEWAY_SAVE_MULTIPLIER
    and original = sale + X;
  * BOGO tiles use the first other ``$`` amount on the tile as the
    regular price; without one the tile is dropped.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date

from config.stores import MAX_TITLE_LEN, SAFEWAY_SAVE_MULTIPLIER, get_store
from models import RawDealCandidate
from parser import (
    WEDNESDAY, NeedsReferencePrice, PriceParse, Resolved, SaleOnly, Savings,
    accept_prices, bogo, estimate_original, find_amounts, multi_buy,
    parse_amount, parse_date_range, parse_short_date_range, resolve_reference,
    round_cents, save_amount, truncate, was_now, week_window,
)
from platforms.base import Fetcher

logger = logging.getLogger(__name__)

TILE_SELECTORS = [
    ".weekly-ad-item",
    '[data-testid="product-card"]',
    ".grid-item-container",
    ".product-card",
    '[class*="deal"]',
    '[class*="offer"]',
    '[class*="product"]',
    "article",
]
TILE_MIN_COUNT = 3

# Generic blocks scanned when no tile selector matches.
FALLBACK_SELECTORS = ["article", "section", "li", "div"]
FALLBACK_TITLE_SELECTORS = ["h2", "h3", "h4", '[class*="title"]', '[class*="name"]']

DATE_HEADER_SELECTORS = [
    '[class*="date"]',
    '[class*="valid"]',
    ".weekly-ad-header",
    ".ad-dates",
    "h1", "h2", "h3",
]

DETAILS = "Safeway weekly ad special."

_RE_CLUB_PRICE = re.compile(r"club\s+price\s+\$?([\d,.]+)", re.IGNORECASE)
_RE_EACH_PRICE = re.compile(r"\$?([\d,.]+)\s*ea\b", re.IGNORECASE)
_RE_SHORT_DATE = re.compile(r"\d{1,2}/\d{1,2}")
_RE_TILE_HINT = re.compile(r"\d\s*for\s*\$|save|free|off", re.IGNORECASE)

# Title lines never start with price / promo words.
_RE_NOT_TITLE = re.compile(r"^(?:\$|\d+\s*for\s*\$|save|club|buy|was)", re.IGNORECASE)

# Price-text patterns, first match wins.
_PRICE_TEXT_PATTERNS = [
    re.compile(r"was\s+\$[\d,.]+\s*now\s+\$[\d,.]+", re.IGNORECASE),
    re.compile(r"\d+\s+for\s+\$[\d,.]+", re.IGNORECASE),
    re.compile(r"club\s+price\s+\$[\d,.]+", re.IGNORECASE),
    re.compile(r"\$[\d,.]+\s*ea\b", re.IGNORECASE),
    re.compile(r"save\s+\$[\d,.]+", re.IGNORECASE),
    re.compile(r"buy\s+\d+\s+get\s+\d+\s+free", re.IGNORECASE),
    re.compile(r"\$[\d,.]+"),
]


@dataclass
class SafewayItem:
    title: str
    price_text: str
    # Whole tile text; source of the regular price for BOGO tiles.
    reference_text: str = ""
    image_url: str = ""


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def parse_safeway_price(text: str) -> PriceParse | None:
    """Classify one price text.

    >>> parse_safeway_price("2 for $5")
    SaleOnly(sale=2.5, basis='multi_buy')
    >>> parse_safeway_price("Save $2.00")
    Savings(amount=2.0)
    """
    if not text:
        return None

    prices = was_now(text)
    if prices is not None:
        return prices

    multi = multi_buy(text)
    if multi is not None:
        return multi

    m = _RE_CLUB_PRICE.search(text)
    sale = parse_amount(m.group(1)) if m else None
    if sale and sale > 0:
        return SaleOnly(sale=sale, basis="club")

    m = _RE_EACH_PRICE.search(text)
    sale = parse_amount(m.group(1)) if m else None
    if sale and sale > 0:
        return SaleOnly(sale=sale, basis="each")

    savings = save_amount(text)
    if savings is not None:
        return Savings(amount=savings)

    return bogo(text)


def parse_safeway_dates(text: str, today: date | None = None) -> tuple[str, str] | None:
    """Validity window from header text.

    Year-less ranges take the year from *today*; a December → January
    window puts the start in the previous year.

    >>> parse_safeway_dates("Valid 12/31 - 1/6", date(2026, 1, 5))
    ('2025-12-31', '2026-01-06')
    """
    if not text:
        return None
    dates = parse_date_range(text)
    if dates is None:
        dates = parse_short_date_range(text, today or date.today(), roll="start_back")
    if dates is None or dates[0] >= dates[1]:
        return None
    return dates


def extract_title(text: str) -> str:
    lines = [line.strip() for line in (text or "").split("\n") if line.strip()]
    for line in lines:
        if 3 <= len(line) <= MAX_TITLE_LEN and not _RE_NOT_TITLE.match(line):
            return line
    return truncate(lines[0], MAX_TITLE_LEN) if lines else ""


def extract_price_text(text: str) -> str:
    for pattern in _PRICE_TEXT_PATTERNS:
        m = pattern.search(text or "")
        if m:
            return m.group(0)
    return ""


def _reference_price(item: SafewayItem) -> float | None:
    """First ``$`` amount on the tile outside the BOGO phrase itself."""
    amounts = find_amounts(item.reference_text.replace(item.price_text, " "))
    return amounts[0] if amounts else None


def safeway_candidate(
    item: SafewayItem, start_date: str, expiry_date: str,
) -> RawDealCandidate | None:
    parsed = parse_safeway_price(item.price_text)

    if isinstance(parsed, Resolved):
        original, sale = parsed.original, parsed.sale
        description = f"Was ${original:.2f}, now ${sale:.2f}"
    elif isinstance(parsed, NeedsReferencePrice):
        resolved = resolve_reference(parsed, _reference_price(item))
        if resolved is None:
            return None
        original, sale = resolved.original, resolved.sale
        deal = "free" if parsed.percent is None else f"{parsed.percent:g}% off"
        description = f"Buy {parsed.buy_qty} get {parsed.get_qty} {deal}"
    elif isinstance(parsed, Savings):
        sale = round_cents(parsed.amount * SAFEWAY_SAVE_MULTIPLIER)
        original = round_cents(sale + parsed.amount)
        description = f"Save ${parsed.amount:.2f}"
    elif isinstance(parsed, SaleOnly):
        sale = parsed.sale
        original = estimate_original(sale)
        description = f"Club price ${sale:.2f}"
    else:
        return None

    if not accept_prices(original, sale):
        return None

    return RawDealCandidate(
        title=truncate(item.title, MAX_TITLE_LEN),
        description=description,
        original_price=original,
        sale_price=sale,
        start_date=start_date,
        expiry_date=expiry_date,
        details=DETAILS,
        image_url=item.image_url or None,
    )


def _looks_like_tile(text: str) -> bool:
    return len(text) >= 5 and ("$" in text or bool(_RE_TILE_HINT.search(text)))


# ---------------------------------------------------------------------------
# Scraper
# ---------------------------------------------------------------------------

class SafewayScraper:
    def __init__(self, fetcher: Fetcher, store: dict | None = None, *, today: date | None = None):
        store = store or get_store("safeway")
        self.fetcher = fetcher
        self.store_id: str = store["id"]
        self.name: str = store["name"]
        self.url: str = store["url"]
        self.wait_until: str = store["wait_until"]
        self.locations: list[str] = list(store["locations"])
        self.today = today

    async def scrape(self) -> list[RawDealCandidate]:
        today = self.today or date.today()
        async with self.fetcher.open(self.url, wait_until=self.wait_until, settle_sec=5.0) as session:
            await session.scroll(5, step_px=800)
            header = await self._date_header(session)
            items = await self._extract_items(session)

        dates = parse_safeway_dates(header, today) if header else None
        start, expiry = dates or week_window(today, WEDNESDAY)
        logger.info("[%s] Extracted %d items from page (%s → %s)", self.store_id, len(items), start, expiry)

        deals = []
        for item in items:
            candidate = safeway_candidate(item, start, expiry)
            if candidate is not None:
                deals.append(candidate)
        return deals

    async def _date_header(self, session) -> str | None:
        for selector in DATE_HEADER_SELECTORS:
            try:
                _, elements = await session.query([selector], limit=5)
            except Exception:
                logger.debug("[%s] Date header selector %r failed", self.store_id, selector, exc_info=True)
                continue
            for el in elements:
                if _RE_SHORT_DATE.search(el.text):
                    return el.text
        return None

    async def _extract_items(self, session) -> list[SafewayItem]:
        selector, tiles = await session.query(
            TILE_SELECTORS,
            min_count=TILE_MIN_COUNT,
            fields={"image": ["img@src"]},
        )
        if selector is None:
            logger.info("[%s] No deal tiles found with known selectors, scanning page blocks", self.store_id)
            return await self._extract_fallback(session)

        items: list[SafewayItem] = []
        seen: set[str] = set()
        for tile in tiles:
            if not _looks_like_tile(tile.text):
                continue
            title = extract_title(tile.text)
            if len(title) < 3 or title in seen:
                continue
            price_text = extract_price_text(tile.text)
            if not price_text:
                continue
            seen.add(title)
            items.append(SafewayItem(
                title=title,
                price_text=price_text,
                reference_text=tile.text,
                image_url=tile.fields.get("image", ""),
            ))
        return items

    async def _extract_fallback(self, session) -> list[SafewayItem]:
        items: list[SafewayItem] = []
        seen: set[str] = set()
        for selector in FALLBACK_SELECTORS:
            _, blocks = await session.query(
                [selector],
                fields={"title": FALLBACK_TITLE_SELECTORS, "image": ["img@src"]},
            )
            for block in blocks:
                text = block.text
                if not 10 <= len(text) <= 500 or not _looks_like_tile(text):
                    continue
                title = block.fields.get("title", "")
                if not 3 <= len(title) <= MAX_TITLE_LEN or title in seen:
                    continue
                seen.add(title)
                items.append(SafewayItem(
                    title=title,
                    price_text=extract_price_text(text) or text,
                    reference_text=text,
                    image_url=block.fields.get("image", ""),
                ))
        return items
