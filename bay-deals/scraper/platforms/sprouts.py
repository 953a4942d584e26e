"""
Sprouts Farmers Market weekly-ad scraper.

Sprouts renders with hashed CSS classes that change on every rebuild, but
each deal lives in one ``h3`` whose text is a run-together blob:

    OrganicCurrent price: $6.99$699Buy 1, get 1 50% offOrganic Strawberries★★★★★(502)1 lb container

``parse_sprouts_blob`` pulls name / current price / promo / size out of
that blob and ``sprouts_candidate`` turns the promo into a price pair.
The ad runs Wednesday → Tuesday.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date

from config.stores import MAX_TITLE_LEN, get_store
from models import RawDealCandidate
from parser import (
    WEDNESDAY, accept_prices, bogo, original_from_percent, parse_amount,
    percent_off, resolve_reference, round_cents, save_amount, truncate,
    unit_from_text, was_price, week_window,
)
from platforms.base import Fetcher

logger = logging.getLogger(__name__)

# Name sits between the promo and the star rating.
_RE_NAME_AFTER_BOGO = re.compile(r"(?:Buy \d+, get \d+ (?:free|\d+% off))([A-Z][^★]+?)(?:★|$)")
_RE_NAME_AFTER_ORIGINAL = re.compile(r"Original Price:[^$]*\$[\d,.]+(?:\s*/\s*\w+)?(.+?)(?:★|$)")
_RE_NAME_AFTER_PRICE = re.compile(r"\$\d[\d,.]*([A-Z][A-Za-z' &\-]+(?:\s+[A-Z][A-Za-z' &\-]+)*)")

_RE_CURRENT_PRICE = re.compile(r"Current price:\s*\$?([\d,.]+)", re.IGNORECASE)
_RE_BOGO_FREE = re.compile(r"buy\s+\d+[,.]?\s*get\s+\d+\s+free", re.IGNORECASE)
_RE_BOGO_PERCENT = re.compile(r"buy\s+\d+[,.]?\s*get\s+\d+\s+\d+%\s*off", re.IGNORECASE)
_RE_ORIGINAL_PRICE = re.compile(r"Original Price:[^$]*\$([\d,.]+)", re.IGNORECASE)
_RE_SIZE = re.compile(
    r"(\d+(?:\.\d+)?)\s*(oz|lb|ct|fl oz|gal|qt|pt|pk|count|each|container)\b",
    re.IGNORECASE,
)
# "per pound$14.99Organic ..." leftovers at the front of a name
_RE_NAME_PRICE_PREFIX = re.compile(r"^(?:per\s+\w+)?\$[\d,.]+", re.IGNORECASE)


@dataclass
class SproutsItem:
    name: str
    price: float
    promo_text: str
    size: str = ""


def _blob_name(blob: str) -> str:
    for pattern in (_RE_NAME_AFTER_BOGO, _RE_NAME_AFTER_ORIGINAL, _RE_NAME_AFTER_PRICE):
        m = pattern.search(blob)
        if m and m.group(1).strip():
            return m.group(1).strip()
    return ""


def parse_sprouts_blob(blob: str) -> SproutsItem | None:
    """One ``h3`` text blob → item, or ``None`` when it is not a deal."""
    blob = (blob or "").strip()
    if len(blob) < 10 or "$" not in blob:
        return None

    name = _blob_name(blob)
    if len(name) < 3:
        return None

    m = _RE_CURRENT_PRICE.search(blob)
    price = parse_amount(m.group(1)) if m else None
    if not price or price <= 0:
        return None

    promo = ""
    bogo_match = _RE_BOGO_FREE.search(blob) or _RE_BOGO_PERCENT.search(blob)
    original_match = _RE_ORIGINAL_PRICE.search(blob)
    if bogo_match:
        promo = bogo_match.group(0)
    elif original_match:
        promo = f"was ${original_match.group(1).rstrip('.')}"
    if not promo:
        return None

    m = _RE_SIZE.search(blob)
    size = f"{m.group(1)} {m.group(2)}" if m else ""

    name = _RE_NAME_PRICE_PREFIX.sub("", name).strip()
    if len(name) < 3:
        return None

    return SproutsItem(name=name, price=price, promo_text=promo, size=size)


def sprouts_candidate(
    item: SproutsItem, start_date: str, expiry_date: str,
) -> RawDealCandidate | None:
    price = item.price
    promo = item.promo_text
    size = item.size or "each"

    marker = bogo(promo)
    was = was_price(promo)
    savings = save_amount(promo)
    pct = percent_off(promo)

    if marker is not None:
        resolved = resolve_reference(marker, price)
        if resolved is None:
            return None
        original, sale = resolved.original, resolved.sale
        deal = "free" if marker.percent is None else f"{marker.percent:g}% off"
        description = f"Buy {marker.buy_qty} get {marker.get_qty} {deal} ({size})"
    elif was is not None:
        original, sale = was, price
        description = f"Was ${original:.2f}, now ${sale:.2f} ({size})"
    elif savings is not None:
        original, sale = round_cents(price + savings), price
        description = f"Save ${savings:.2f} ({size})"
    elif pct is not None:
        original, sale = original_from_percent(price, pct), price
        description = f"{pct:g}% off ({size})"
    else:
        return None

    if not accept_prices(original, sale):
        return None

    return RawDealCandidate(
        title=truncate(item.name, MAX_TITLE_LEN),
        description=description,
        original_price=original,
        sale_price=sale,
        start_date=start_date,
        expiry_date=expiry_date,
        unit=unit_from_text(item.size),
        details=f"Sprouts Farmers Market weekly special. {promo}.",
    )


class SproutsScraper:
    def __init__(self, fetcher: Fetcher, store: dict | None = None, *, today: date | None = None):
        store = store or get_store("sprouts")
        self.fetcher = fetcher
        self.store_id: str = store["id"]
        self.name: str = store["name"]
        self.url: str = store["url"]
        self.wait_until: str = store["wait_until"]
        self.locations: list[str] = list(store["locations"])
        self.today = today

    async def scrape(self) -> list[RawDealCandidate]:
        async with self.fetcher.open(self.url, wait_until=self.wait_until, settle_sec=5.0) as session:
            await session.scroll(5, step_px=800)
            _, headings = await session.query(["h3"])

        items: list[SproutsItem] = []
        seen: set[str] = set()
        for heading in headings:
            item = parse_sprouts_blob(heading.text)
            if item is None or item.name in seen:
                continue
            seen.add(item.name)
            items.append(item)
        logger.info("[%s] Extracted %d items from page", self.store_id, len(items))

        start, expiry = week_window(self.today or date.today(), WEDNESDAY)
        deals = []
        for item in items:
            candidate = sprouts_candidate(item, start, expiry)
            if candidate is not None:
                deals.append(candidate)
        return deals
