"""
99 Ranch Market weekly-ad scraper.

The ad page is a Next.js app with no product markup at all: each ad
section ("Weekly Specials", "Seafood Sale" ...) is one flyer image.  The
section list (name, "Feb.13 - Feb.19" date, image URL) is read from the
hydration data in ``<script>`` tags, falling back to ``<img>`` sources.
Every flyer goes through OCR.

Sections whose date is present but unreadable are skipped; sections with
no date use the Thursday → Wednesday week.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date
from urllib.parse import unquote, urljoin

from config.stores import get_store
from models import RawDealCandidate
from ocr import FlyerOcr, ocr_candidate
from parser import THURSDAY, iso_date, week_window, wrap_years
from platforms.base import Fetcher

logger = logging.getLogger(__name__)

MONTHS = {
    "Jan": 1, "Feb": 2, "Mar": 3, "Apr": 4, "May": 5, "Jun": 6,
    "Jul": 7, "Aug": 8, "Sep": 9, "Oct": 10, "Nov": 11, "Dec": 12,
}

_RE_SECTION_DATE = re.compile(r"([A-Z][a-z]{2})\.(\d{1,2})\s*-\s*([A-Z][a-z]{2})\.(\d{1,2})")
_RE_SECTION_DATA = re.compile(
    r'"name"\s*:\s*"([^"]+)"[^}]*"date"\s*:\s*"([^"]+)"[^}]*"imageUrl"\s*:\s*"([^"]+)"'
)
_RE_IMAGE_EXT = re.compile(r"\.(?:jpe?g|png)", re.IGNORECASE)
_RE_NEXT_IMAGE_URL = re.compile(r"url=([^&]+)")

FALLBACK_SECTION_NAME = "Weekly Deal"


@dataclass
class AdSection:
    name: str
    date: str
    image_url: str


def parse_ranch99_dates(text: str, today: date | None = None) -> tuple[str, str] | None:
    """``"Feb.13 - Feb.19"`` → ISO pair in *today*'s year.

    A December → January section ends in the following year.

    >>> parse_ranch99_dates("Dec.28 - Jan.3", date(2025, 12, 29))
    ('2025-12-28', '2026-01-03')
    """
    m = _RE_SECTION_DATE.search((text or "").strip())
    if not m:
        return None
    start_month = MONTHS.get(m.group(1))
    end_month = MONTHS.get(m.group(3))
    if start_month is None or end_month is None:
        return None
    start_year, end_year = wrap_years(start_month, end_month, today or date.today(), roll="end_forward")
    try:
        return (
            iso_date(start_year, start_month, m.group(2)),
            iso_date(end_year, end_month, m.group(4)),
        )
    except ValueError:
        return None


def sections_from_scripts(scripts: list[str]) -> list[AdSection]:
    sections: list[AdSection] = []
    for text in scripts:
        # Flight data inside __next_f.push() strings is JSON-escaped.
        text = text.replace('\\"', '"')
        for m in _RE_SECTION_DATA.finditer(text):
            sections.append(AdSection(name=m.group(1), date=m.group(2), image_url=m.group(3)))
    return sections


def flyer_image_url(src: str) -> str | None:
    """Original flyer URL for a 99 Ranch ``<img>`` source, else ``None``.

    Next.js ``/_next/image?url=...`` wrappers are unwrapped.
    """
    if not src or "99ranch" not in src or not _RE_IMAGE_EXT.search(src):
        return None
    m = _RE_NEXT_IMAGE_URL.search(src)
    return unquote(m.group(1)) if m else src


class Ranch99Scraper:
    def __init__(
        self,
        fetcher: Fetcher,
        ocr: FlyerOcr | None = None,
        store: dict | None = None,
        *,
        today: date | None = None,
    ):
        store = store or get_store("ranch99")
        self.fetcher = fetcher
        self.ocr = ocr or FlyerOcr()
        self.store_id: str = store["id"]
        self.name: str = store["name"]
        self.url: str = store["url"]
        self.wait_until: str = store["wait_until"]
        self.locations: list[str] = list(store["locations"])
        self.today = today

    async def scrape(self) -> list[RawDealCandidate]:
        async with self.fetcher.open(self.url, wait_until=self.wait_until, settle_sec=3.0) as session:
            sections = await self._ad_sections(session)

        logger.info("[%s] Found %d ad sections", self.store_id, len(sections))
        if not sections:
            return []

        today = self.today or date.today()
        deals: list[RawDealCandidate] = []
        for section in sections:
            dates = parse_ranch99_dates(section.date, today)
            if dates is None and section.date:
                logger.info(
                    "[%s] Skipping section %r: unparseable date %r",
                    self.store_id, section.name, section.date,
                )
                continue
            if not section.image_url:
                continue

            start, expiry = dates or week_window(today, THURSDAY)
            for ocr_deal in await self.ocr.extract(section.image_url):
                candidate = ocr_candidate(
                    ocr_deal, start, expiry,
                    description=f"99 Ranch {section.name}",
                    details=f"99 Ranch Market weekly special - {section.name}",
                )
                if candidate is not None:
                    deals.append(candidate)

        logger.info("[%s] Extracted %d total deals via OCR", self.store_id, len(deals))
        return deals

    async def _ad_sections(self, session) -> list[AdSection]:
        _, scripts = await session.query(["script"])
        sections = sections_from_scripts([s.text for s in scripts])
        if sections:
            return sections

        _, images = await session.query(["img"], attributes=["src", "data-src"])
        for img in images:
            src = urljoin(self.url, img.attributes.get("src") or img.attributes.get("data-src") or "")
            url = flyer_image_url(src)
            if url:
                sections.append(AdSection(name=FALLBACK_SECTION_NAME, date="", image_url=url))
        return sections
