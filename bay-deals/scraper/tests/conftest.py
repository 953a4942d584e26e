"""Shared fixtures for the Bay Area deals scraper test suite."""

from __future__ import annotations

import sys
from contextlib import asynccontextmanager
from pathlib import Path

import pytest

# Ensure the scraper package is importable from tests/
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from platforms.base import FetchedElement
from models import Deal, RawDealCandidate


# =====================================================================
# Fake fetch capability
# =====================================================================


class FakeSession:
    """Canned ``PageSession``: elements keyed by selector.

    ``query`` mirrors the real priority semantics: the first selector with
    at least ``min_count`` elements wins.
    """

    def __init__(self, elements: dict[str, list[FetchedElement]] | None = None, html: str = ""):
        self.elements = elements or {}
        self.html = html
        self.scrolls: list[tuple[int, int | None]] = []
        self.queries: list[list[str]] = []

    async def query(self, selectors, *, min_count=1, fields=None, attributes=None, limit=None):
        self.queries.append(list(selectors))
        for selector in selectors:
            found = self.elements.get(selector, [])
            if len(found) >= min_count:
                return selector, found[:limit] if limit else list(found)
        return None, []

    async def content(self):
        return self.html

    async def scroll(self, steps, step_px=None, pause_sec=1.0):
        self.scrolls.append((steps, step_px))


class FakeFetcher:
    def __init__(self, session: FakeSession | None = None, error: Exception | None = None):
        self.session = session or FakeSession()
        self.error = error
        self.opened: list[str] = []

    @asynccontextmanager
    async def open(self, url, *, wait_until="domcontentloaded", settle_sec=3.0):
        self.opened.append(url)
        if self.error is not None:
            raise self.error
        yield self.session


def el(text: str = "", **fields: str) -> FetchedElement:
    """Element with *text* and named sub-element *fields*."""
    return FetchedElement(text=text, fields=dict(fields))


def img(**attributes: str) -> FetchedElement:
    return FetchedElement(text="", attributes=dict(attributes))


# =====================================================================
# Fake LLM backends
# =====================================================================


class FakeTranslationBackend:
    def __init__(self, response=None, *, available: bool = True, error: Exception | None = None):
        self.response = response
        self.available = available
        self.error = error
        self.calls: list[list[dict]] = []

    def is_available(self):
        return self.available

    async def translate(self, items):
        self.calls.append(items)
        if self.error is not None:
            raise self.error
        if self.response is not None:
            return self.response
        return [{"titleZh": f"中文 {item['title']}", "descriptionZh": "描述"} for item in items]


class FakeOcrBackend:
    def __init__(self, items=None, *, available: bool = True, error: Exception | None = None):
        self.items = items or []
        self.available = available
        self.error = error
        self.calls: list[str] = []

    def is_available(self):
        return self.available

    async def extract(self, image_b64):
        self.calls.append(image_b64)
        if self.error is not None:
            raise self.error
        return self.items


class FakeOcr:
    """``FlyerOcr`` stand-in returning canned ``OcrDeal`` lists per URL."""

    def __init__(self, results=None):
        self.results = results or {}
        self.urls: list[str] = []

    async def extract(self, image_url):
        self.urls.append(image_url)
        return self.results.get(image_url, [])


# =====================================================================
# Record factories
# =====================================================================


@pytest.fixture
def make_candidate():
    """Factory for ``RawDealCandidate`` with valid defaults."""

    def _make(**overrides):
        values = {
            "title": "Organic Strawberries",
            "description": "Save $2.00",
            "original_price": 6.0,
            "sale_price": 4.0,
            "start_date": "2026-02-11",
            "expiry_date": "2026-02-17",
            "unit": "/lb",
            "details": "Weekly special.",
        }
        values.update(overrides)
        return RawDealCandidate(**values)

    return _make


@pytest.fixture
def make_deal():
    """Factory for persisted ``Deal`` records."""

    def _make(**overrides):
        values = {
            "id": "costco-001",
            "store_id": "costco",
            "category_id": "produce",
            "title": "Organic Strawberries",
            "title_zh": "有机草莓",
            "description": "Save $2.00",
            "description_zh": "节省 $2.00",
            "original_price": 6.0,
            "sale_price": 4.0,
            "start_date": "2026-01-26",
            "expiry_date": "2026-02-01",
            "is_hot": False,
            "locations": ["san_jose"],
        }
        values.update(overrides)
        return Deal(**values)

    return _make
