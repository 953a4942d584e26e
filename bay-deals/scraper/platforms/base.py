"""
Interfaces shared by every store scraper.

A store scraper never touches Playwright directly.  It asks a ``Fetcher``
to open the store's ad page and gets back a ``PageSession`` that can:

  * ``query`` a priority list of selectors (first one with enough matches
    wins) and return each element's text, requested attributes, and the
    text of named sub-elements;
  * return the raw page HTML;
  * scroll to trigger lazy loading.

``platforms/browser.py`` implements this with a stealth Playwright
browser; the tests implement it with canned elements so dialect parsing
runs without a browser.
"""

from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field
from typing import Protocol

from models import RawDealCandidate


@dataclass
class FetchedElement:
    """Snapshot of one DOM element."""

    text: str
    attributes: dict[str, str] = field(default_factory=dict)
    # name -> text of the first matching sub-selector ("" when none
    # matched).  A sub-selector written "img@src" yields the attribute.
    fields: dict[str, str] = field(default_factory=dict)


class PageSession(Protocol):
    async def query(
        self,
        selectors: list[str],
        *,
        min_count: int = 1,
        fields: dict[str, list[str]] | None = None,
        attributes: list[str] | None = None,
        limit: int | None = None,
    ) -> tuple[str | None, list[FetchedElement]]: ...

    async def content(self) -> str: ...

    async def scroll(
        self, steps: int, step_px: int | None = None, pause_sec: float = 1.0,
    ) -> None: ...


class Fetcher(Protocol):
    def open(
        self,
        url: str,
        *,
        wait_until: str = "domcontentloaded",
        settle_sec: float = 3.0,
    ) -> AbstractAsyncContextManager[PageSession]: ...


class StoreScraper(Protocol):
    store_id: str
    name: str
    locations: list[str]

    async def scrape(self) -> list[RawDealCandidate]: ...
