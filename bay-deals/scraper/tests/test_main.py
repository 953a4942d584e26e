"""Tests for main.py: store loop, dry run, catalog merge and CLI exit codes."""

from __future__ import annotations

import json
from contextlib import asynccontextmanager

import pytest

import main as orchestrator
from cache_store import MemoryStore
from conftest import FakeFetcher, FakeOcr, FakeSession, FakeTranslationBackend, el
from merge import CatalogError, CatalogFile
from models import ScrapeReport
from pipeline import ScraperPipeline
from platforms import CostcoScraper, HMartScraper, Ranch99Scraper, SafewayScraper, SproutsScraper
from platforms.costco import PRODUCT_SELECTORS
from translator import Translator

COSTCO_TILE = "Kirkland Signature\nOrganic Maple Syrup 1L\nWas $24.99 Now $19.99\nValid 1/29/26 - 2/23/26"


class StubScraper:
    def __init__(self, store_id, result):
        self.store_id = store_id
        self.name = store_id.upper()
        self.url = f"https://{store_id}.example.com"
        self.locations = ["san_jose"]
        self.result = result

    async def scrape(self):
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


async def _no_sleep(_delay):
    return None


def _translator():
    return Translator(FakeTranslationBackend(), MemoryStore(), ci=False)


def _launcher(fetcher):
    @asynccontextmanager
    async def launch():
        yield fetcher

    return launch


class TestBuildScrapers:

    def test_all_stores_by_default(self):
        scrapers = orchestrator.build_scrapers(FakeFetcher(), FakeOcr())
        assert [type(s) for s in scrapers] == [
            CostcoScraper, SproutsScraper, SafewayScraper, HMartScraper, Ranch99Scraper,
        ]

    def test_flyer_stores_share_ocr(self):
        ocr = FakeOcr()
        [hmart, ranch99] = orchestrator.build_scrapers(FakeFetcher(), ocr, ["hmart", "ranch99"])
        assert hmart.ocr is ocr
        assert ranch99.ocr is ocr


class TestScrapeStores:

    @pytest.mark.asyncio
    async def test_failure_recorded_and_loop_continues(self, make_candidate):
        sleeps = []

        async def record_sleep(delay):
            sleeps.append(delay)

        scrapers = [
            StubScraper("costco", ValueError("layout changed")),
            StubScraper("sprouts", [make_candidate(), make_candidate(title="Bananas")]),
        ]
        pipeline = ScraperPipeline(_translator(), max_retries=0, sleep=_no_sleep)

        deals, reports = await orchestrator.scrape_stores(
            scrapers, pipeline, delay_sec=2.0, sleep=record_sleep,
        )

        assert [d.id for d in deals] == ["sprouts-001", "sprouts-002"]
        assert reports == [
            ScrapeReport(store_id="costco", error="layout changed"),
            ScrapeReport(store_id="sprouts", count=2),
        ]
        assert sleeps == [2.0]

    @pytest.mark.asyncio
    async def test_blocked_store_reports_zero(self):
        scrapers = [StubScraper("safeway", RuntimeError("net::ERR_HTTP2_PROTOCOL_ERROR"))]
        pipeline = ScraperPipeline(_translator(), max_retries=0, sleep=_no_sleep)

        deals, reports = await orchestrator.scrape_stores(scrapers, pipeline, delay_sec=0)

        assert deals == []
        assert reports == [ScrapeReport(store_id="safeway", count=0)]


class TestRun:

    def _fetcher(self):
        return FakeFetcher(FakeSession({PRODUCT_SELECTORS[0]: [el(COSTCO_TILE)]}))

    @pytest.mark.asyncio
    async def test_merges_into_catalog(self, tmp_path):
        path = tmp_path / "deals.json"

        reports = await orchestrator.run(
            ["costco"],
            dry_run=False,
            catalog=CatalogFile(path),
            launch=_launcher(self._fetcher()),
            translator=_translator(),
            ocr=FakeOcr(),
        )

        assert reports == [ScrapeReport(store_id="costco", count=1)]
        [deal] = json.loads(path.read_text(encoding="utf-8"))
        assert deal["id"] == "costco-001"
        assert deal["titleZh"] == "中文 Kirkland Signature Organic Maple Syrup 1L"
        assert deal["categoryId"] == "pantry"

    @pytest.mark.asyncio
    async def test_dry_run_leaves_catalog_alone(self, tmp_path):
        path = tmp_path / "deals.json"

        await orchestrator.run(
            ["costco"],
            dry_run=True,
            catalog=CatalogFile(path),
            launch=_launcher(self._fetcher()),
            translator=_translator(),
            ocr=FakeOcr(),
        )

        assert not path.exists()

    @pytest.mark.asyncio
    async def test_no_deals_leaves_catalog_alone(self, tmp_path):
        path = tmp_path / "deals.json"
        path.write_text("[]\n", encoding="utf-8")

        reports = await orchestrator.run(
            ["costco"],
            dry_run=False,
            catalog=CatalogFile(path),
            launch=_launcher(FakeFetcher()),
            translator=_translator(),
            ocr=FakeOcr(),
        )

        assert reports == [ScrapeReport(store_id="costco", count=0)]
        assert path.read_text(encoding="utf-8") == "[]\n"

    @pytest.mark.asyncio
    async def test_corrupt_catalog_fails_before_browser_launch(self, tmp_path):
        path = tmp_path / "deals.json"
        path.write_text("{not json", encoding="utf-8")
        launched = []

        @asynccontextmanager
        async def launch():
            launched.append(True)
            yield self._fetcher()

        with pytest.raises(CatalogError):
            await orchestrator.run(
                ["costco"],
                dry_run=False,
                catalog=CatalogFile(path),
                launch=launch,
                translator=_translator(),
                ocr=FakeOcr(),
            )

        assert launched == []
        assert path.read_text(encoding="utf-8") == "{not json"

    @pytest.mark.asyncio
    async def test_dry_run_skips_catalog_check(self, tmp_path):
        path = tmp_path / "deals.json"
        path.write_text("{not json", encoding="utf-8")

        reports = await orchestrator.run(
            ["costco"],
            dry_run=True,
            catalog=CatalogFile(path),
            launch=_launcher(self._fetcher()),
            translator=_translator(),
            ocr=FakeOcr(),
        )

        assert reports == [ScrapeReport(store_id="costco", count=1)]


class TestMain:

    def test_unknown_store(self, capsys):
        assert orchestrator.main(["main.py", "walmart"]) == 1
        out = capsys.readouterr().out
        assert "Unknown store: walmart" in out
        assert "costco|sprouts|safeway|hmart|ranch99" in out

    def test_single_store(self, monkeypatch):
        seen = []

        async def fake_run(store_ids=None, **kwargs):
            seen.append(store_ids)
            return []

        monkeypatch.setattr(orchestrator, "run", fake_run)
        assert orchestrator.main(["main.py", "hmart"]) == 0
        assert orchestrator.main(["main.py"]) == 0
        assert seen == [["hmart"], None]

    def test_unreadable_catalog_exits_nonzero(self, monkeypatch):
        async def fake_run(store_ids=None, **kwargs):
            raise CatalogError("cannot read catalog")

        monkeypatch.setattr(orchestrator, "run", fake_run)
        assert orchestrator.main(["main.py"]) == 1
