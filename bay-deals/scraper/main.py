"""
Bay Area grocery deals scraper orchestrator.

Runs each store scraper through the pipeline (scrape, validate,
translate, shape), then merges the combined result into the deals
catalog consumed by the frontend.  Stores run one after another in a
single shared browser.

Usage:
    python main.py                # scrape every store
    python main.py safeway        # scrape a single store by id

Environment variables:
    DRY_RUN=true              # scrape only, do not write the catalog
    CI=true                   # skip translation / OCR subprocess calls
    DEALS_PATH=...            # catalog file (default ../data/deals.json)
    CACHE_DIR=...             # translation / OCR caches (default .cache)
    TRANSLATE_BIN=claude      # CLI used for translation and flyer OCR
    STORE_DELAY_SEC=2         # pause between stores
"""

from __future__ import annotations

import asyncio
import logging
import sys
import time
from typing import Awaitable, Callable

from dotenv import load_dotenv

# config.stores reads the environment at import time
load_dotenv()

from config.stores import DEALS_PATH, DRY_RUN, STORE_DELAY_SEC, get_store_ids
from merge import CatalogError, CatalogFile, merge_deals
from models import Deal, ScrapeReport
from ocr import FlyerOcr
from pipeline import ScraperPipeline
from platforms import (
    CostcoScraper, HMartScraper, PlaywrightFetcher, Ranch99Scraper,
    SafewayScraper, SproutsScraper, StoreScraper,
)
from platforms.base import Fetcher
from translator import Translator

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("orchestrator")


# ---------------------------------------------------------------------------
# Scraper registry
# ---------------------------------------------------------------------------

SCRAPER_MAP = {
    "costco": lambda fetcher, ocr: CostcoScraper(fetcher),
    "sprouts": lambda fetcher, ocr: SproutsScraper(fetcher),
    "safeway": lambda fetcher, ocr: SafewayScraper(fetcher),
    "hmart": lambda fetcher, ocr: HMartScraper(fetcher, ocr),
    "ranch99": lambda fetcher, ocr: Ranch99Scraper(fetcher, ocr),
}


def build_scrapers(
    fetcher: Fetcher,
    ocr: FlyerOcr,
    store_ids: list[str] | None = None,
) -> list[StoreScraper]:
    """Instantiate scrapers for *store_ids* (all registered stores by default)."""
    ids = store_ids or get_store_ids()
    return [SCRAPER_MAP[store_id](fetcher, ocr) for store_id in ids]


# ---------------------------------------------------------------------------
# Main orchestrator
# ---------------------------------------------------------------------------


async def scrape_stores(
    scrapers: list[StoreScraper],
    pipeline: ScraperPipeline,
    *,
    delay_sec: float = STORE_DELAY_SEC,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
) -> tuple[list[Deal], list[ScrapeReport]]:
    """Run every scraper in turn; a failing store is recorded, not fatal."""
    all_deals: list[Deal] = []
    reports: list[ScrapeReport] = []

    for i, scraper in enumerate(scrapers):
        if i > 0 and delay_sec > 0:
            await sleep(delay_sec)

        store_start = time.time()
        logger.info("[START] %s", scraper.name)
        try:
            deals = await pipeline.run(scraper)
        except Exception as exc:
            logger.error("[FAIL]  %s: %s", scraper.name, exc, exc_info=True)
            reports.append(ScrapeReport(store_id=scraper.store_id, error=str(exc)))
            continue

        logger.info(
            "[DONE]  %s: %d deals in %.1fs",
            scraper.name, len(deals), time.time() - store_start,
        )
        all_deals.extend(deals)
        reports.append(ScrapeReport(store_id=scraper.store_id, count=len(deals)))

    return all_deals, reports


def _log_summary(reports: list[ScrapeReport], total: int, elapsed: float) -> None:
    logger.info("=" * 60)
    logger.info("SCRAPE COMPLETE")
    for report in reports:
        if report.error:
            logger.info("  %-10s FAILED (%s)", report.store_id, report.error[:60])
        else:
            logger.info("  %-10s %d deals", report.store_id, report.count)
    logger.info("  Total:      %d deals", total)
    logger.info("  Duration:   %.1f min", elapsed / 60)
    logger.info("=" * 60)


async def run(
    store_ids: list[str] | None = None,
    *,
    dry_run: bool = DRY_RUN,
    catalog: CatalogFile | None = None,
    launch=PlaywrightFetcher.launch,
    translator: Translator | None = None,
    ocr: FlyerOcr | None = None,
) -> list[ScrapeReport]:
    """Run the full scrape and merge; returns one report per store."""
    start = time.time()
    catalog = catalog or CatalogFile(DEALS_PATH)

    logger.info("=" * 60)
    logger.info("Bay Area Deals Scraper Starting")
    logger.info("  DRY_RUN:    %s", dry_run)
    logger.info("  STORES:     %s", ", ".join(store_ids) if store_ids else "(all)")
    logger.info("  CATALOG:    %s", catalog.path)
    logger.info("=" * 60)

    if not dry_run:
        # Fail on a corrupt catalog before spending a browser session.
        catalog.read()

    pipeline = ScraperPipeline(translator or Translator())
    ocr = ocr or FlyerOcr()

    async with launch() as fetcher:
        scrapers = build_scrapers(fetcher, ocr, store_ids)
        deals, reports = await scrape_stores(scrapers, pipeline)

    _log_summary(reports, len(deals), time.time() - start)

    if not deals:
        logger.warning("No deals scraped, catalog left unchanged")
    elif dry_run:
        logger.info("[DRY RUN] Would merge %d deals into %s", len(deals), catalog.path)
    else:
        merge_deals(deals, catalog.read, catalog.write)

    return reports


def main(argv: list[str]) -> int:
    store_id = argv[1] if len(argv) > 1 else None
    if store_id is not None and store_id not in SCRAPER_MAP:
        print(f"Unknown store: {store_id}")
        print(f"Usage: python main.py [{'|'.join(get_store_ids())}]")
        return 1

    try:
        asyncio.run(run([store_id] if store_id else None))
    except CatalogError as exc:
        logger.error("Catalog unreadable, aborting: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
