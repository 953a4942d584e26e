"""Tests for platforms/safeway.py: price dialect, header dates, tile extraction."""

from __future__ import annotations

from datetime import date

import pytest

from conftest import FakeFetcher, FakeSession, el
from parser import NeedsReferencePrice, Resolved, SaleOnly, Savings
from platforms.safeway import (
    SafewayItem,
    SafewayScraper,
    extract_price_text,
    extract_title,
    parse_safeway_dates,
    parse_safeway_price,
    safeway_candidate,
)

START, EXPIRY = "2026-02-12", "2026-02-18"


class TestParseSafewayPrice:

    @pytest.mark.parametrize("text,expected", [
        ("was $5.99 now $3.99", Resolved(5.99, 3.99)),
        ("2 for $5", SaleOnly(2.5, "multi_buy")),
        ("CLUB PRICE $4.49", SaleOnly(4.49, "club")),
        ("CLUB PRICE $4.49.", SaleOnly(4.49, "club")),
        ("Now just $1.99 ea.", SaleOnly(1.99, "each")),
        ("$1.99 ea", SaleOnly(1.99, "each")),
        ("Save $2.00", Savings(2.0)),
        ("Buy 1 Get 1 Free", NeedsReferencePrice("bogo", None, 1, 1)),
    ])
    def test_dialect(self, text, expected):
        assert parse_safeway_price(text) == expected

    def test_first_pattern_wins(self):
        assert parse_safeway_price("was $5.99 now $3.99 2 for $7") == Resolved(5.99, 3.99)

    @pytest.mark.parametrize("text", ["", "Weekly favourites", "$0.00 ea"])
    def test_unusable(self, text):
        assert parse_safeway_price(text) is None


class TestParseSafewayDates:

    def test_short_range_uses_current_year(self):
        assert parse_safeway_dates("Valid 2/12 - 2/18", date(2026, 2, 14)) == (START, EXPIRY)

    def test_december_to_january_rolls_start_back(self):
        assert parse_safeway_dates("Valid 12/31 - 1/6", date(2026, 1, 5)) == ("2025-12-31", "2026-01-06")

    def test_full_range_preferred(self):
        assert parse_safeway_dates("Valid 2/12/26 - 2/18/26", date(2030, 1, 1)) == (START, EXPIRY)

    def test_no_dates(self):
        assert parse_safeway_dates("Weekly Ad", date(2026, 2, 14)) is None
        assert parse_safeway_dates("", date(2026, 2, 14)) is None

    def test_reversed_same_year_rejected(self):
        assert parse_safeway_dates("Valid 3/18 - 2/12", date(2026, 2, 14)) is None


class TestTileText:

    def test_title_skips_price_lines(self):
        assert extract_title("$3.99\nCLUB PRICE\nSignature Pasta\n16 oz") == "Signature Pasta"

    def test_title_falls_back_to_first_line(self):
        assert extract_title("$3.99\nSave $1") == "$3.99"

    def test_price_text_priority(self):
        assert extract_price_text("Yogurt\n2 for $5\n$2.99 ea") == "2 for $5"
        assert extract_price_text("Pasta\nBuy 1 Get 1 Free\nReg. $3.99") == "Buy 1 Get 1 Free"
        assert extract_price_text("Bananas\n$0.59") == "$0.59"
        assert extract_price_text("Nothing here") == ""


class TestSafewayCandidate:

    def test_save_amount_doubles(self):
        c = safeway_candidate(SafewayItem("Tide Pods", "Save $2.00"), START, EXPIRY)
        assert (c.sale_price, c.original_price) == (4.0, 6.0)
        assert c.description == "Save $2.00"

    def test_multi_buy_estimates_original(self):
        c = safeway_candidate(SafewayItem("Greek Yogurt", "2 for $5"), START, EXPIRY)
        assert (c.sale_price, c.original_price) == (2.5, 3.25)
        assert c.description == "Club price $2.50"

    def test_was_now(self):
        c = safeway_candidate(SafewayItem("Ribeye", "was $12.99 now $9.99"), START, EXPIRY)
        assert (c.original_price, c.sale_price) == (12.99, 9.99)
        assert c.description == "Was $12.99, now $9.99"

    def test_bogo_uses_reference_price(self):
        item = SafewayItem(
            "Signature Pasta", "Buy 1 Get 1 Free",
            reference_text="Signature Pasta\nBuy 1 Get 1 Free\nReg. $3.99",
        )
        c = safeway_candidate(item, START, EXPIRY)
        assert (c.original_price, c.sale_price) == (3.99, 2.0)
        assert c.description == "Buy 1 get 1 free"

    def test_bogo_percent_label(self):
        item = SafewayItem(
            "Signature Pasta", "Buy 1 Get 1 50% off",
            reference_text="Signature Pasta\nBuy 1 Get 1 50% off\nReg. $4.00",
        )
        c = safeway_candidate(item, START, EXPIRY)
        assert (c.original_price, c.sale_price) == (4.0, 3.0)
        assert c.description == "Buy 1 get 1 50% off"

    def test_bogo_without_reference_dropped(self):
        item = SafewayItem("Pasta", "Buy 1 Get 1 Free", reference_text="Pasta\nBuy 1 Get 1 Free")
        assert safeway_candidate(item, START, EXPIRY) is None

    def test_image_url_carried(self):
        item = SafewayItem("Tide Pods", "Save $2.00", image_url="https://images.safeway.com/tide.jpg")
        assert safeway_candidate(item, START, EXPIRY).image_url == "https://images.safeway.com/tide.jpg"

    def test_unparseable_dropped(self):
        assert safeway_candidate(SafewayItem("Mystery", "Great deal"), START, EXPIRY) is None


TILES = [
    el("Organic Gala Apples\n$1.99 ea", image="https://images.safeway.com/apples.jpg"),
    el("Lucerne Greek Yogurt\n2 for $5"),
    el("Tide Pods\nSave $2.00"),
    el("Signature Select Pasta\nBuy 1 Get 1 Free\nReg. $3.99"),
    el("Tide Pods\nSave $2.00"),
    el("Shop"),
]


class TestSafewayScraper:

    @pytest.mark.asyncio
    async def test_scrape_tiles_with_header_dates(self):
        session = FakeSession({
            '[class*="date"]': [el("Weekly Ad"), el("Valid 2/12 - 2/18")],
            ".weekly-ad-item": TILES,
        })
        scraper = SafewayScraper(FakeFetcher(session), today=date(2026, 2, 14))

        deals = await scraper.scrape()

        assert [d.title for d in deals] == [
            "Organic Gala Apples", "Lucerne Greek Yogurt", "Tide Pods", "Signature Select Pasta",
        ]
        assert [d.sale_price for d in deals] == [1.99, 2.5, 4.0, 2.0]
        assert deals[0].original_price == 2.59
        assert deals[0].image_url == "https://images.safeway.com/apples.jpg"
        assert {(d.start_date, d.expiry_date) for d in deals} == {(START, EXPIRY)}

    @pytest.mark.asyncio
    async def test_no_header_uses_wednesday_week(self):
        session = FakeSession({".weekly-ad-item": TILES})
        deals = await SafewayScraper(FakeFetcher(session), today=date(2026, 2, 9)).scrape()
        assert deals[0].start_date == "2026-02-04"
        assert deals[0].expiry_date == "2026-02-10"

    @pytest.mark.asyncio
    async def test_fallback_block_scan(self):
        session = FakeSession({
            "article": [el("Fuji Apples\nCLUB PRICE $1.49", title="Fuji Apples")],
        })
        deals = await SafewayScraper(FakeFetcher(session), today=date(2026, 2, 14)).scrape()
        assert [(d.title, d.sale_price) for d in deals] == [("Fuji Apples", 1.49)]
