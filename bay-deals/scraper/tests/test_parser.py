"""Tests for parser.py: shared price, unit and date primitives."""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from parser import (
    FRIDAY,
    THURSDAY,
    WEDNESDAY,
    NeedsReferencePrice,
    Resolved,
    SaleOnly,
    accept_prices,
    amount_plus_off,
    bogo,
    estimate_original,
    find_amounts,
    iso_date,
    multi_buy,
    original_from_percent,
    parse_amount,
    parse_date_range,
    parse_short_date_range,
    percent_off,
    resolve_reference,
    round_cents,
    save_amount,
    two_amount_prices,
    unit_from_text,
    was_now,
    was_price,
    week_window,
    wrap_years,
)


# =====================================================================
# Amounts
# =====================================================================


class TestAmounts:

    @pytest.mark.parametrize("value,expected", [
        (4.375, 4.38),
        (1.995, 2.0),
        (6.99 / 2, 3.5),
        (2.5, 2.5),
        (0.004, 0.0),
    ])
    def test_round_cents_half_up(self, value, expected):
        assert round_cents(value) == expected

    def test_parse_amount_thousands(self):
        assert parse_amount("1,299.99") == 1299.99

    def test_parse_amount_sentence_period(self):
        assert parse_amount("4.49.") == 4.49
        assert parse_amount("$12.") == 12.0

    def test_parse_amount_invalid(self):
        assert parse_amount("") is None
        assert parse_amount(None) is None
        assert parse_amount("1.2.3") is None
        assert parse_amount("abc") is None
        assert parse_amount(".") is None

    def test_find_amounts_in_order(self):
        assert find_amounts("Was $24.99 Now $19.99") == [24.99, 19.99]
        assert find_amounts("$1,299.99 and $ 5") == [1299.99, 5.0]
        assert find_amounts("no prices here") == []

    def test_accept_prices(self):
        assert accept_prices(5.0, 4.0)
        assert not accept_prices(4.0, 4.0)
        assert not accept_prices(3.0, 4.0)
        assert not accept_prices(5.0, 0.0)
        assert not accept_prices(None, 4.0)

    def test_estimate_original(self):
        assert estimate_original(3.99) == 5.19
        assert estimate_original(10.0) == 13.0

    def test_original_from_percent(self):
        assert original_from_percent(3.99, 20) == 4.99
        assert original_from_percent(5.0, 50) == 10.0
        assert original_from_percent(5.0, 0) is None
        assert original_from_percent(5.0, 100) is None


# =====================================================================
# Pattern primitives
# =====================================================================


class TestPricePatterns:

    def test_two_amounts_highest_is_original(self):
        assert two_amount_prices("Was $24.99 Now $19.99") == Resolved(24.99, 19.99)
        assert two_amount_prices("$19.99 $24.99") == Resolved(24.99, 19.99)

    def test_two_amounts_needs_two(self):
        assert two_amount_prices("$5.99") is None

    def test_amount_plus_off(self):
        assert amount_plus_off("$12.99 after $3 OFF") is None  # two $ amounts
        assert amount_plus_off("$12.99 after 3.00 off") == Resolved(15.99, 12.99)

    def test_was_now(self):
        assert was_now("was $5.99 now $3.99") == Resolved(5.99, 3.99)
        assert was_now("now $3.99") is None

    def test_was_price(self):
        assert was_price("was $4.99") == 4.99
        assert was_price("Buy 1 get 1 free") is None

    def test_multi_buy(self):
        assert multi_buy("2 for $5") == SaleOnly(2.5, "multi_buy")
        assert multi_buy("3 for $10") == SaleOnly(3.33, "multi_buy")
        assert multi_buy("0 for $5") is None

    def test_save_amount(self):
        assert save_amount("Save $2.00") == 2.0
        assert save_amount("SAVE 1.50 each") == 1.5
        assert save_amount("Save big") is None

    def test_percent_off(self):
        assert percent_off("20% off") == 20.0
        assert percent_off("Buy 1 get 1 50% off") is None

    def test_bogo_free(self):
        assert bogo("Buy 1, get 1 free") == NeedsReferencePrice("bogo", None, 1, 1)
        assert bogo("Buy 2 Get 1 Free") == NeedsReferencePrice("bogo", None, 2, 1)

    def test_bogo_percent(self):
        assert bogo("Buy 1, get 1 25% off") == NeedsReferencePrice("bogo", 25.0, 1, 1)

    def test_bogo_absent(self):
        assert bogo("2 for $5") is None


class TestResolveReference:

    def test_bogo_free_halves(self):
        assert resolve_reference(NeedsReferencePrice("bogo"), 6.99) == Resolved(6.99, 3.5)

    def test_bogo_percent(self):
        marker = NeedsReferencePrice("bogo", percent=25.0)
        assert resolve_reference(marker, 4.0) == Resolved(4.0, 3.5)
        assert resolve_reference(marker, 5.0) == Resolved(5.0, 4.38)

    def test_buy_two_get_one_free(self):
        marker = NeedsReferencePrice("bogo", buy_qty=2, get_qty=1)
        assert resolve_reference(marker, 3.0) == Resolved(3.0, 2.0)

    def test_percent_off(self):
        marker = NeedsReferencePrice("percent_off", percent=20.0)
        assert resolve_reference(marker, 5.0) == Resolved(5.0, 4.0)

    def test_no_reference_never_zero_sale(self):
        assert resolve_reference(NeedsReferencePrice("bogo"), None) is None
        assert resolve_reference(NeedsReferencePrice("bogo"), 0) is None


# =====================================================================
# Units
# =====================================================================


class TestUnits:

    def test_substring_match(self):
        assert unit_from_text("1 lb container") == "/lb"
        assert unit_from_text("16 OZ") == "/oz"
        assert unit_from_text("") is None

    def test_after_slash_only(self):
        units = ("lb", "oz", "ea", "pk", "ct", "kg")
        assert unit_from_text("$2.99/lb", units, after_slash=True) == "/lb"
        assert unit_from_text("$2.99 / KG", units, after_slash=True) == "/kg"
        assert unit_from_text("3 lb bag $5", units, after_slash=True) is None
        assert unit_from_text("$1/each", units, after_slash=True) is None


# =====================================================================
# Dates
# =====================================================================


class TestDateRanges:

    def test_full_range_two_digit_years(self):
        assert parse_date_range("Valid 1/29/26 - 2/23/26") == ("2026-01-29", "2026-02-23")

    def test_full_range_four_digit_years(self):
        assert parse_date_range("12/30/2025 – 1/5/2026") == ("2025-12-30", "2026-01-05")

    def test_full_range_through(self):
        assert parse_date_range("1/27/26 through 2/23/26") == ("2026-01-27", "2026-02-23")

    def test_no_range(self):
        assert parse_date_range("While supplies last") is None

    def test_short_range_same_year(self):
        today = date(2026, 2, 14)
        assert parse_short_date_range("Valid 2/12 - 2/18", today) == ("2026-02-12", "2026-02-18")

    def test_short_range_december_rolls_start_back(self):
        today = date(2026, 1, 2)
        assert parse_short_date_range("12/31 - 1/6", today) == ("2025-12-31", "2026-01-06")

    def test_short_range_invalid_month(self):
        assert parse_short_date_range("13/1 - 14/2", date(2026, 1, 1)) is None

    @pytest.mark.parametrize("text", ["Valid 2/30/26 - 3/5/26", "1/29/26 - 2/29/26", "4/31/2026 thru 5/6/2026"])
    def test_full_range_impossible_day(self, text):
        assert parse_date_range(text) is None

    def test_short_range_impossible_day(self):
        assert parse_short_date_range("Valid 2/30 - 3/5", date(2026, 2, 14)) is None

    def test_leap_day_accepted(self):
        assert parse_date_range("2/29/28 - 3/6/28") == ("2028-02-29", "2028-03-06")

    def test_iso_date_rejects_impossible_day(self):
        assert iso_date(2026, 2, 28) == "2026-02-28"
        with pytest.raises(ValueError):
            iso_date(2026, 2, 30)


class TestWrapYears:

    def test_only_december_to_january_rolls(self):
        today = date(2026, 6, 1)
        assert wrap_years(11, 2, today, roll="start_back") == (2026, 2026)
        assert wrap_years(12, 1, today, roll="start_back") == (2025, 2026)
        assert wrap_years(12, 1, today, roll="end_forward") == (2026, 2027)


class TestWeekWindow:

    @pytest.mark.parametrize("day,expected_start", [
        (date(2026, 2, 9), "2026-02-04"),   # Monday
        (date(2026, 2, 10), "2026-02-04"),  # Tuesday
        (date(2026, 2, 11), "2026-02-11"),  # Wednesday
        (date(2026, 2, 12), "2026-02-11"),  # Thursday
        (date(2026, 2, 13), "2026-02-11"),  # Friday
        (date(2026, 2, 14), "2026-02-11"),  # Saturday
        (date(2026, 2, 15), "2026-02-11"),  # Sunday
    ])
    def test_wednesday_start_for_every_weekday(self, day, expected_start):
        start, expiry = week_window(day, WEDNESDAY)
        assert start == expected_start
        assert date.fromisoformat(expiry) - date.fromisoformat(start) == timedelta(days=6)

    def test_thursday_start(self):
        assert week_window(date(2026, 2, 11), THURSDAY) == ("2026-02-05", "2026-02-11")

    def test_friday_start(self):
        assert week_window(date(2026, 2, 13), FRIDAY) == ("2026-02-13", "2026-02-19")

    def test_across_year_boundary(self):
        assert week_window(date(2026, 1, 1), WEDNESDAY) == ("2025-12-31", "2026-01-06")
        assert week_window(date(2026, 1, 1), FRIDAY) == ("2025-12-26", "2026-01-01")
