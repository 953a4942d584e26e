"""
Shared price and date heuristics for scraped grocery ad text.

Every store dialect (``platforms/<store>.py``) builds its own ordered
pattern list out of the primitives here.  First match wins; nothing is
scored across patterns.

Price parses come back as tagged results rather than magic numbers:

  Resolved(original, sale)       both prices known
  SaleOnly(sale, basis)          only the sale price; original must be
                                 estimated or taken from a sibling price
  Savings(amount)                "Save $X" with no price on the tile
  NeedsReferencePrice(...)       BOGO / percent-off marker; meaningless
                                 until a reference price is found

All functions are pure (no I/O) and never raise on unrecognised text.
They return ``None`` and the caller drops the candidate.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Union

from config.stores import ESTIMATED_MARKUP

# =====================================================================
# 1. Tagged price results
# =====================================================================


@dataclass(frozen=True)
class Resolved:
    original: float
    sale: float


@dataclass(frozen=True)
class SaleOnly:
    sale: float
    basis: str  # "multi_buy", "per_unit", "each", "club", "plain"


@dataclass(frozen=True)
class Savings:
    amount: float


@dataclass(frozen=True)
class NeedsReferencePrice:
    kind: str  # "bogo" or "percent_off"
    percent: float | None = None
    buy_qty: int = 1
    get_qty: int = 1


PriceParse = Union[Resolved, SaleOnly, Savings, NeedsReferencePrice]


# =====================================================================
# 2. Amount primitives
# =====================================================================

# "$1,299.99", "$ 5", "$.99"
_RE_DOLLAR = re.compile(r"\$\s*(?P<amt>\d[\d,]*(?:\.\d+)?|\.\d+)")

# Bare number with optional thousands separators, used after a keyword
# ("was 5.99", "save $2").
_NUM = r"(\d[\d,]*(?:\.\d+)?)"

_RE_OFF = re.compile(r"\$?\s*" + _NUM + r"\s*off\b", re.IGNORECASE)
_RE_MULTI_BUY = re.compile(r"(\d+)\s+for\s+\$?\s*" + _NUM, re.IGNORECASE)
_RE_SAVE = re.compile(r"save\s+\$?\s*" + _NUM, re.IGNORECASE)
_RE_WAS = re.compile(r"was\s+\$?\s*" + _NUM, re.IGNORECASE)
_RE_WAS_NOW = re.compile(
    r"was\s+\$?\s*" + _NUM + r"\s*now\s+\$?\s*" + _NUM, re.IGNORECASE,
)
_RE_PERCENT_OFF = re.compile(r"(\d+(?:\.\d+)?)\s*%\s*off", re.IGNORECASE)

# "Buy 1, get 1 free" / "Buy 2 Get 1 Free" / "buy 1 get 1 50% off"
_RE_BOGO_FREE = re.compile(r"buy\s+(\d+)[,.]?\s*get\s+(\d+)\s+free", re.IGNORECASE)
_RE_BOGO_PERCENT = re.compile(
    r"buy\s+(\d+)[,.]?\s*get\s+(\d+)\s+(\d+(?:\.\d+)?)\s*%\s*off", re.IGNORECASE,
)


def round_cents(value: float) -> float:
    """Round half-up to cents (``Math.round(x * 100) / 100`` semantics).

    >>> round_cents(4.375)
    4.38
    >>> round_cents(6.99 / 2)
    3.5
    """
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def parse_amount(raw: str | None) -> float | None:
    """``"1,299.99"`` → ``1299.99``; ``None`` when *raw* is not a number.

    A sentence-ending period (``"4.49."``) is dropped before parsing.
    """
    if not raw:
        return None
    cleaned = raw.replace(",", "").replace("$", "").strip().rstrip(".")
    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        return None
    if not value.is_finite():
        return None
    return float(value)


def find_amounts(text: str) -> list[float]:
    """Every ``$X`` amount in *text*, in order of appearance."""
    amounts = []
    for m in _RE_DOLLAR.finditer(text or ""):
        value = parse_amount(m.group("amt"))
        if value is not None:
            amounts.append(value)
    return amounts


def accept_prices(original: float | None, sale: float | None) -> bool:
    """Final acceptance rule shared by every dialect.

    Equal prices are rejected; that is not a discount.
    """
    if original is None or sale is None:
        return False
    return original > 0 and sale > 0 and original > sale


def estimate_original(sale: float, markup: float = ESTIMATED_MARKUP) -> float:
    """Regular price estimate when a dialect only exposes the sale price."""
    return round_cents(sale * markup)


def original_from_percent(sale: float, percent: float) -> float | None:
    """``sale / (1 - pct/100)``; ``None`` for 0% / 100%+ where it is undefined."""
    if percent <= 0 or percent >= 100:
        return None
    return round_cents(sale / (1 - percent / 100))


# =====================================================================
# 3. Pattern primitives
# =====================================================================


def two_amount_prices(text: str) -> Resolved | None:
    """≥2 amounts: highest is the original, next-highest the sale.

    >>> two_amount_prices("Was $24.99 Now $19.99")
    Resolved(original=24.99, sale=19.99)
    """
    amounts = find_amounts(text)
    if len(amounts) < 2:
        return None
    ranked = sorted(amounts, reverse=True)
    return Resolved(original=ranked[0], sale=ranked[1])


def amount_plus_off(text: str) -> Resolved | None:
    """Exactly one price plus an ``"X off"`` label: original = sale + off."""
    amounts = find_amounts(text)
    if len(amounts) != 1:
        return None
    m = _RE_OFF.search(text)
    if not m:
        return None
    off = parse_amount(m.group(1))
    if off is None:
        return None
    sale = amounts[0]
    return Resolved(original=round_cents(sale + off), sale=sale)


def was_now(text: str) -> Resolved | None:
    m = _RE_WAS_NOW.search(text or "")
    if not m:
        return None
    original = parse_amount(m.group(1))
    sale = parse_amount(m.group(2))
    if not original or not sale:
        return None
    return Resolved(original=original, sale=sale)


def was_price(text: str) -> float | None:
    """The ``"was $X"`` reference price, if any."""
    m = _RE_WAS.search(text or "")
    return parse_amount(m.group(1)) if m else None


def multi_buy(text: str) -> SaleOnly | None:
    """``"N for $Y"`` → per-unit sale ``round(Y / N, 2)``.

    >>> multi_buy("2 for $5")
    SaleOnly(sale=2.5, basis='multi_buy')
    """
    m = _RE_MULTI_BUY.search(text or "")
    if not m:
        return None
    qty = int(m.group(1))
    total = parse_amount(m.group(2))
    if qty <= 0 or not total or total <= 0:
        return None
    return SaleOnly(sale=round_cents(total / qty), basis="multi_buy")


def save_amount(text: str) -> float | None:
    """The ``"Save $X"`` amount, if any."""
    m = _RE_SAVE.search(text or "")
    if not m:
        return None
    amount = parse_amount(m.group(1))
    return amount if amount and amount > 0 else None


def percent_off(text: str) -> float | None:
    """The ``"XX% off"`` percentage, if any (BOGO phrasing excluded)."""
    if _RE_BOGO_PERCENT.search(text or ""):
        return None
    m = _RE_PERCENT_OFF.search(text or "")
    return float(m.group(1)) if m else None


def bogo(text: str) -> NeedsReferencePrice | None:
    """``"Buy N get M free"`` / ``"Buy N get M X% off"`` marker."""
    m = _RE_BOGO_PERCENT.search(text or "")
    if m:
        return NeedsReferencePrice(
            kind="bogo",
            percent=float(m.group(3)),
            buy_qty=int(m.group(1)),
            get_qty=int(m.group(2)),
        )
    m = _RE_BOGO_FREE.search(text or "")
    if m:
        return NeedsReferencePrice(
            kind="bogo", buy_qty=int(m.group(1)), get_qty=int(m.group(2)),
        )
    return None


def resolve_reference(marker: NeedsReferencePrice, reference: float | None) -> Resolved | None:
    """Turn a marker into prices using a regular *reference* price.

    BOGO free:  sale = ref * buy / (buy + get)
    BOGO X%:    sale = ref * (buy + get * (1 - X/100)) / (buy + get)
    percent:    sale = ref * (1 - X/100)

    No reference price → ``None`` (never a zero sale price).

    >>> resolve_reference(NeedsReferencePrice("bogo"), 3.99)
    Resolved(original=3.99, sale=2.0)
    """
    if reference is None or reference <= 0:
        return None
    if marker.kind == "bogo":
        total = marker.buy_qty + marker.get_qty
        if total <= 0:
            return None
        # Share of the regular price paid for each "get" item.
        get_share = 0.0 if marker.percent is None else 1 - marker.percent / 100
        sale = reference * (marker.buy_qty + marker.get_qty * get_share) / total
        return Resolved(original=reference, sale=round_cents(sale))
    if marker.kind == "percent_off" and marker.percent is not None:
        if not 0 < marker.percent < 100:
            return None
        return Resolved(original=reference, sale=round_cents(reference * (1 - marker.percent / 100)))
    return None


# =====================================================================
# 4. Units and titles
# =====================================================================

DEFAULT_UNITS = ("lb", "oz", "ct", "gal", "each", "pk")


def unit_from_text(
    text: str,
    units: tuple[str, ...] = DEFAULT_UNITS,
    *,
    after_slash: bool = False,
) -> str | None:
    """First unit keyword in *text* as a ``"/unit"`` suffix.

    >>> unit_from_text("1 lb container")
    '/lb'
    >>> unit_from_text("$2.99 / LB", ("lb", "kg"), after_slash=True)
    '/lb'
    """
    alternatives = "|".join(re.escape(u) for u in units)
    pattern = rf"/\s*({alternatives})\b" if after_slash else rf"({alternatives})"
    m = re.search(pattern, text or "", re.IGNORECASE)
    if not m:
        return None
    return f"/{m.group(1).lower()}"


def truncate(text: str, limit: int) -> str:
    return text[:limit]


# =====================================================================
# 5. Dates
# =====================================================================

# M/D/YY(YY) <sep> M/D/YY(YY) with a dash-like separator
_RE_DATE_RANGE_DASH = re.compile(
    r"(\d{1,2})/(\d{1,2})/(\d{2,4})\s*[-–—]\s*(\d{1,2})/(\d{1,2})/(\d{2,4})",
)
# ... or a word separator
_RE_DATE_RANGE_WORD = re.compile(
    r"(\d{1,2})/(\d{1,2})/(\d{2,4})\s*(?:through|thru|to)\s*(\d{1,2})/(\d{1,2})/(\d{2,4})",
    re.IGNORECASE,
)
# M/D <sep> M/D (weekly ads, no year)
_RE_SHORT_RANGE = re.compile(
    r"(\d{1,2})/(\d{1,2})\s*(?:[-–—]|through|thru|to)\s*(\d{1,2})/(\d{1,2})",
    re.IGNORECASE,
)


def expand_year(raw: str) -> str:
    """Two-digit years get a ``"20"`` prefix."""
    return f"20{raw}" if len(raw) == 2 else raw


def iso_date(year: str | int, month: str | int, day: str | int) -> str:
    """ISO string for a real calendar day; ``ValueError`` for 2/30 and friends."""
    return date(int(year), int(month), int(day)).isoformat()


def parse_date_range(text: str) -> tuple[str, str] | None:
    """Full ``M/D/YY(YY)`` range → ``(start, expiry)`` ISO strings.

    >>> parse_date_range("1/29/26 - 2/23/26")
    ('2026-01-29', '2026-02-23')
    >>> parse_date_range("Valid 1/27/26 Through 2/23/26")
    ('2026-01-27', '2026-02-23')
    """
    for pattern in (_RE_DATE_RANGE_DASH, _RE_DATE_RANGE_WORD):
        m = pattern.search(text or "")
        if m:
            sm, sd, sy, em, ed, ey = m.groups()
            try:
                return (
                    iso_date(expand_year(sy), sm, sd),
                    iso_date(expand_year(ey), em, ed),
                )
            except ValueError:
                return None
    return None


def wrap_years(
    start_month: int,
    end_month: int,
    today: date,
    *,
    roll: str,
) -> tuple[int, int]:
    """Years for a year-less ``start → end`` window seen on *today*.

    Only a December → January window rolls the year:
      roll="start_back":  start lands in the previous year (Safeway)
      roll="end_forward": expiry lands in the next year (99 Ranch)
    """
    year = today.year
    if start_month == 12 and end_month == 1:
        if roll == "start_back":
            return year - 1, year
        if roll == "end_forward":
            return year, year + 1
    return year, year


def parse_short_date_range(
    text: str,
    today: date,
    *,
    roll: str = "start_back",
) -> tuple[str, str] | None:
    """``"Valid 2/12 - 2/18"`` → ISO pair, year inferred from *today*."""
    m = _RE_SHORT_RANGE.search(text or "")
    if not m:
        return None
    sm, sd, em, ed = (int(g) for g in m.groups())
    if not (1 <= sm <= 12 and 1 <= em <= 12):
        return None
    start_year, end_year = wrap_years(sm, em, today, roll=roll)
    try:
        return iso_date(start_year, sm, sd), iso_date(end_year, em, ed)
    except ValueError:
        return None


# Python weekday numbers (Monday = 0).
WEDNESDAY = 2
THURSDAY = 3
FRIDAY = 4


def week_window(today: date, start_weekday: int) -> tuple[str, str]:
    """Current weekly-ad window: most recent *start_weekday* (today counts)
    through six days later.

    >>> week_window(date(2026, 1, 1), WEDNESDAY)
    ('2025-12-31', '2026-01-06')
    """
    start = today - timedelta(days=(today.weekday() - start_weekday) % 7)
    end = start + timedelta(days=6)
    return start.isoformat(), end.isoformat()
