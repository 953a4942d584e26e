"""
Validation gate between store scrapers and translation.

Invalid candidates are reported as data, never raised: the pipeline keeps
the valid subset and logs the rest.
"""

from __future__ import annotations

import logging
import math
import re
from typing import Any, Iterable

from models import RawDealCandidate, ValidationResult

logger = logging.getLogger(__name__)

_RE_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Errors printed in full before the "... and N more" line.
_LOGGED_ERRORS = 5


def _is_price(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and value > 0


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def deal_issues(candidate: RawDealCandidate) -> list[str]:
    """Every problem with *candidate*; empty when it is valid."""
    issues: list[str] = []

    title = candidate.title
    if not isinstance(title, str) or len(title.strip()) < 3:
        issues.append("title is missing or too short")

    original = candidate.original_price
    sale = candidate.sale_price
    if not _is_price(original):
        issues.append(f"invalid originalPrice: {original}")
    if not _is_price(sale):
        issues.append(f"invalid salePrice: {sale}")
    if _is_number(original) and _is_number(sale) and original < sale:
        issues.append(f"originalPrice ({original}) < salePrice ({sale})")

    start = candidate.start_date
    expiry = candidate.expiry_date
    if not isinstance(start, str) or not _RE_ISO_DATE.match(start):
        issues.append(f"invalid startDate: {start}")
    if not isinstance(expiry, str) or not _RE_ISO_DATE.match(expiry):
        issues.append(f"invalid expiryDate: {expiry}")
    if isinstance(start, str) and isinstance(expiry, str) and start and expiry and start >= expiry:
        issues.append(f"expiryDate ({expiry}) must be after startDate ({start})")

    return issues


def validate(candidates: Iterable[RawDealCandidate]) -> ValidationResult:
    result = ValidationResult()

    for candidate in candidates:
        issues = deal_issues(candidate)
        if not issues:
            result.valid.append(candidate)
            continue
        label = candidate.title[:50] if isinstance(candidate.title, str) else ""
        result.errors.append(f"[{label or 'unknown'}] {'; '.join(issues)}")

    if result.errors:
        logger.info(
            "Validation: %d valid, %d invalid",
            len(result.valid), len(result.errors),
        )
        for err in result.errors[:_LOGGED_ERRORS]:
            logger.info("  - %s", err)
        if len(result.errors) > _LOGGED_ERRORS:
            logger.info("  ... and %d more", len(result.errors) - _LOGGED_ERRORS)

    return result
