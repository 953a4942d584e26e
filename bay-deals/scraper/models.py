"""
Record types flowing through the deal pipeline.

  RawDealCandidate        produced by a store scraper, never persisted
  TranslatedDealCandidate candidate + Chinese fields (translator output)
  Deal                    canonical record written to ``deals.json``
  OcrDeal                 one item read off a flyer image

Python attributes are snake_case; ``to_dict()`` / ``from_dict()`` speak the
camelCase JSON the frontend consumes.  Optional keys whose value is ``None``
are omitted on output.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _to_json_dict(obj: Any) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for f in fields(obj):
        value = getattr(obj, f.name)
        if value is None:
            continue
        if isinstance(value, list):
            value = list(value)
        out[_camel(f.name)] = value
    return out


def _from_json_dict(cls: type, data: dict[str, Any]) -> Any:
    kwargs = {}
    for f in fields(cls):
        key = _camel(f.name)
        if key in data:
            kwargs[f.name] = data[key]
    return cls(**kwargs)


@dataclass
class RawDealCandidate:
    title: str
    description: str
    original_price: float
    sale_price: float
    start_date: str
    expiry_date: str
    unit: str | None = None
    category_hints: list[str] = field(default_factory=list)
    details: str | None = None
    image_url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return _to_json_dict(self)


@dataclass
class TranslatedDealCandidate(RawDealCandidate):
    title_zh: str = ""
    description_zh: str = ""
    unit_zh: str | None = None
    details_zh: str | None = None

    @classmethod
    def from_candidate(
        cls,
        candidate: RawDealCandidate,
        *,
        title_zh: str,
        description_zh: str,
        unit_zh: str | None,
        details_zh: str | None,
    ) -> "TranslatedDealCandidate":
        base = {f.name: getattr(candidate, f.name) for f in fields(RawDealCandidate)}
        base["category_hints"] = list(candidate.category_hints)
        return cls(
            **base,
            title_zh=title_zh,
            description_zh=description_zh,
            unit_zh=unit_zh,
            details_zh=details_zh,
        )


@dataclass
class Deal:
    id: str
    store_id: str
    category_id: str
    title: str
    title_zh: str
    description: str
    description_zh: str
    original_price: float
    sale_price: float
    start_date: str
    expiry_date: str
    is_hot: bool
    locations: list[str]
    unit: str | None = None
    unit_zh: str | None = None
    details: str | None = None
    details_zh: str | None = None
    image_url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return _to_json_dict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Deal":
        return _from_json_dict(cls, data)


@dataclass
class OcrDeal:
    title: str
    original_price: float
    sale_price: float
    unit: str = ""
    category_hints: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return _to_json_dict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OcrDeal":
        """Coerce one backend item; raises ``ValueError``/``TypeError`` on junk."""
        title = str(data.get("title") or "").strip()
        if not title:
            raise ValueError("OCR item has no title")
        hints = data.get("categoryHints") or []
        if not isinstance(hints, list):
            hints = [hints]
        return cls(
            title=title,
            original_price=float(data["originalPrice"]),
            sale_price=float(data["salePrice"]),
            unit=str(data.get("unit") or ""),
            category_hints=[str(h) for h in hints],
        )


@dataclass
class ValidationResult:
    valid: list[RawDealCandidate] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


@dataclass
class ScrapeReport:
    """Per-store outcome reported by the driver."""

    store_id: str
    count: int = 0
    error: str | None = None
