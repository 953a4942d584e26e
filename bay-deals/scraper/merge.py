"""
Merge freshly scraped deals into the persisted catalog (``deals.json``).

Stores present in the new batch are replaced wholesale; other stores keep
their unexpired deals.  Ids are re-derived per store on every merge, so
they are positional, not durable keys.
"""

from __future__ import annotations

import dataclasses
import json
import logging
from datetime import date
from pathlib import Path
from typing import Callable

from models import Deal

logger = logging.getLogger(__name__)


class CatalogError(Exception):
    """The persisted catalog exists but cannot be read."""


class CatalogFile:
    def __init__(self, path: Path | str):
        self.path = Path(path)

    def read(self) -> list[Deal]:
        if not self.path.exists():
            logger.info("Catalog %s not found, starting empty", self.path)
            return []
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise CatalogError(f"cannot read catalog {self.path}: {exc}") from exc
        if not isinstance(data, list):
            raise CatalogError(f"catalog {self.path} is not a JSON array")
        try:
            return [Deal.from_dict(item) for item in data]
        except (TypeError, AttributeError) as exc:
            raise CatalogError(f"catalog {self.path} has a malformed deal: {exc}") from exc

    def write(self, deals: list[Deal]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps([d.to_dict() for d in deals], indent=2, ensure_ascii=False) + "\n",
            encoding="utf-8",
        )


def reassign_ids(deals: list[Deal]) -> list[Deal]:
    counters: dict[str, int] = {}
    out = []
    for deal in deals:
        counters[deal.store_id] = counters.get(deal.store_id, 0) + 1
        out.append(dataclasses.replace(deal, id=f"{deal.store_id}-{counters[deal.store_id]:03d}"))
    return out


def merge_deals(
    new_deals: list[Deal],
    read_catalog: Callable[[], list[Deal]],
    write_catalog: Callable[[list[Deal]], None],
    *,
    today: date | None = None,
) -> list[Deal]:
    existing = read_catalog()
    today_iso = (today or date.today()).isoformat()

    updated_stores = {d.store_id for d in new_deals}
    kept = [
        d for d in existing
        if d.store_id not in updated_stores and d.expiry_date >= today_iso
    ]

    merged = reassign_ids(kept + list(new_deals))
    write_catalog(merged)
    logger.info(
        "Merged %d deals (%d kept + %d new)",
        len(merged), len(kept), len(new_deals),
    )
    return merged
