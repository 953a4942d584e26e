"""
English → Simplified Chinese translation of deal candidates.

One batched backend call per ``translate_batch`` covers every uncached
candidate.  Whenever translation cannot happen (CI, no backend, backend
error, wrong item count) the English text is copied into the Chinese
fields instead, so the pipeline never stalls on this step.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from cache_store import JsonFileStore, KeyValueStore
from config.stores import CACHE_DIR, is_ci
from llm_cli import ClaudeCliBackend
from models import RawDealCandidate, TranslatedDealCandidate

logger = logging.getLogger(__name__)


class TranslationBackend(Protocol):
    def is_available(self) -> bool: ...

    async def translate(self, items: list[dict[str, str]]) -> list[Any]: ...


def cache_key(candidate: RawDealCandidate) -> str:
    return "||".join([
        candidate.title,
        candidate.description,
        candidate.unit or "",
        candidate.details or "",
    ])


def fallback_translate(candidate: RawDealCandidate) -> TranslatedDealCandidate:
    return TranslatedDealCandidate.from_candidate(
        candidate,
        title_zh=candidate.title,
        description_zh=candidate.description,
        unit_zh=candidate.unit,
        details_zh=candidate.details,
    )


def _apply(candidate: RawDealCandidate, fields: dict[str, Any]) -> TranslatedDealCandidate:
    return TranslatedDealCandidate.from_candidate(
        candidate,
        title_zh=fields.get("titleZh") or candidate.title,
        description_zh=fields.get("descriptionZh") or candidate.description,
        unit_zh=fields.get("unitZh") or candidate.unit,
        details_zh=fields.get("detailsZh") or candidate.details,
    )


class Translator:
    def __init__(
        self,
        backend: TranslationBackend | None = None,
        cache: KeyValueStore | None = None,
        *,
        ci: bool | None = None,
    ):
        self.backend = backend or ClaudeCliBackend()
        self.cache = cache if cache is not None else JsonFileStore(CACHE_DIR / "translations.json")
        self.ci = is_ci() if ci is None else ci

    async def translate_batch(
        self, candidates: list[RawDealCandidate],
    ) -> list[TranslatedDealCandidate]:
        if not candidates:
            return []

        if self.ci:
            logger.info("Translation: skipping in CI environment")
            return [fallback_translate(c) for c in candidates]

        if not self.backend.is_available():
            logger.info("Translation: backend not found, using fallback")
            return [fallback_translate(c) for c in candidates]

        results: list[TranslatedDealCandidate | None] = [None] * len(candidates)
        pending: list[tuple[int, RawDealCandidate]] = []

        for i, candidate in enumerate(candidates):
            cached = self.cache.get(cache_key(candidate))
            if isinstance(cached, dict):
                results[i] = _apply(candidate, cached)
            else:
                pending.append((i, candidate))

        if len(pending) < len(candidates):
            logger.info(
                "Translation: %d cached, %d to translate",
                len(candidates) - len(pending), len(pending),
            )

        if pending:
            translated = await self._translate_pending([c for _, c in pending])
            for (i, _), item in zip(pending, translated):
                results[i] = item

        return results  # type: ignore[return-value]

    async def _translate_pending(
        self, pending: list[RawDealCandidate],
    ) -> list[TranslatedDealCandidate]:
        items = [
            {
                "title": c.title,
                "description": c.description,
                "unit": c.unit or "",
                "details": c.details or "",
            }
            for c in pending
        ]
        try:
            response = await self.backend.translate(items)
        except Exception as exc:
            logger.warning("Translation: backend error: %s", exc)
            return [fallback_translate(c) for c in pending]

        if len(response) != len(pending):
            logger.warning(
                "Translation: response count mismatch (%d vs %d), using fallback",
                len(response), len(pending),
            )
            return [fallback_translate(c) for c in pending]

        out: list[TranslatedDealCandidate] = []
        entries: dict[str, dict[str, Any]] = {}
        for candidate, raw in zip(pending, response):
            fields = raw if isinstance(raw, dict) else {}
            translated = _apply(candidate, fields)
            out.append(translated)
            entries[cache_key(candidate)] = {
                "titleZh": translated.title_zh,
                "descriptionZh": translated.description_zh,
                "unitZh": translated.unit_zh,
                "detailsZh": translated.details_zh,
            }

        self.cache.update(entries)
        logger.info("Translation: %d deals translated", len(out))
        return out
