"""
Claude CLI backend shared by the translation and flyer-OCR adapters.

The CLI is invoked as ``claude -p --output-format json`` with the prompt on
stdin (no shell escaping of embedded JSON).  Its stdout is usually a
``{"result": "..."}`` envelope whose result string may itself be wrapped in a
markdown code fence; ``parse_json_array_response`` unwraps all of these.

Both adapters only depend on the small ``is_available()`` /
``translate()`` / ``extract()`` surface, so tests swap in a fake backend.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
import shutil
from typing import Any

from config.stores import OCR_TIMEOUT_SEC, TRANSLATE_BIN, TRANSLATE_TIMEOUT_SEC

logger = logging.getLogger(__name__)

_RE_FENCE_OPEN = re.compile(r"^```(?:json)?\s*\n?", re.IGNORECASE)
_RE_FENCE_CLOSE = re.compile(r"\n?```\s*$")

TRANSLATE_PROMPT = """Translate the following grocery deal texts from English to Simplified Chinese.
Return a JSON array with the same number of elements. Each element should have: titleZh, descriptionZh, unitZh, detailsZh.
Use natural Chinese grocery terms (e.g., "ribeye steak" → "肋眼牛排", "/lb" → "/磅", "organic" → "有机").
Keep brand names in English. If text is empty, return empty string.

"""

OCR_PROMPT = """You are analyzing a grocery store promotional flyer image.
Extract EVERY product deal visible in the image. For each deal, provide:
- title: the product name in English
- originalPrice: the original/regular price (number only, no $)
- salePrice: the sale/discounted price (number only, no $)
- unit: the unit of measurement (e.g., "/lb", "/ea", "/pkg", "each", or "" if not specified)
- categoryHints: array of category keywords (e.g., ["produce"], ["meat", "seafood"], ["dairy"])

If the original price is not shown, estimate it as salePrice * 1.3 (rounded to 2 decimal places).
If prices show a range like "2 for $5", calculate the per-unit price.

Return ONLY a JSON array of objects. No other text.
Example: [{"title":"Napa Cabbage","originalPrice":1.29,"salePrice":0.69,"unit":"/lb","categoryHints":["produce"]}]

Here is the flyer image as base64:
"""


def strip_markdown_fencing(text: str) -> str:
    """Remove a leading ```` ```json ```` and trailing ```` ``` ```` fence.

    >>> strip_markdown_fencing('```json\\n[1]\\n```')
    '[1]'
    """
    return _RE_FENCE_CLOSE.sub("", _RE_FENCE_OPEN.sub("", text.strip())).strip()


def _loads_array(text: str) -> list | None:
    try:
        parsed = json.loads(text)
    except ValueError:
        return None
    return parsed if isinstance(parsed, list) else None


def parse_json_array_response(stdout: str) -> list[Any]:
    """Pull the JSON array out of CLI stdout; ``[]`` when there is none.

    Tried in order: bare array, ``{"result": ...}`` envelope (fenced or
    not), fenced stdout.
    """
    try:
        direct = json.loads(stdout)
    except ValueError:
        direct = None

    if isinstance(direct, list):
        return direct

    if isinstance(direct, dict) and "result" in direct:
        result = direct["result"]
        if isinstance(result, list):
            return result
        inner = _loads_array(strip_markdown_fencing(str(result)))
        if inner is not None:
            return inner

    return _loads_array(strip_markdown_fencing(stdout)) or []


class ClaudeCliBackend:
    """Runs the Claude CLI as an asyncio subprocess.

    Implements both the translation backend (``translate``) and the OCR
    backend (``extract``).  Non-zero exit raises ``RuntimeError``; a run
    past its timeout is killed and raises ``asyncio.TimeoutError``.
    """

    def __init__(
        self,
        binary: str = TRANSLATE_BIN,
        *,
        translate_timeout: float = TRANSLATE_TIMEOUT_SEC,
        ocr_timeout: float = OCR_TIMEOUT_SEC,
    ):
        self.binary = binary
        self.translate_timeout = translate_timeout
        self.ocr_timeout = ocr_timeout

    def is_available(self) -> bool:
        return shutil.which(self.binary) is not None

    async def run(self, prompt: str, *, timeout: float) -> str:
        proc = await asyncio.create_subprocess_exec(
            self.binary, "-p", "--output-format", "json",
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await asyncio.wait_for(
                proc.communicate(prompt.encode("utf-8")),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            logger.warning("%s timed out after %.0fs", self.binary, timeout)
            raise

        if proc.returncode != 0:
            raise RuntimeError(
                f"{self.binary} exited with code {proc.returncode}: "
                f"{stderr.decode('utf-8', errors='replace').strip()}"
            )
        return stdout.decode("utf-8", errors="replace")

    async def translate(self, items: list[dict[str, str]]) -> list[Any]:
        payload = json.dumps(items, ensure_ascii=False, separators=(",", ":"))
        stdout = await self.run(TRANSLATE_PROMPT + payload, timeout=self.translate_timeout)
        return parse_json_array_response(stdout)

    async def extract(self, image_b64: str) -> list[Any]:
        prompt = f"{OCR_PROMPT}data:image/jpeg;base64,{image_b64}"
        stdout = await self.run(prompt, timeout=self.ocr_timeout)
        return parse_json_array_response(stdout)
