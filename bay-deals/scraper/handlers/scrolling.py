"""
Scroll-driven lazy loading.

Weekly-ad SPAs only render tiles (and swap in real ``img`` sources) once
they enter the viewport, so every store scrolls in fixed steps before
extracting.
"""

import asyncio
import logging

from playwright.async_api import Page

logger = logging.getLogger(__name__)

# Absolute offset: step i lands at (i + 1) * step_px.
_JS_SCROLL_TO = "(y) => window.scrollTo(0, y)"

# Relative offset: step i lands at fraction * document height.
_JS_SCROLL_FRACTION = "(f) => window.scrollTo(0, document.body.scrollHeight * f)"


async def scroll_lazy_content(
    page: Page,
    *,
    steps: int,
    step_px: int | None = None,
    pause_sec: float = 1.0,
) -> None:
    """Scroll *steps* times, pausing *pause_sec* after each step.

    With ``step_px=None`` the page is walked in equal fractions of its
    height, ending at the bottom.
    """
    for i in range(steps):
        try:
            if step_px is None:
                await page.evaluate(_JS_SCROLL_FRACTION, (i + 1) / steps)
            else:
                await page.evaluate(_JS_SCROLL_TO, (i + 1) * step_px)
        except Exception:
            logger.debug("Scroll step %d failed", i, exc_info=True)
        await asyncio.sleep(pause_sec)
