"""
Playwright implementation of the ``Fetcher`` / ``PageSession`` interfaces.

Stealth stack (applied to every store context):
  1. Real Chrome binary via ``channel="chrome"``, falling back to bundled
     Chromium when Chrome is not installed.
  2. playwright-stealth when installed, else a small init script.
  3. Analytics domain blocking.
  4. Randomized viewport + User-Agent per context.

One browser is shared across a driver run; each ``open()`` gets a fresh
context and page which are closed on exit.
"""

from __future__ import annotations

import asyncio
import logging
import random
from contextlib import asynccontextmanager
from typing import AsyncIterator

from playwright.async_api import (
    async_playwright,
    Browser,
    Page,
    Playwright,
    TimeoutError as PlaywrightTimeout,
)

from config.stores import (
    BROWSER_ARGS, BROWSER_CHANNEL, GOTO_TIMEOUT_MS, SELECTOR_TIMEOUT_MS,
    STEALTH_INIT_SCRIPT, get_user_agent, get_viewport,
)
from handlers import dismiss_popups, scroll_lazy_content
from platforms.base import FetchedElement

# Try to import playwright-stealth (preferred).
# Falls back to the init script if not installed.
try:
    from playwright_stealth import Stealth
    _STEALTH = Stealth()
    _HAS_STEALTH_PKG = True
except ImportError:
    _HAS_STEALTH_PKG = False

logger = logging.getLogger(__name__)

_BLOCKED_ANALYTICS_PATTERNS = [
    "*google-analytics.com*",
    "*googletagmanager.com*",
    "*facebook.net*",
    "*doubleclick.net*",
    "*hotjar.com*",
    "*segment.io*",
    "*amplitude.com*",
    "*tiktok.com*",
    "*snap.com*",
]

# Snapshot every element matching a selector.  Attributes fall back to
# the DOM property of the same name (e.g. ``naturalWidth`` on images).
_JS_SNAPSHOT = """
(els, opts) => {
    const out = [];
    const limit = opts.limit ?? els.length;
    for (const el of els.slice(0, limit)) {
        const attributes = {};
        for (const name of opts.attributes) {
            let value = el.getAttribute(name);
            if (value === null && el[name] !== undefined && el[name] !== null
                    && typeof el[name] !== 'object' && typeof el[name] !== 'function') {
                value = String(el[name]);
            }
            if (value !== null) attributes[name] = value;
        }
        const fields = {};
        for (const [name, subSelectors] of Object.entries(opts.fields)) {
            fields[name] = '';
            for (const sub of subSelectors) {
                // "img@src" reads an attribute instead of text
                const m = sub.match(/^(.*)@([\\w-]+)$/);
                const found = el.querySelector(m ? m[1] : sub);
                let value = '';
                if (found && m) {
                    value = (found.getAttribute(m[2]) || found[m[2]] || '').toString().trim();
                } else if (found) {
                    value = (found.innerText || found.textContent || '').trim();
                }
                if (value) { fields[name] = value; break; }
            }
        }
        out.push({
            text: (el.innerText || el.textContent || '').trim(),
            attributes,
            fields,
        });
    }
    return out;
}
"""


async def launch_stealth_browser(
    pw: Playwright,
    *,
    extra_args: list[str] | None = None,
) -> Browser:
    """Launch headless real Chrome, or bundled Chromium when unavailable."""
    args = BROWSER_ARGS + (extra_args or [])

    try:
        browser = await pw.chromium.launch(
            headless=True,
            channel=BROWSER_CHANNEL,
            args=args,
        )
        logger.info("Browser launched: channel=%s", BROWSER_CHANNEL)
        return browser
    except Exception as exc:
        logger.warning(
            "Chrome channel %r unavailable (%s), falling back to bundled "
            "Chromium.  Run 'playwright install chrome' for best results.",
            BROWSER_CHANNEL, exc,
        )

    browser = await pw.chromium.launch(headless=True, args=args)
    logger.info("Browser launched: bundled Chromium (fallback)")
    return browser


class PlaywrightPageSession:
    """``PageSession`` over one live Playwright page."""

    def __init__(self, page: Page):
        self.page = page

    async def query(
        self,
        selectors: list[str],
        *,
        min_count: int = 1,
        fields: dict[str, list[str]] | None = None,
        attributes: list[str] | None = None,
        limit: int | None = None,
    ) -> tuple[str | None, list[FetchedElement]]:
        for selector in selectors:
            try:
                count = await self.page.locator(selector).count()
            except Exception:
                logger.debug("Selector %r failed", selector, exc_info=True)
                continue
            if count < min_count:
                continue
            raw = await self.page.eval_on_selector_all(
                selector,
                _JS_SNAPSHOT,
                {"fields": fields or {}, "attributes": attributes or [], "limit": limit},
            )
            logger.info("Selector %r matched %d element(s)", selector, count)
            return selector, [
                FetchedElement(
                    text=item.get("text") or "",
                    attributes=item.get("attributes") or {},
                    fields=item.get("fields") or {},
                )
                for item in raw
            ]
        return None, []

    async def content(self) -> str:
        return await self.page.content()

    async def scroll(
        self, steps: int, step_px: int | None = None, pause_sec: float = 1.0,
    ) -> None:
        await scroll_lazy_content(self.page, steps=steps, step_px=step_px, pause_sec=pause_sec)


class PlaywrightFetcher:
    """``Fetcher`` backed by a shared stealth browser.

    Usage::

        async with PlaywrightFetcher.launch() as fetcher:
            async with fetcher.open(url, wait_until="networkidle") as session:
                _, tiles = await session.query([".product-card"])
    """

    def __init__(self, browser: Browser):
        self.browser = browser

    @classmethod
    @asynccontextmanager
    async def launch(cls) -> AsyncIterator["PlaywrightFetcher"]:
        async with async_playwright() as pw:
            browser = await launch_stealth_browser(pw)
            try:
                yield cls(browser)
            finally:
                await browser.close()

    @asynccontextmanager
    async def open(
        self,
        url: str,
        *,
        wait_until: str = "domcontentloaded",
        settle_sec: float = 3.0,
    ) -> AsyncIterator[PlaywrightPageSession]:
        context = await self.browser.new_context(
            viewport=get_viewport(),
            user_agent=get_user_agent(),
            locale="en-US",
            timezone_id="America/Los_Angeles",
        )
        page = None
        try:
            if _HAS_STEALTH_PKG:
                await _STEALTH.apply_stealth_async(context)
                stealth_mode = "playwright-stealth"
            else:
                await context.add_init_script(STEALTH_INIT_SCRIPT)
                stealth_mode = "legacy-js"

            page = await context.new_page()

            async def _block_route(route):
                await route.abort()

            for pattern in _BLOCKED_ANALYTICS_PATTERNS:
                await page.route(pattern, _block_route)

            # Human-like pause before the first request.
            await asyncio.sleep(1 + random.random() * 2)

            logger.info("Navigating to %s (wait_until=%s, stealth=%s)", url, wait_until, stealth_mode)
            await page.goto(url, wait_until=wait_until, timeout=GOTO_TIMEOUT_MS)
            try:
                await page.wait_for_selector("body", timeout=SELECTOR_TIMEOUT_MS)
            except PlaywrightTimeout:
                logger.warning("No <body> after %dms on %s", SELECTOR_TIMEOUT_MS, url)

            # SPA render time.
            await asyncio.sleep(settle_sec + random.random() * 2)
            await dismiss_popups(page)

            yield PlaywrightPageSession(page)
        finally:
            for obj in (page, context):
                if obj is None:
                    continue
                try:
                    await obj.close()
                except Exception:
                    logger.debug("Close failed", exc_info=True)
