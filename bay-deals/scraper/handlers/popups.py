"""
Cookie-banner and modal dismissal for grocery weekly-ad pages.

Safeway and Sprouts open a OneTrust consent banner plus a "choose your
store" or newsletter modal on first visit; H Mart shows a region picker.
Those overlays sit on top of the ad tiles and intercept scroll events, so
they are clicked away (or removed via JS) before extraction.

Everything here is best effort: failures are logged at debug level and
never abort the scrape.
"""

import logging

from playwright.async_api import Page, TimeoutError as PlaywrightTimeout

logger = logging.getLogger(__name__)

# Consent / close buttons, most specific first.
DISMISS_SELECTORS = [
    "#onetrust-accept-btn-handler",
    "button:has-text('Accept All Cookies')",
    "button:has-text('Accept All')",
    "button:has-text('Accept')",
    "button:has-text('No Thanks')",
    "button:has-text('No, thanks')",
    "button:has-text('Maybe Later')",
    "button[aria-label='Close']",
    "button[aria-label='close']",
    "[role='dialog'] button:has-text('Close')",
]
DISMISS_TIMEOUT_MS = 2_000

# Remove fixed overlays that survive the clicks.  Only fixed/sticky
# elements are touched so in-flow ad tiles are never removed.
_JS_REMOVE_OVERLAYS = """
() => {
    const candidates = document.querySelectorAll(
        '#onetrust-consent-sdk, #onetrust-banner-sdk, '
        + '[class*="cookie"], [id*="cookie"], [class*="consent"], '
        + '[class*="modal"], [class*="overlay"], [class*="backdrop"], '
        + '[class*="newsletter"], [class*="popup"]'
    );
    let removed = 0;
    for (const el of candidates) {
        const style = window.getComputedStyle(el);
        if (style.position === 'fixed' || style.position === 'sticky') {
            el.remove();
            removed++;
        }
    }
    document.body.style.overflow = 'auto';
    document.documentElement.style.overflow = 'auto';
    return removed;
}
"""


async def dismiss_popups(page: Page) -> int:
    """Click away consent banners and modals; returns how many were handled."""
    handled = 0
    for selector in DISMISS_SELECTORS:
        try:
            locator = page.locator(selector).first
            if await page.locator(selector).count() == 0:
                continue
            if not await locator.is_visible():
                continue
            await locator.click(timeout=DISMISS_TIMEOUT_MS)
            logger.info("Popup dismissed via: %s", selector)
            handled += 1
        except PlaywrightTimeout:
            continue
        except Exception:
            logger.debug("Popup selector %s raised", selector, exc_info=True)
            continue

    handled += await force_remove_overlays(page)
    return handled


async def force_remove_overlays(page: Page) -> int:
    """JS fallback: strip fixed overlays.  Returns elements removed."""
    try:
        removed = await page.evaluate(_JS_REMOVE_OVERLAYS)
        if removed:
            logger.debug("JS overlay removal cleared %d element(s)", removed)
        return removed or 0
    except Exception:
        logger.debug("JS overlay removal failed", exc_info=True)
        return 0
