"""
Store configuration for the five Bay Area grocery chains we scrape.

Stores:
  - costco:  warehouse savings page, full-year date ranges in each tile
  - sprouts: weekly ad SPA, one ``h3`` text blob per deal (Wed–Tue)
  - safeway: weekly ad SPA, deal tiles + "Valid MM/DD - MM/DD" header (Wed–Tue)
  - hmart:   VTEX storefront; structured tiles OR image-only flyers (Fri–Thu)
  - ranch99: Next.js page, image flyers only → OCR (Thu–Wed)

Each store lists the city ids (``san_jose``, ``fremont`` ...) its weekly ad
applies to.  Those ids are the ``locations`` field of every deal and must
match the frontend's city table.

Runtime flags are read from the environment at import time; ``main.py``
calls ``load_dotenv()`` before importing this module.
"""

import os
import random as _random
from pathlib import Path

# ---------------------------------------------------------------------------
# Browser / Playwright defaults: stealth configuration
# ---------------------------------------------------------------------------

BROWSER_ARGS = [
    "--no-sandbox",
    "--disable-blink-features=AutomationControlled",
    "--disable-dev-shm-usage",
    "--disable-infobars",
]

BROWSER_CHANNEL = "chrome"

# Pool of realistic Chrome User-Agents, rotated per browser context so
# each store session presents a different fingerprint.
_USER_AGENT_POOL = [
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/130.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/129.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
]


def get_user_agent() -> str:
    """Return a randomly selected realistic Chrome User-Agent."""
    return _random.choice(_USER_AGENT_POOL)


_VIEWPORT_BASES = [
    (1920, 1080),
    (1440, 900),
    (1536, 864),
]


def get_viewport() -> dict[str, int]:
    """Return a slightly randomized desktop viewport."""
    w, h = _random.choice(_VIEWPORT_BASES)
    return {
        "width": w + _random.randint(-16, 16),
        "height": h + _random.randint(-8, 8),
    }


# Injected into every browser context when playwright-stealth is not
# installed.  Masks the most common automation signals.
STEALTH_INIT_SCRIPT = """
Object.defineProperty(navigator, 'webdriver', { get: () => undefined });
Object.defineProperty(navigator, 'languages', { get: () => ['en-US', 'en'] });
if (!window.chrome) { window.chrome = {}; }
if (!window.chrome.runtime) { window.chrome.runtime = {}; }
"""

# Navigation timeout in milliseconds.
GOTO_TIMEOUT_MS = 60_000

# Timeout waiting for ``body`` / product selectors after navigation.
SELECTOR_TIMEOUT_MS = 30_000

# Backend subprocess timeouts (seconds).
TRANSLATE_TIMEOUT_SEC = 120
OCR_TIMEOUT_SEC = 180

# Flyer image download timeout (seconds).
IMAGE_FETCH_TIMEOUT_SEC = 30.0

# Retry budget for a store's fetch+parse step.
SCRAPE_MAX_RETRIES = 2

# ---------------------------------------------------------------------------
# Pricing conventions
# ---------------------------------------------------------------------------

# Deals saving at least this many dollars are flagged ``isHot``.
HOT_SAVINGS_THRESHOLD = 5.0

# When a dialect only exposes the sale price, the regular price is
# estimated as sale * ESTIMATED_MARKUP.  Business heuristic; pending
# product-owner review.
ESTIMATED_MARKUP = 1.3

# Safeway "Save $X" tiles carry no price at all; the sale price is
# estimated as X * SAFEWAY_SAVE_MULTIPLIER.  Also pending review.
SAFEWAY_SAVE_MULTIPLIER = 2.0

# Titles are truncated to this many characters.
MAX_TITLE_LEN = 200

# ---------------------------------------------------------------------------
# Runtime flags / paths
# ---------------------------------------------------------------------------

_SCRAPER_DIR = Path(__file__).resolve().parent.parent


def is_ci() -> bool:
    """``CI=true`` disables the translation and OCR backends."""
    return os.getenv("CI", "false").lower() == "true"


DRY_RUN = os.getenv("DRY_RUN", "false").lower() == "true"

DEALS_PATH = Path(os.getenv("DEALS_PATH", str(_SCRAPER_DIR.parent / "data" / "deals.json")))
CACHE_DIR = Path(os.getenv("CACHE_DIR", str(_SCRAPER_DIR / ".cache")))

# Name or path of the LLM CLI used for translation and flyer OCR.
TRANSLATE_BIN = os.getenv("TRANSLATE_BIN", "claude")

# Pause between stores in a multi-store run.
STORE_DELAY_SEC = float(os.getenv("STORE_DELAY_SEC", "2"))

# ---------------------------------------------------------------------------
# Store registry
# ---------------------------------------------------------------------------

STORES = [
    {
        "id": "costco",
        "name": "Costco",
        "url": "https://www.costco.com/warehouse-savings.html",
        "wait_until": "domcontentloaded",
        "locations": [
            "san_jose", "sunnyvale", "mountain_view", "redwood_city",
            "san_francisco", "daly_city", "south_sf", "fremont",
            "hayward", "richmond", "danville", "livermore", "gilroy", "foster_city",
        ],
    },
    {
        "id": "sprouts",
        "name": "Sprouts Farmers Market",
        "url": "https://www.sprouts.com/weekly-ad/",
        "wait_until": "domcontentloaded",
        "locations": [
            "san_jose", "sunnyvale", "santa_clara", "mountain_view", "san_mateo", "fremont",
        ],
    },
    {
        "id": "safeway",
        "name": "Safeway",
        "url": "https://www.safeway.com/weeklyad/",
        "wait_until": "domcontentloaded",
        "locations": [
            "san_jose", "sunnyvale", "santa_clara", "cupertino", "milpitas", "mountain_view",
            "los_altos", "campbell", "saratoga", "los_gatos", "palo_alto", "menlo_park",
            "redwood_city", "san_mateo", "foster_city", "burlingame", "san_bruno", "south_sf",
            "daly_city", "san_carlos", "belmont", "san_francisco", "fremont", "newark",
            "union_city", "hayward", "san_leandro", "alameda", "oakland", "berkeley",
            "richmond", "walnut_creek", "concord", "pleasanton", "dublin", "livermore",
            "san_ramon", "danville",
        ],
    },
    {
        "id": "hmart",
        "name": "H Mart",
        "url": "https://www.hmart.com/weekly-ads/northern-california",
        "wait_until": "networkidle",
        "locations": [
            "san_jose", "santa_clara", "milpitas", "fremont", "oakland", "san_francisco",
        ],
    },
    {
        "id": "ranch99",
        "name": "99 Ranch Market",
        "url": "https://h5.awsprod.99ranch.com/stores/ad/1009",
        "wait_until": "networkidle",
        "locations": [
            "san_jose", "milpitas", "cupertino", "mountain_view", "daly_city",
            "fremont", "newark", "richmond", "union_city", "foster_city",
            "concord", "dublin", "pleasanton",
        ],
    },
]


def get_store(store_id: str) -> dict:
    """Return the registry entry for *store_id*; ``KeyError`` if unknown."""
    for store in STORES:
        if store["id"] == store_id:
            return store
    raise KeyError(store_id)


def get_store_ids() -> list[str]:
    return [s["id"] for s in STORES]
