from .base import FetchedElement, Fetcher, PageSession, StoreScraper
from .browser import PlaywrightFetcher, PlaywrightPageSession, launch_stealth_browser
from .costco import CostcoScraper
from .hmart import HMartScraper
from .ranch99 import Ranch99Scraper
from .safeway import SafewayScraper
from .sprouts import SproutsScraper

__all__ = [
    "CostcoScraper",
    "FetchedElement",
    "Fetcher",
    "HMartScraper",
    "PageSession",
    "PlaywrightFetcher",
    "PlaywrightPageSession",
    "Ranch99Scraper",
    "SafewayScraper",
    "SproutsScraper",
    "StoreScraper",
    "launch_stealth_browser",
]
