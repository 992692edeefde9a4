"""Scraper backends for revscout."""

from revscout.scrapers.api_backend import ApiScraperBackend
from revscout.scrapers.base import ScraperBackend
from revscout.scrapers.browser_backend import BrowserScraperBackend, default_extractor

__all__ = ["ApiScraperBackend", "BrowserScraperBackend", "ScraperBackend", "default_extractor"]
