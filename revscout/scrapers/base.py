"""Scraper backend interface for revscout.

Backends are composed into the orchestrator, not subclassed from a template:
each implements initialize / fetch / teardown on its own.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from revscout.models.reviews import ScrapeOptions


class ScraperBackend(ABC):
    """Capability interface for a way of obtaining product review data.

    - ApiScraperBackend: remote asynchronous scrape-job service
    - BrowserScraperBackend: remote or local browser session via Playwright
    """

    name: str = "backend"

    @abstractmethod
    async def initialize(self) -> None:
        """Acquire resources (HTTP session, browser, context)."""

    @abstractmethod
    async def fetch(self, target_id: str, options: ScrapeOptions) -> Any:
        """Fetch data for one product.

        Raises:
            ClassifiedError: On any failure
        """

    @abstractmethod
    async def teardown(self) -> None:
        """Release resources."""

    def clear_cache(self, key: Optional[str] = None) -> None:
        """Drop cached results. Backends without a cache ignore this."""
