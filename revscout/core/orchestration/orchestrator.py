"""Review scrape orchestrator for revscout.

Owns a scraper backend's lifecycle and is the caller-facing entry point.
"""

import time
from typing import Any, Optional

from revscout.core.execution import ErrorClassifier
from revscout.core.logging import logger
from revscout.models.reviews import ScrapeOptions
from revscout.scrapers.base import ScraperBackend


class ReviewScraper:
    """Runs scrapes through an injected ScraperBackend.

    Usable as an async context manager; the backend is initialized on entry and
    torn down on exit. Callers get either a result or exactly one ClassifiedError.
    """

    def __init__(self, backend: ScraperBackend, classifier: Optional[ErrorClassifier] = None):
        self.backend = backend
        self.classifier = classifier or ErrorClassifier()
        self._started = False

    async def start(self) -> None:
        if not self._started:
            await self.backend.initialize()
            self._started = True
            logger.info("scraper_started", backend=self.backend.name)

    async def stop(self) -> None:
        if self._started:
            await self.backend.teardown()
            self._started = False
            logger.info("scraper_stopped", backend=self.backend.name)

    async def __aenter__(self) -> "ReviewScraper":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.stop()

    async def scrape(self, target_id: str, options: Optional[ScrapeOptions] = None) -> Any:
        """Scrape one product.

        Raises:
            ClassifiedError: On any failure
        """
        options = options or ScrapeOptions()
        await self.start()
        start_time = time.time()
        logger.info("scrape_started", target_id=target_id, backend=self.backend.name)
        try:
            result = await self.backend.fetch(target_id, options)
        except Exception as e:
            error = self.classifier.classify(e, {"target_id": target_id})
            logger.error(
                "scrape_failed",
                target_id=target_id,
                backend=self.backend.name,
                **error.to_dict(),
            )
            if error is e:
                raise
            raise error from e
        logger.info(
            "scrape_completed",
            target_id=target_id,
            backend=self.backend.name,
            duration=round(time.time() - start_time, 2),
        )
        return result

    def clear_cache(self, key: Optional[str] = None) -> None:
        self.backend.clear_cache(key)
