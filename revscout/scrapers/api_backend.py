"""API-driven scraper backend for revscout."""

from typing import Optional

from revscout.integrations.brightdata.client import AsyncJobClient
from revscout.models.reviews import ReviewScrapeResult, ScrapeOptions
from revscout.scrapers.base import ScraperBackend


class ApiScraperBackend(ScraperBackend):
    """Fetches reviews through an AsyncJobClient; no browser involved."""

    name = "api"

    def __init__(self, client: AsyncJobClient):
        self.client = client

    async def initialize(self) -> None:
        await self.client.session.start()

    async def fetch(self, target_id: str, options: ScrapeOptions) -> ReviewScrapeResult:
        return await self.client.fetch_result(target_id, options)

    async def teardown(self) -> None:
        await self.client.close()

    def clear_cache(self, key: Optional[str] = None) -> None:
        self.client.clear_cache(key)
