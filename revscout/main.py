"""Main entry point for revscout API.

Builds the scraper from environment configuration and makes it runnable standalone.

Usage:
    Development: uvicorn revscout.main:app --reload --port 8000
    Production: uvicorn revscout.main:app --host 0.0.0.0 --port 8000
"""

from revscout.api import create_app
from revscout.config import Config
from revscout.core.logging import logger
from revscout.core.orchestration import ReviewScraper
from revscout.integrations.brightdata import AsyncJobClient
from revscout.scrapers import ApiScraperBackend, BrowserScraperBackend


def build_scraper() -> ReviewScraper:
    """Use the scrape-job API when configured, else a browser session."""
    if Config.is_configured():
        backend = ApiScraperBackend(AsyncJobClient.from_env())
    else:
        logger.warning("job_api_unconfigured", missing=Config.get_missing_config())
        backend = BrowserScraperBackend.from_env()
    return ReviewScraper(backend)


app = create_app(scraper=build_scraper())


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "revscout.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info",
    )
