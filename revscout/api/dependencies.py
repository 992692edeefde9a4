"""FastAPI dependencies for revscout API.

Dependency injection functions for route handlers.
"""

from fastapi import HTTPException, Request

from revscout.core.orchestration import ReviewScraper


def get_scraper(request: Request) -> ReviewScraper:
    """Get the ReviewScraper from app state.

    Raises:
        HTTPException: 503 if no scraper is configured
    """
    scraper = getattr(request.app.state, "scraper", None)
    if scraper is None:
        raise HTTPException(status_code=503, detail="Scraper not configured")
    return scraper
