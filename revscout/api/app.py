"""FastAPI application factory for revscout API."""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from revscout import __version__
from revscout.api.middleware import request_id_middleware
from revscout.api.routes import reviews, system
from revscout.core.orchestration import ReviewScraper


def create_app(scraper: Optional[ReviewScraper] = None) -> FastAPI:
    """Create and configure FastAPI app. Factory pattern for testability."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if scraper is not None:
            await scraper.start()
        try:
            yield
        finally:
            if scraper is not None:
                await scraper.stop()

    app = FastAPI(
        title="revscout",
        description="Product and review retrieval with retries, block detection and caching.",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Add middleware
    app.middleware("http")(request_id_middleware)

    # Register routes
    app.include_router(system.router)
    app.include_router(reviews.router)

    # Store scraper for route access
    app.state.scraper = scraper

    return app
