"""Review scraping routes for revscout API."""

import time
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from revscout.api.dependencies import get_scraper
from revscout.core.errors import ClassifiedError
from revscout.core.logging import logger
from revscout.core.operation_config import ErrorKind
from revscout.core.orchestration import ReviewScraper
from revscout.models.reviews import ScrapeOptions

router = APIRouter(tags=["Reviews"])

STATUS_BY_KIND = {
    ErrorKind.NETWORK: 503,
    ErrorKind.TIMEOUT: 504,
    ErrorKind.BLOCKED: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.PARSING: 502,
    ErrorKind.UNKNOWN: 500,
}


def _metadata(**extra: Any) -> Dict[str, Any]:
    return {"source": "revscout", "timestamp": datetime.now().isoformat() + "Z", **extra}


def _serialize(result: Any) -> Any:
    return result.model_dump(mode="json") if hasattr(result, "model_dump") else result


@router.get("/reviews/{target_id}")
async def reviews_route(
    target_id: str,
    country: str = "us",
    reviews_count: int = 2,
    sort_by: str = "most_helpful",
    language: str = "en",
    include_product_data: bool = True,
    timeout: Optional[float] = None,
    scraper: ReviewScraper = Depends(get_scraper),
):
    """Fetch product data and reviews.

    - **target_id**: Product identifier (ASIN)
    - **reviews_count**: Number of reviews to fetch
    - **sort_by**: most_helpful, most_recent, top_critical or top_positive
    - **timeout**: Overall deadline in seconds
    """
    start_time = time.time()

    try:
        options = ScrapeOptions(
            country=country,
            reviews_count=reviews_count,
            sort_by=sort_by,
            language=language,
            include_product_data=include_product_data,
            timeout=timeout,
        )
    except ValidationError as e:
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": f"Invalid request: {e}", "metadata": _metadata()},
        )

    try:
        result = await scraper.scrape(target_id, options)
    except ClassifiedError as e:
        return JSONResponse(
            status_code=STATUS_BY_KIND[e.kind],
            content={
                "success": False,
                "error": e.message,
                "error_kind": e.kind.value,
                "retryable": e.retryable,
                "metadata": _metadata(),
            },
        )

    processing_ms = int((time.time() - start_time) * 1000)
    logger.info("reviews_served", target_id=target_id, processing_ms=processing_ms)
    return JSONResponse(
        content={
            "success": True,
            "data": _serialize(result),
            "metadata": _metadata(processing_ms=processing_ms),
        }
    )


@router.delete("/cache")
async def clear_cache_route(
    key: Optional[str] = None, scraper: ReviewScraper = Depends(get_scraper)
):
    """Clear one cached result by key, or the whole cache."""
    scraper.clear_cache(key)
    return {"success": True, "cleared": key or "all", "metadata": _metadata()}
