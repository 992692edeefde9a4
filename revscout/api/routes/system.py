"""System routes for revscout API."""

from datetime import datetime
from typing import Any, Dict

from fastapi import APIRouter, Request

from revscout import __version__
from revscout.config import Config

router = APIRouter(tags=["System"])


@router.get("/health")
async def health_route(request: Request) -> Dict[str, Any]:
    """Report service health and which configuration is missing."""
    scraper = getattr(request.app.state, "scraper", None)
    missing = Config.get_missing_config()
    return {
        "status": "healthy" if scraper is not None else "degraded",
        "version": __version__,
        "backend": scraper.backend.name if scraper is not None else None,
        "missing_config": missing,
        "timestamp": datetime.now().isoformat() + "Z",
    }
