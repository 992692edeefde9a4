"""Routes for revscout API."""

from revscout.api.routes import reviews, system

__all__ = ["reviews", "system"]
