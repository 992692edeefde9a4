"""HTTP API for revscout."""

from revscout.api.app import create_app

__all__ = ["create_app"]
