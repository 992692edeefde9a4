"""Orchestration module for revscout."""

from revscout.core.orchestration.orchestrator import ReviewScraper

__all__ = ["ReviewScraper"]
