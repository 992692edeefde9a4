"""Models for revscout."""

from revscout.models.jobs import Job, JobPhase, JobStatus
from revscout.models.reviews import (
    Author,
    HelpfulVotes,
    Price,
    Product,
    Rating,
    Review,
    ReviewScrapeResult,
    ScrapeMetadata,
    ScrapeOptions,
)

__all__ = [
    "Author",
    "HelpfulVotes",
    "Job",
    "JobPhase",
    "JobStatus",
    "Price",
    "Product",
    "Rating",
    "Review",
    "ReviewScrapeResult",
    "ScrapeMetadata",
    "ScrapeOptions",
]
