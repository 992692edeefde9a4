"""Product and review Pydantic models for revscout."""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from revscout.core.caching import cache_key

SortOrder = Literal["most_helpful", "most_recent", "top_critical", "top_positive"]


class ScrapeOptions(BaseModel):
    """Options for a product review scrape."""

    country: str = Field(default="us", description="Marketplace country code")
    include_product_data: bool = Field(default=True)
    reviews_count: int = Field(default=2, ge=1, description="Number of reviews to fetch")
    sort_by: SortOrder = Field(default="most_helpful")
    language: str = Field(default="en")
    timeout: Optional[float] = Field(
        default=None,
        gt=0,
        description="Overall deadline in seconds for the whole fetch (overrides config)",
    )

    model_config = {"frozen": True}

    def fingerprint(self, target_id: str) -> str:
        """Cache key for a request with these options."""
        return cache_key(
            target_id,
            country=self.country,
            language=self.language,
            sort_by=self.sort_by,
            reviews_count=self.reviews_count,
        )


class Price(BaseModel):
    current: float
    currency: str
    discounted: bool = False
    original: Optional[float] = None


class Rating(BaseModel):
    average: float
    total: int
    distribution: Optional[Dict[int, int]] = None


class Product(BaseModel):
    id: str
    title: str
    price: Optional[Price] = None
    rating: Rating
    url: str
    platform: str = "amazon"
    metadata: Dict[str, Any] = Field(default_factory=dict)


class HelpfulVotes(BaseModel):
    votes: int = 0
    total: Optional[int] = None


class Author(BaseModel):
    name: str
    id: Optional[str] = None


class Review(BaseModel):
    id: str
    title: str = ""
    text: str = ""
    rating: float
    date: Optional[datetime] = None
    verified: bool = False
    helpful: HelpfulVotes = Field(default_factory=HelpfulVotes)
    author: Author
    images: List[str] = Field(default_factory=list)
    platform: str = "amazon"
    product_id: str
    metadata: Dict[str, Any] = Field(default_factory=dict)


class ScrapeMetadata(BaseModel):
    scraped_at: datetime
    total_reviews: int
    scraped_reviews: int
    duration_ms: int
    additional_info: Dict[str, Any] = Field(default_factory=dict)


class ReviewScrapeResult(BaseModel):
    """Product, its reviews, and how they were obtained."""

    product: Product
    reviews: List[Review]
    metadata: ScrapeMetadata
