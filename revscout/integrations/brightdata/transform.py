"""Snapshot transformation for revscout.

Turns raw job-service payloads into ReviewScrapeResult models.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from revscout.core.errors import ClassifiedError
from revscout.core.operation_config import ErrorKind
from revscout.integrations.brightdata.endpoints import AMAZON_BASE_URL
from revscout.models.reviews import (
    Author,
    HelpfulVotes,
    Price,
    Product,
    Rating,
    Review,
    ReviewScrapeResult,
    ScrapeMetadata,
)


def transform_snapshot(
    payload: Any, target_id: str, duration_ms: int, source: str = "brightdata"
) -> ReviewScrapeResult:
    """Transform a result payload into a ReviewScrapeResult.

    Accepts a product document ``{asin, url, product, reviews, total_reviews}``,
    a list holding such a document, or a flat list of review rows.

    Raises:
        ClassifiedError: PARSING if the payload is empty
        KeyError, TypeError, pydantic.ValidationError: On malformed documents
    """
    if not payload:
        raise ClassifiedError(ErrorKind.PARSING, "No results found in the response")

    if (
        isinstance(payload, list)
        and len(payload) == 1
        and isinstance(payload[0], dict)
        and "reviews" in payload[0]
    ):
        payload = payload[0]

    if isinstance(payload, dict):
        product, reviews, total = _from_document(payload, target_id)
        snapshot_meta = payload.get("metadata")
    elif isinstance(payload, list):
        product, reviews, total = _from_rows(payload, target_id)
        snapshot_meta = None
    else:
        raise TypeError(f"Unexpected payload type: {type(payload).__name__}")

    return ReviewScrapeResult(
        product=product,
        reviews=reviews,
        metadata=ScrapeMetadata(
            scraped_at=datetime.now(timezone.utc),
            total_reviews=total,
            scraped_reviews=len(reviews),
            duration_ms=duration_ms,
            additional_info={"api_source": source, "snapshot_data": snapshot_meta},
        ),
    )


def transform_rating_distribution(
    distribution: Optional[Dict[str, Any]],
) -> Optional[Dict[int, int]]:
    """Convert string star keys ("5") to integers."""
    if not distribution:
        return None
    return {int(key): int(value) for key, value in distribution.items()}


def _from_document(doc: Dict[str, Any], target_id: str):
    asin = doc.get("asin") or target_id
    info = doc["product"]
    price = info.get("price")
    product = Product(
        id=asin,
        title=info["title"],
        price=Price(current=price["value"], currency=price["currency"]) if price else None,
        rating=Rating(
            average=info["rating"]["average"],
            total=info["rating"]["count"],
            distribution=transform_rating_distribution(info["rating"].get("distribution")),
        ),
        url=doc.get("url") or f"{AMAZON_BASE_URL}/dp/{asin}",
        metadata=info,
    )
    reviews = [
        Review(
            id=str(raw["id"]),
            title=raw.get("title", ""),
            text=raw.get("text", ""),
            rating=raw["rating"],
            date=raw.get("date"),
            verified=bool(raw.get("verified_purchase", False)),
            helpful=HelpfulVotes(
                votes=raw.get("helpful_votes") or 0, total=raw.get("total_votes")
            ),
            author=Author(name=raw["author"]["name"], id=raw["author"].get("id")),
            images=[image["url"] for image in raw.get("images") or []],
            product_id=asin,
            metadata=raw,
        )
        for raw in doc["reviews"]
    ]
    return product, reviews, int(doc.get("total_reviews", len(reviews)))


def _from_rows(rows: List[Dict[str, Any]], target_id: str):
    first = rows[0]
    asin = first.get("asin") or first.get("product_id") or target_id
    product = Product(
        id=asin,
        title=first.get("product_name") or first.get("product_title") or "",
        rating=Rating(
            average=first.get("product_rating") or 0.0,
            total=first.get("product_rating_count") or 0,
        ),
        url=first.get("url") or f"{AMAZON_BASE_URL}/dp/{asin}",
    )
    reviews = [
        Review(
            id=str(row.get("review_id") or row["id"]),
            title=row.get("review_header") or row.get("title") or "",
            text=row.get("review_text") or row.get("text") or "",
            rating=row["rating"],
            date=row.get("review_posted_date") or row.get("date"),
            verified=bool(row.get("is_verified") or row.get("verified_purchase")),
            helpful=HelpfulVotes(votes=row.get("helpful_count") or row.get("helpful_votes") or 0),
            author=Author(name=row.get("author_name") or "Anonymous", id=row.get("author_id")),
            images=list(row.get("review_images") or []),
            product_id=asin,
            metadata=row,
        )
        for row in rows
    ]
    return product, reviews, int(first.get("product_rating_count") or len(reviews))
