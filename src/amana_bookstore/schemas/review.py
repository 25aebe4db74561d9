"""
Pydantic schemas for the Review entity and its per-book aggregate.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field

from ..db.identifiers import to_canonical_id


class Review(BaseModel):
    """
    Normalized review.

    Attributes:
        id (str): Review id, `review-<uuid>` when generated.
        book_id (str): Canonical id of the reviewed book.
        rating (Union[int, float]): Rating between 0 and 5.
        timestamp (str): UTC ISO-8601 creation time.
        verified (bool): Verified purchase flag.
    """
    id: str
    book_id: str = Field(alias="bookId")
    author: str
    rating: Union[int, float]
    title: str
    comment: str
    timestamp: str
    verified: bool = False

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "Review":
        data = {key: value for key, value in doc.items() if key != "_id"}
        data["bookId"] = to_canonical_id(data.get("bookId"))
        if data.get("verified") is None:
            data["verified"] = False
        return cls.model_validate(data)

    def to_document(self) -> Dict[str, Any]:
        return {**self.model_dump(by_alias=True), "_id": self.id}


class ReviewSummary(BaseModel):
    """Aggregate written onto a book: `count` reviews with mean `average`."""
    count: int = 0
    average: float = 0


def round_rating(value: float) -> float:
    """One decimal place, halves rounded away from zero on the exact binary value."""
    return float(Decimal(value).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def summarize_reviews(reviews: Iterable[Review]) -> ReviewSummary:
    """
    Computes the aggregate for one book's reviews.

    Returns:
        ReviewSummary: count and mean rating rounded to one decimal; 0 when empty.
    """
    count = 0
    total = 0.0
    for review in reviews:
        count += 1
        total += review.rating
    if count == 0:
        return ReviewSummary(count=0, average=0)
    return ReviewSummary(count=count, average=round_rating(total / count))


def build_review_summary_map(reviews: Iterable[Review]) -> Dict[str, ReviewSummary]:
    """Groups reviews by canonical book id and summarizes each group."""
    grouped: Dict[str, list] = {}
    for review in reviews:
        grouped.setdefault(to_canonical_id(review.book_id), []).append(review)
    return {book_id: summarize_reviews(group) for book_id, group in grouped.items()}
