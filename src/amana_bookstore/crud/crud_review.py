import logging
import uuid
from abc import ABC, abstractmethod
from contextlib import nullcontext
from typing import Any, ContextManager, List, Mapping, Optional

from pymongo import DESCENDING
from pymongo.errors import DuplicateKeyError

from ..core.errors import BackendUnavailable, DuplicateKey, InvalidIdentifier, ValidationError
from ..core.validation import (
    ensure_boolean,
    ensure_iso_timestamp,
    ensure_non_empty_string,
    ensure_rating,
)
from ..db.identifiers import build_id_match_predicate, to_canonical_id
from ..db.memory import InMemoryStore
from ..db.session import MongoClientProvider
from ..schemas.review import Review, ReviewSummary, summarize_reviews
from .crud_book import BookRepository

logger = logging.getLogger(__name__)


def _normalize_reviews(docs) -> List[Review]:
    reviews = []
    for doc in docs:
        try:
            reviews.append(Review.from_document(doc))
        except InvalidIdentifier:
            logger.warning(f"Skipping review document with an unusable bookId: id={doc.get('id')!r}")
    return reviews


class ReviewRepository(ABC):
    """
    Review access plus maintenance of the owning book's aggregate.

    Creating a review is two sequential writes: `insert_review`, then
    `refresh_book_aggregate`. They are not atomic; if the second one fails the
    book keeps a stale rating/reviewCount until the next review for it is
    created. A caller on a transactional store can wrap both calls itself.
    """

    def __init__(self, books: BookRepository):
        self.books = books

    @abstractmethod
    def fetch_reviews_for_book(self, book_id: Any) -> List[Review]:
        """Reviews of one book, newest first. Invalid ids yield an empty list."""

    @abstractmethod
    def fetch_all_reviews(self) -> List[Review]:
        """All reviews, newest first."""

    @abstractmethod
    def fetch_review_by_id(self, review_id: str) -> Optional[Review]:
        ...

    @abstractmethod
    def insert_review(self, review: Review) -> None:
        """First step of the creation workflow: persist the review as-is."""

    def _write_lock(self) -> ContextManager:
        return nullcontext()

    def refresh_book_aggregate(self, book_id: Any) -> ReviewSummary:
        """
        Second step of the creation workflow.

        Recomputes count and average over every review of the book and writes
        them onto the book.

        Returns:
            ReviewSummary: The aggregate that was written.
        """
        summary = summarize_reviews(self.fetch_reviews_for_book(book_id))
        if not self.books.update_book_aggregate(book_id, summary):
            logger.warning(f"Book {book_id} not found while writing its review aggregate.")
        return summary

    def create_review(self, payload: Mapping[str, Any]) -> Review:
        """
        Validates and stores a review, then updates the book's rating and reviewCount.

        Args:
            payload (Mapping[str, Any]): bookId, author, rating, title, comment and
                optionally id, timestamp and verified.

        Returns:
            Review: The stored review.

        Raises:
            ValidationError: Missing bookId, unknown book, invalid field or
                duplicate review id. Nothing is written in those cases.
            BackendUnavailable: Only when the review itself could not be stored.
                A failed aggregate refresh after the insert is logged, not raised.
        """
        if not isinstance(payload, Mapping):
            raise ValidationError("payload is required")
        book_id = payload.get("bookId")
        if book_id is None:
            raise ValidationError("bookId is required")

        book = self.books.fetch_book_by_id(book_id)
        if book is None:
            raise ValidationError("Book not found")

        supplied_id = payload.get("id")
        verified = payload.get("verified")
        review = Review(
            id=ensure_non_empty_string(supplied_id, "id") if supplied_id else f"review-{uuid.uuid4()}",
            book_id=book.id,
            author=ensure_non_empty_string(payload.get("author"), "author"),
            rating=ensure_rating(payload.get("rating"), "rating"),
            title=ensure_non_empty_string(payload.get("title"), "title"),
            comment=ensure_non_empty_string(payload.get("comment"), "comment"),
            timestamp=ensure_iso_timestamp(payload.get("timestamp"), "timestamp"),
            verified=ensure_boolean(verified, "verified") if verified is not None else False,
        )

        with self._write_lock():
            if self.fetch_review_by_id(review.id) is not None:
                raise DuplicateKey("Review with the same id already exists")
            self.insert_review(review)
            try:
                summary = self.refresh_book_aggregate(book.id)
            except BackendUnavailable:
                # Already stored: success with a stale aggregate, never a second review.
                logger.error(
                    f"Review {review.id} stored but the aggregate of book {book.id} was not updated. "
                    f"It is recomputed with the next review of that book."
                )
                return review

        logger.info(
            f"Review {review.id} created for book {book.id}. "
            f"Aggregate updated: rating={summary.average}, reviewCount={summary.count}."
        )
        return review


class MemoryReviewRepository(ReviewRepository):
    def __init__(self, store: InMemoryStore, books: BookRepository):
        super().__init__(books)
        self.store = store

    def _write_lock(self) -> ContextManager:
        return self.store.lock

    def fetch_reviews_for_book(self, book_id: Any) -> List[Review]:
        try:
            canonical = to_canonical_id(book_id)
        except InvalidIdentifier:
            return []
        return self.store.reviews_for_book(canonical)

    def fetch_all_reviews(self) -> List[Review]:
        return self.store.list_reviews()

    def fetch_review_by_id(self, review_id: str) -> Optional[Review]:
        if not isinstance(review_id, str) or not review_id.strip():
            return None
        return self.store.get_review(review_id.strip())

    def insert_review(self, review: Review) -> None:
        self.store.insert_review(review)


class MongoReviewRepository(ReviewRepository):
    def __init__(self, provider: MongoClientProvider, collection_name: str, books: BookRepository):
        super().__init__(books)
        self.provider = provider
        self.collection_name = collection_name

    def _collection(self):
        return self.provider.get_collection(self.collection_name)

    def fetch_reviews_for_book(self, book_id: Any) -> List[Review]:
        try:
            to_canonical_id(book_id)
        except InvalidIdentifier:
            return []
        predicate = build_id_match_predicate([book_id], field="bookId", native_field=None)
        with self.provider.backend_errors(f"fetching reviews of book {book_id!r}"):
            docs = list(self._collection().find(predicate).sort("timestamp", DESCENDING))
        return _normalize_reviews(docs)

    def fetch_all_reviews(self) -> List[Review]:
        with self.provider.backend_errors("fetching reviews"):
            docs = list(self._collection().find({}).sort("timestamp", DESCENDING))
        return _normalize_reviews(docs)

    def fetch_review_by_id(self, review_id: str) -> Optional[Review]:
        if not isinstance(review_id, str) or not review_id.strip():
            return None
        predicate = build_id_match_predicate([review_id.strip()])
        with self.provider.backend_errors(f"fetching review {review_id!r}"):
            doc = self._collection().find_one(predicate)
        return Review.from_document(doc) if doc else None

    def insert_review(self, review: Review) -> None:
        with self.provider.backend_errors(f"inserting review {review.id}"):
            try:
                self._collection().insert_one(review.to_document())
            except DuplicateKeyError:
                raise DuplicateKey("Review with the same id already exists") from None
