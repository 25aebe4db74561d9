"""
In-process fallback store, used when MongoDB is not configured.

One instance lives as long as the AppContext that owns it. It is seeded
lazily on first access from `seed_data`, and every value it hands out is a
deep copy so callers can never mutate stored state. Access is serialized
with a re-entrant lock; repositories hold `store.lock` around
read-modify-write sequences.
"""

import logging
import threading
from typing import Dict, List, Optional

from ..schemas.book import Book
from ..schemas.cart import CartItem
from ..schemas.review import Review, ReviewSummary
from .identifiers import to_canonical_id
from .seed_data import default_books, default_reviews

logger = logging.getLogger(__name__)


class InMemoryStore:
    """
    Books keyed by canonical id (plus insertion order), reviews grouped by
    book id and kept newest first, cart lines grouped by session then book id.
    """

    def __init__(self, seed: bool = True):
        self.lock = threading.RLock()
        self._seed = seed
        self._initialized = False
        self._books: Dict[str, Book] = {}
        self._book_order: List[str] = []
        self._reviews_by_book: Dict[str, List[Review]] = {}
        self._reviews_by_id: Dict[str, Review] = {}
        self._carts: Dict[str, Dict[str, CartItem]] = {}

    def _ensure_initialized(self) -> None:
        if self._initialized:
            return
        with self.lock:
            if self._initialized:
                return
            if self._seed:
                for book in default_books():
                    self._put_book(book)
                for review in default_reviews():
                    self._put_review(review)
                logger.info(
                    f"In-memory store seeded with {len(self._books)} books and {len(self._reviews_by_id)} reviews."
                )
            self._initialized = True

    def reset(self) -> None:
        """Drops everything; the next access reseeds."""
        with self.lock:
            self._books.clear()
            self._book_order.clear()
            self._reviews_by_book.clear()
            self._reviews_by_id.clear()
            self._carts.clear()
            self._initialized = False

    # ----- Books -----

    def _put_book(self, book: Book) -> None:
        if book.id not in self._books:
            self._book_order.append(book.id)
        self._books[book.id] = book.model_copy(deep=True)

    def list_books(self) -> List[Book]:
        self._ensure_initialized()
        with self.lock:
            return [self._books[book_id].model_copy(deep=True) for book_id in self._book_order]

    def get_book(self, book_id: str) -> Optional[Book]:
        self._ensure_initialized()
        with self.lock:
            book = self._books.get(book_id)
            return book.model_copy(deep=True) if book else None

    def find_book_by_isbn(self, isbn: str) -> Optional[Book]:
        self._ensure_initialized()
        with self.lock:
            for book in self._books.values():
                if book.isbn == isbn:
                    return book.model_copy(deep=True)
            return None

    def max_numeric_book_id(self) -> int:
        self._ensure_initialized()
        with self.lock:
            highest = 0
            for book_id in self._books:
                try:
                    highest = max(highest, int(book_id))
                except ValueError:
                    continue
            return highest

    def insert_book(self, book: Book) -> None:
        self._ensure_initialized()
        with self.lock:
            if book.id in self._books:
                raise RuntimeError(f"Book {book.id} already present in the in-memory store")
            self._put_book(book)

    def set_book_aggregate(self, book_id: str, summary: ReviewSummary) -> bool:
        self._ensure_initialized()
        with self.lock:
            book = self._books.get(book_id)
            if book is None:
                return False
            self._books[book_id] = book.model_copy(
                update={"rating": summary.average, "review_count": summary.count}
            )
            return True

    # ----- Reviews -----

    def _put_review(self, review: Review) -> None:
        book_id = to_canonical_id(review.book_id)
        stored = review.model_copy(deep=True)
        group = self._reviews_by_book.setdefault(book_id, [])
        group.append(stored)
        group.sort(key=lambda r: r.timestamp, reverse=True)
        self._reviews_by_id[review.id] = stored

    def list_reviews(self) -> List[Review]:
        self._ensure_initialized()
        with self.lock:
            reviews = [r.model_copy(deep=True) for r in self._reviews_by_id.values()]
        reviews.sort(key=lambda r: r.timestamp, reverse=True)
        return reviews

    def reviews_for_book(self, book_id: str) -> List[Review]:
        self._ensure_initialized()
        with self.lock:
            return [r.model_copy(deep=True) for r in self._reviews_by_book.get(book_id, [])]

    def get_review(self, review_id: str) -> Optional[Review]:
        self._ensure_initialized()
        with self.lock:
            review = self._reviews_by_id.get(review_id)
            return review.model_copy(deep=True) if review else None

    def insert_review(self, review: Review) -> None:
        self._ensure_initialized()
        with self.lock:
            if review.id in self._reviews_by_id:
                raise RuntimeError(f"Review {review.id} already present in the in-memory store")
            self._put_review(review)

    # ----- Cart -----

    def cart_lines(self, session_id: str) -> List[CartItem]:
        with self.lock:
            lines = [item.model_copy(deep=True) for item in self._carts.get(session_id, {}).values()]
        lines.sort(key=lambda item: item.added_at, reverse=True)
        return lines

    def get_cart_line(self, session_id: str, book_id: str) -> Optional[CartItem]:
        with self.lock:
            item = self._carts.get(session_id, {}).get(book_id)
            return item.model_copy(deep=True) if item else None

    def put_cart_line(self, session_id: str, item: CartItem) -> None:
        with self.lock:
            self._carts.setdefault(session_id, {})[item.book_id] = item.model_copy(deep=True)

    def delete_cart_line(self, session_id: str, book_id: str) -> bool:
        with self.lock:
            lines = self._carts.get(session_id)
            if not lines or book_id not in lines:
                return False
            del lines[book_id]
            if not lines:
                del self._carts[session_id]
            return True

    def clear_cart(self, session_id: str) -> int:
        with self.lock:
            lines = self._carts.pop(session_id, {})
            return len(lines)
