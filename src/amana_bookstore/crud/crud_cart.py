"""
Cart lines scoped to an opaque session id.

There is at most one line per (session, book): adding a book that is already
in the cart increments the existing line instead of creating a second one.
"""

import logging
import uuid
from abc import ABC, abstractmethod
from typing import Any, List, Optional, Tuple

from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from ..core.errors import InvalidIdentifier, ValidationError
from ..core.validation import ensure_non_empty_string, ensure_quantity, utc_now_iso
from ..db.identifiers import to_canonical_id
from ..db.memory import InMemoryStore
from ..db.session import MongoClientProvider, ensure_unique_index
from ..schemas.cart import CartItem

logger = logging.getLogger(__name__)


def _new_line_id() -> str:
    return f"cart-{uuid.uuid4()}"


def _line_keys(session_id: Any, book_id: Any) -> Tuple[str, str]:
    session = ensure_non_empty_string(session_id, "sessionId")
    if book_id is None:
        raise ValidationError("bookId is required")
    return session, to_canonical_id(book_id)


class CartRepository(ABC):
    @abstractmethod
    def fetch_cart_by_user_id(self, session_id: str) -> List[CartItem]:
        """Lines of one session, most recently added first."""

    @abstractmethod
    def _find_line(self, session: str, book_id: str) -> Optional[CartItem]:
        ...

    @abstractmethod
    def _increment_line(self, session: str, book_id: str, quantity: int, now: str) -> CartItem:
        ...

    @abstractmethod
    def _set_line_quantity(self, session: str, book_id: str, quantity: int, now: str) -> CartItem:
        ...

    @abstractmethod
    def _delete_line(self, session: str, book_id: str) -> bool:
        ...

    @abstractmethod
    def clear_cart(self, session_id: str) -> int:
        """Removes every line of the session and returns how many were removed."""

    def fetch_cart_item(self, session_id: str, book_id: Any) -> Optional[CartItem]:
        if book_id is None:
            return None
        try:
            session, canonical = _line_keys(session_id, book_id)
        except InvalidIdentifier:
            return None
        return self._find_line(session, canonical)

    def add_to_cart(self, session_id: str, book_id: Any, quantity: Any = 1) -> CartItem:
        """
        Adds `quantity` copies of a book to the session's cart.

        An existing line has its quantity incremented and `addedAt` refreshed;
        otherwise a new line with a generated id is created.

        Raises:
            ValidationError: Blank session id, invalid book id or quantity < 1.
        """
        session, canonical = _line_keys(session_id, book_id)
        amount = ensure_quantity(quantity)
        item = self._increment_line(session, canonical, amount, utc_now_iso())
        logger.info(f"Cart {session}: book {canonical} now at quantity {item.quantity}.")
        return item

    def update_cart_item_quantity(self, session_id: str, book_id: Any, quantity: Any) -> CartItem:
        """
        Sets the absolute quantity of a line, creating it when absent.

        Raises:
            ValidationError: quantity < 1, or invalid keys.
        """
        session, canonical = _line_keys(session_id, book_id)
        amount = ensure_quantity(quantity)
        item = self._set_line_quantity(session, canonical, amount, utc_now_iso())
        logger.info(f"Cart {session}: book {canonical} set to quantity {item.quantity}.")
        return item

    def remove_from_cart(self, session_id: str, book_id: Any) -> bool:
        session, canonical = _line_keys(session_id, book_id)
        removed = self._delete_line(session, canonical)
        if removed:
            logger.info(f"Cart {session}: book {canonical} removed.")
        return removed


class MemoryCartRepository(CartRepository):
    def __init__(self, store: InMemoryStore):
        self.store = store

    def fetch_cart_by_user_id(self, session_id: str) -> List[CartItem]:
        return self.store.cart_lines(ensure_non_empty_string(session_id, "sessionId"))

    def _find_line(self, session: str, book_id: str) -> Optional[CartItem]:
        return self.store.get_cart_line(session, book_id)

    def _increment_line(self, session: str, book_id: str, quantity: int, now: str) -> CartItem:
        with self.store.lock:
            existing = self.store.get_cart_line(session, book_id)
            if existing:
                item = existing.model_copy(update={"quantity": existing.quantity + quantity, "added_at": now})
            else:
                item = CartItem(id=_new_line_id(), book_id=book_id, quantity=quantity, added_at=now)
            self.store.put_cart_line(session, item)
        return item

    def _set_line_quantity(self, session: str, book_id: str, quantity: int, now: str) -> CartItem:
        with self.store.lock:
            existing = self.store.get_cart_line(session, book_id)
            item = CartItem(
                id=existing.id if existing else _new_line_id(),
                book_id=book_id,
                quantity=quantity,
                added_at=now,
            )
            self.store.put_cart_line(session, item)
        return item

    def _delete_line(self, session: str, book_id: str) -> bool:
        return self.store.delete_cart_line(session, book_id)

    def clear_cart(self, session_id: str) -> int:
        session = ensure_non_empty_string(session_id, "sessionId")
        removed = self.store.clear_cart(session)
        logger.info(f"Cart {session} cleared ({removed} lines).")
        return removed


class MongoCartRepository(CartRepository):
    """
    Cart lines stored as `{id, userId, bookId, quantity, addedAt}` documents.

    Increments and quantity changes are single `find_one_and_update` upserts
    against a unique `(userId, bookId)` index, so two concurrent adds for one
    (session, book) never create two lines: the upsert that loses the race
    fails with a duplicate key and is retried as an update.
    """

    def __init__(self, provider: MongoClientProvider, collection_name: str):
        self.provider = provider
        self.collection_name = collection_name
        self._indexes_ready = False

    def ensure_indexes(self) -> None:
        collection = self.provider.get_collection(self.collection_name)
        ensure_unique_index(
            collection,
            [("userId", ASCENDING), ("bookId", ASCENDING)],
            name="cart_line_unique",
        )
        self._indexes_ready = True

    def _collection(self):
        if not self._indexes_ready:
            self.ensure_indexes()
        return self.provider.get_collection(self.collection_name)

    def fetch_cart_by_user_id(self, session_id: str) -> List[CartItem]:
        session = ensure_non_empty_string(session_id, "sessionId")
        with self.provider.backend_errors(f"fetching cart {session}"):
            docs = list(self._collection().find({"userId": session}).sort("addedAt", DESCENDING))
        return [CartItem.from_document(doc) for doc in docs]

    def _find_line(self, session: str, book_id: str) -> Optional[CartItem]:
        with self.provider.backend_errors(f"fetching cart line {session}/{book_id}"):
            doc = self._collection().find_one({"userId": session, "bookId": book_id})
        return CartItem.from_document(doc) if doc else None

    def _upsert(self, session: str, book_id: str, update: dict) -> CartItem:
        update.setdefault("$setOnInsert", {})["id"] = _new_line_id()
        with self.provider.backend_errors(f"updating cart line {session}/{book_id}"):
            try:
                doc = self._find_one_and_upsert(session, book_id, update)
            except DuplicateKeyError:
                # A concurrent upsert inserted the line first; it matches now.
                logger.debug(f"Cart line {session}/{book_id} inserted concurrently, retrying as an update.")
                doc = self._find_one_and_upsert(session, book_id, update)
        if doc is None:
            raise RuntimeError(f"Cart upsert for {session}/{book_id} returned no document")
        return CartItem.from_document(doc)

    def _find_one_and_upsert(self, session: str, book_id: str, update: dict):
        return self._collection().find_one_and_update(
            {"userId": session, "bookId": book_id},
            update,
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )

    def _increment_line(self, session: str, book_id: str, quantity: int, now: str) -> CartItem:
        return self._upsert(session, book_id, {"$inc": {"quantity": quantity}, "$set": {"addedAt": now}})

    def _set_line_quantity(self, session: str, book_id: str, quantity: int, now: str) -> CartItem:
        return self._upsert(session, book_id, {"$set": {"quantity": quantity, "addedAt": now}})

    def _delete_line(self, session: str, book_id: str) -> bool:
        with self.provider.backend_errors(f"removing cart line {session}/{book_id}"):
            result = self._collection().delete_one({"userId": session, "bookId": book_id})
        return result.deleted_count == 1

    def clear_cart(self, session_id: str) -> int:
        session = ensure_non_empty_string(session_id, "sessionId")
        with self.provider.backend_errors(f"clearing cart {session}"):
            result = self._collection().delete_many({"userId": session})
        logger.info(f"Cart {session} cleared ({result.deleted_count} lines).")
        return result.deleted_count
