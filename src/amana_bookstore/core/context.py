"""
Application context: the explicitly built owner of the MongoDB client
provider, the in-memory fallback store and the three repositories.

The backend is chosen once, here. MongoDB-backed repositories are used when
MONGODB_URI is set and memory-backed ones otherwise. With
MONGODB_FALLBACK_ON_ERROR enabled, every repository call that fails with
BackendUnavailable is replayed on the memory-backed repository instead of
being raised.
"""

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Optional

from ..crud import (
    BookRepository,
    CartRepository,
    MemoryBookRepository,
    MemoryCartRepository,
    MemoryReviewRepository,
    MongoBookRepository,
    MongoCartRepository,
    MongoReviewRepository,
    ReviewRepository,
)
from ..db.memory import InMemoryStore
from ..db.session import ClientFactory, MongoClientProvider
from .config import Settings, get_settings
from .errors import BackendUnavailable

logger = logging.getLogger(__name__)


class FallbackOnError:
    """
    Forwards public method calls to `primary`, replaying them on `fallback`
    when the primary raises BackendUnavailable.
    """

    def __init__(self, primary: Any, fallback: Any, name: str):
        self._primary = primary
        self._fallback = fallback
        self._name = name

    def __getattr__(self, attr: str) -> Any:
        target = getattr(self._primary, attr)
        if attr.startswith("_") or not callable(target):
            return target

        def call(*args: Any, **kwargs: Any) -> Any:
            try:
                return target(*args, **kwargs)
            except BackendUnavailable:
                logger.warning(f"{self._name}.{attr} failed on MongoDB, answering from the in-memory store.")
                return getattr(self._fallback, attr)(*args, **kwargs)

        return call


@dataclass
class AppContext:
    settings: Settings
    store: InMemoryStore
    provider: MongoClientProvider
    books: BookRepository
    reviews: ReviewRepository
    cart: CartRepository

    @property
    def backend(self) -> str:
        return "mongodb" if self.provider.is_configured() else "memory"

    def close(self) -> None:
        self.provider.close()


def build_context(
    settings: Optional[Settings] = None,
    client_factory: Optional[ClientFactory] = None,
    store: Optional[InMemoryStore] = None,
) -> AppContext:
    """
    Builds a fresh context. Nothing touches the network until a repository is used.

    Args:
        settings (Optional[Settings]): Defaults to the cached process settings.
        client_factory (Optional[ClientFactory]): Passed to MongoClientProvider.
        store (Optional[InMemoryStore]): Defaults to a new seeded store.

    Returns:
        AppContext: Context with repositories wired to the selected backend.
    """
    settings = settings or get_settings()
    store = store or InMemoryStore()
    provider = MongoClientProvider.from_settings(settings, client_factory=client_factory)

    memory_books = MemoryBookRepository(store)
    memory_reviews = MemoryReviewRepository(store, memory_books)
    memory_cart = MemoryCartRepository(store)

    if not provider.is_configured():
        logger.warning("MONGODB_URI is not configured. Falling back to the in-memory data store.")
        return AppContext(settings, store, provider, memory_books, memory_reviews, memory_cart)

    mongo_books = MongoBookRepository(provider, settings.MONGODB_BOOKS_COLLECTION, empty_fallback=memory_books)
    mongo_reviews = MongoReviewRepository(provider, settings.MONGODB_REVIEWS_COLLECTION, mongo_books)
    mongo_cart = MongoCartRepository(provider, settings.MONGODB_CART_COLLECTION)

    if settings.MONGODB_FALLBACK_ON_ERROR:
        logger.info("MongoDB failures will be answered from the in-memory store.")
        return AppContext(
            settings,
            store,
            provider,
            FallbackOnError(mongo_books, memory_books, "books"),
            FallbackOnError(mongo_reviews, memory_reviews, "reviews"),
            FallbackOnError(mongo_cart, memory_cart, "cart"),
        )
    return AppContext(settings, store, provider, mongo_books, mongo_reviews, mongo_cart)


@lru_cache
def get_context() -> AppContext:
    """
    Process-wide context used by the HTTP layer.

    Tests override this dependency with their own `build_context(...)`.
    """
    return build_context(get_settings())
