from .crud_book import BookRepository, MemoryBookRepository, MongoBookRepository, validate_book_payload
from .crud_review import MemoryReviewRepository, MongoReviewRepository, ReviewRepository
from .crud_cart import CartRepository, MemoryCartRepository, MongoCartRepository

__all__ = [
    "BookRepository",
    "MemoryBookRepository",
    "MongoBookRepository",
    "validate_book_payload",
    "ReviewRepository",
    "MemoryReviewRepository",
    "MongoReviewRepository",
    "CartRepository",
    "MemoryCartRepository",
    "MongoCartRepository",
]
