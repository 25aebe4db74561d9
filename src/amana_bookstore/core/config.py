"""
Configuration module for Amana Bookstore.

This module defines the Settings class, which loads environment variables
and provides application-wide configuration: the MongoDB connection string,
database and collection names, timeouts, the backend failure posture and
logging level.

Usage:
    Call `get_settings()` to access configuration throughout the project.
    Leaving MONGODB_URI unset makes every repository use the in-memory store.
"""

from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes:
        MONGODB_URI (Optional[str]): MongoDB connection string. Empty means "not configured".
        MONGODB_DB (str): Database name.
        MONGODB_BOOKS_COLLECTION (str): Collection holding books.
        MONGODB_REVIEWS_COLLECTION (str): Collection holding reviews.
        MONGODB_CART_COLLECTION (str): Collection holding cart lines.
        MONGODB_TIMEOUT_MS (int): Server selection / connect / socket timeout.
        MONGODB_FALLBACK_ON_ERROR (bool): Replay failed Mongo calls on the in-memory store.
        ENVIRONMENT (str): Current environment (e.g., 'production', 'development').
        LOG_LEVEL (str): Level passed to logging.basicConfig by entry points.
    """
    PROJECT_NAME: str = "Amana Bookstore API"
    API_PREFIX: str = "/api"

    MONGODB_URI: Optional[str] = None
    MONGODB_DB: str = "amana_bookstore"
    MONGODB_BOOKS_COLLECTION: str = "books"
    MONGODB_REVIEWS_COLLECTION: str = "reviews"
    MONGODB_CART_COLLECTION: str = "cart"
    MONGODB_TIMEOUT_MS: int = 5000
    MONGODB_FALLBACK_ON_ERROR: bool = False

    ENVIRONMENT: str = "production"
    LOG_LEVEL: str = "INFO"

    @property
    def mongo_configured(self) -> bool:
        """
        Whether a persistent document store is configured.

        Returns:
            bool: True when MONGODB_URI holds a non-blank value.
        """
        return bool(self.MONGODB_URI and self.MONGODB_URI.strip())

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader, so .env is parsed once per process.
    """
    return Settings()
