"""
Gestión de la conexión a MongoDB para Amana Bookstore.

Proporciona `MongoClientProvider`, que decide si hay un almacén persistente
configurado y crea de forma perezosa un único `MongoClient` por proveedor,
aunque varios hilos lo pidan a la vez por primera vez.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Any, Callable, Iterator, List, Optional, Tuple

from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, PyMongoError
from pymongo.server_api import ServerApi

from ..core.config import Settings
from ..core.errors import BackendUnavailable

logger = logging.getLogger(__name__)

ClientFactory = Callable[..., Any]
IndexKeys = List[Tuple[str, int]]


class MongoClientProvider:
    """
    Memoized MongoDB client for one application context.

    Args:
        uri (Optional[str]): Connection string; blank or None means "not configured".
        db_name (str): Database holding the bookstore collections.
        timeout_ms (int): Applied to server selection, connect and socket operations.
        client_factory (Optional[ClientFactory]): Builds the client; defaults to
            `pymongo.MongoClient`. Tests pass `mongomock.MongoClient`.
    """

    def __init__(
        self,
        uri: Optional[str],
        db_name: str,
        timeout_ms: int = 5000,
        client_factory: Optional[ClientFactory] = None,
    ):
        self.uri = uri.strip() if uri else None
        self.db_name = db_name
        self.timeout_ms = timeout_ms
        self._client_factory = client_factory or MongoClient
        self._client = None
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Settings, client_factory: Optional[ClientFactory] = None) -> "MongoClientProvider":
        return cls(
            settings.MONGODB_URI,
            settings.MONGODB_DB,
            timeout_ms=settings.MONGODB_TIMEOUT_MS,
            client_factory=client_factory,
        )

    def is_configured(self) -> bool:
        return bool(self.uri)

    def _create_client(self):
        options = {
            "serverSelectionTimeoutMS": self.timeout_ms,
            "connectTimeoutMS": self.timeout_ms,
            "socketTimeoutMS": self.timeout_ms,
        }
        if self._client_factory is MongoClient:
            options["server_api"] = ServerApi("1", strict=True, deprecation_errors=True)
        return self._client_factory(self.uri, **options)

    def get_client(self):
        """
        Returns the shared client, creating it on first use.

        The lock plus re-check means concurrent first callers all receive the
        same client and only one is ever constructed.

        Raises:
            BackendUnavailable: If no connection string is configured or the
                client cannot be constructed.
        """
        if self._client is not None:
            return self._client
        if not self.is_configured():
            raise BackendUnavailable("MONGODB_URI is not configured.")
        with self._lock:
            if self._client is None:
                try:
                    self._client = self._create_client()
                except PyMongoError as exc:
                    logger.exception(f"Could not create MongoDB client for database '{self.db_name}': {exc}")
                    raise BackendUnavailable("Could not connect to MongoDB") from exc
                logger.info(f"MongoDB client created for database '{self.db_name}'.")
        return self._client

    def get_database(self) -> Database:
        return self.get_client()[self.db_name]

    def get_collection(self, name: str) -> Collection:
        return self.get_database()[name]

    @contextmanager
    def backend_errors(self, action: str) -> Iterator[None]:
        """
        Logs a failing MongoDB call and re-raises it as BackendUnavailable.

        Usage:
            with provider.backend_errors("fetching books"):
                docs = list(collection.find({}))
        """
        try:
            yield
        except PyMongoError as exc:
            logger.exception(f"MongoDB error while {action}: {exc}")
            raise BackendUnavailable(f"MongoDB error while {action}") from exc

    def close(self) -> None:
        with self._lock:
            if self._client is not None:
                self._client.close()
                self._client = None
                logger.info("MongoDB client closed.")


def ensure_unique_index(collection: Collection, keys: IndexKeys, name: str, **options: Any) -> bool:
    """
    Creates a unique index on `collection` if it does not exist yet.

    Args:
        collection (Collection): Target collection.
        keys (IndexKeys): Index keys, e.g. `[("isbn", ASCENDING)]`.
        name (str): Index name.
        **options: Extra `create_index` options (e.g. `sparse=True`).

    Returns:
        bool: False when existing documents already collide on `keys`. The
            collection is then used without the index and the error is logged.

    Raises:
        PyMongoError: Any other failure, left to the caller's `backend_errors`.
    """
    try:
        collection.create_index(keys, name=name, unique=True, **options)
    except DuplicateKeyError as exc:
        logger.error(f"Unique index '{name}' not created on '{collection.name}', existing documents collide: {exc}")
        return False
    logger.debug(f"Unique index '{name}' ensured on '{collection.name}'.")
    return True
