"""
Operaciones CRUD para la entidad Book.

`BookRepository` reúne la validación y la lógica común; `MemoryBookRepository`
y `MongoBookRepository` implementan el acceso al almacén. El contexto de la
aplicación elige una de las dos al arrancar.
"""

import logging
from abc import ABC, abstractmethod
from contextlib import nullcontext
from typing import Any, ContextManager, Iterable, List, Mapping, Optional

from pymongo import ASCENDING
from pymongo.errors import DuplicateKeyError

from ..core.errors import DuplicateKey, InvalidIdentifier, ValidationError
from ..core.validation import (
    ensure_boolean,
    ensure_integer,
    ensure_non_empty_string,
    ensure_non_negative,
    ensure_number,
    ensure_rating,
    ensure_string_array,
)
from ..db.identifiers import build_id_match_predicate, to_canonical_id
from ..db.memory import InMemoryStore
from ..db.session import MongoClientProvider, ensure_unique_index
from ..schemas.book import Book
from ..schemas.review import ReviewSummary

logger = logging.getLogger(__name__)

_DUPLICATE_BOOK = "Book with the same id or ISBN already exists"
_INSERT_ATTEMPTS = 5


def _canonical_or_none(value: Any) -> Optional[str]:
    try:
        return to_canonical_id(value)
    except InvalidIdentifier:
        return None


def validate_book_payload(payload: Mapping[str, Any], book_id: str) -> Book:
    """
    Valida todos los campos de una petición de alta de libro.

    Args:
        payload (Mapping[str, Any]): Datos recibidos (nombres camelCase).
        book_id (str): Id canónico ya resuelto.

    Returns:
        Book: Libro normalizado listo para guardar.

    Raises:
        ValidationError: Con el mensaje del primer campo inválido.
    """
    rating = payload.get("rating")
    review_count = payload.get("reviewCount")
    pages = ensure_integer(payload.get("pages"), "pages")
    if pages < 0:
        raise ValidationError("pages must not be negative")
    count = 0
    if review_count is not None:
        count = ensure_integer(review_count, "reviewCount")
        if count < 0:
            raise ValidationError("reviewCount must not be negative")

    return Book(
        id=book_id,
        title=ensure_non_empty_string(payload.get("title"), "title"),
        author=ensure_non_empty_string(payload.get("author"), "author"),
        description=ensure_non_empty_string(payload.get("description"), "description"),
        image=ensure_non_empty_string(payload.get("image"), "image"),
        isbn=ensure_non_empty_string(payload.get("isbn"), "isbn"),
        genre=ensure_string_array(payload.get("genre"), "genre"),
        tags=ensure_string_array(payload.get("tags"), "tags"),
        date_published=ensure_non_empty_string(payload.get("datePublished"), "datePublished"),
        language=ensure_non_empty_string(payload.get("language"), "language"),
        publisher=ensure_non_empty_string(payload.get("publisher"), "publisher"),
        price=ensure_non_negative(payload.get("price"), "price"),
        pages=pages,
        rating=ensure_rating(rating, "rating") if rating is not None else 0,
        review_count=count,
        in_stock=ensure_boolean(payload.get("inStock"), "inStock"),
        featured=ensure_boolean(payload.get("featured"), "featured"),
    )


class BookRepository(ABC):
    """Book access common to every backend."""

    @abstractmethod
    def fetch_all_books(self) -> List[Book]:
        ...

    @abstractmethod
    def fetch_book_by_id(self, book_id: Any) -> Optional[Book]:
        """Libro por id en cualquier representación; None si no existe o el id es inválido."""

    @abstractmethod
    def update_book_aggregate(self, book_id: Any, summary: ReviewSummary) -> bool:
        """Escribe rating/reviewCount. Devuelve False si el libro no existe."""

    @abstractmethod
    def _fetch_many(self, canonical_ids: List[str]) -> List[Book]:
        ...

    @abstractmethod
    def _id_or_isbn_taken(self, book_id: str, isbn: str) -> bool:
        ...

    @abstractmethod
    def _next_book_id(self) -> int:
        ...

    @abstractmethod
    def _insert(self, book: Book) -> None:
        ...

    def _write_lock(self) -> ContextManager:
        return nullcontext()

    def fetch_books_by_ids(self, ids: Iterable[Any]) -> List[Book]:
        """
        Recupera varios libros conservando el orden de `ids`.

        Los ids sin coincidencia o inválidos se omiten sin error y los repetidos
        solo aparecen una vez.
        """
        ordered: List[str] = []
        for value in ids:
            canonical = _canonical_or_none(value)
            if canonical is not None and canonical not in ordered:
                ordered.append(canonical)
        if not ordered:
            return []

        by_id = {book.id: book for book in self._fetch_many(ordered)}
        return [by_id[book_id] for book_id in ordered if book_id in by_id]

    def create_book(self, payload: Mapping[str, Any]) -> Book:
        """
        Crea un libro validado.

        Si no se indica `id` se asigna el siguiente entero por encima del mayor
        id numérico existente.

        Raises:
            ValidationError: Campo inválido, o id/ISBN ya existentes.
        """
        if not isinstance(payload, Mapping):
            raise ValidationError("payload is required")

        raw_id = payload.get("id")
        supplied_id = to_canonical_id(raw_id) if raw_id is not None else None
        book = validate_book_payload(payload, supplied_id or "0")

        with self._write_lock():
            attempt = 1
            while True:
                if supplied_id is None:
                    book = book.model_copy(update={"id": str(self._next_book_id())})
                if self._id_or_isbn_taken(book.id, book.isbn):
                    raise DuplicateKey(_DUPLICATE_BOOK)
                try:
                    self._insert(book)
                    break
                except DuplicateKey:
                    # Another writer took the id between the check and the insert.
                    if supplied_id is not None or attempt >= _INSERT_ATTEMPTS:
                        raise
                    logger.warning(f"Book id {book.id} was taken concurrently, retrying with the next id.")
                    attempt += 1

        logger.info(f"Book {book.id} created (ISBN {book.isbn}).")
        return book


class MemoryBookRepository(BookRepository):
    def __init__(self, store: InMemoryStore):
        self.store = store

    def _write_lock(self) -> ContextManager:
        return self.store.lock

    def fetch_all_books(self) -> List[Book]:
        return self.store.list_books()

    def fetch_book_by_id(self, book_id: Any) -> Optional[Book]:
        canonical = _canonical_or_none(book_id)
        if canonical is None:
            return None
        return self.store.get_book(canonical)

    def update_book_aggregate(self, book_id: Any, summary: ReviewSummary) -> bool:
        canonical = _canonical_or_none(book_id)
        if canonical is None:
            return False
        return self.store.set_book_aggregate(canonical, summary)

    def _fetch_many(self, canonical_ids: List[str]) -> List[Book]:
        books = (self.store.get_book(book_id) for book_id in canonical_ids)
        return [book for book in books if book is not None]

    def _id_or_isbn_taken(self, book_id: str, isbn: str) -> bool:
        return self.store.get_book(book_id) is not None or self.store.find_book_by_isbn(isbn) is not None

    def _next_book_id(self) -> int:
        return self.store.max_numeric_book_id() + 1

    def _insert(self, book: Book) -> None:
        self.store.insert_book(book)


class MongoBookRepository(BookRepository):
    """
    Books stored in a MongoDB collection.

    Args:
        provider (MongoClientProvider): Shared client provider.
        collection_name (str): Books collection.
        empty_fallback (Optional[BookRepository]): Served by every read
            (`fetch_all_books`, `fetch_book_by_id`, `fetch_books_by_ids`) while
            the collection holds no documents. Writes always go to MongoDB, so the
            first created book ends the fallback.
    """

    def __init__(
        self,
        provider: MongoClientProvider,
        collection_name: str,
        empty_fallback: Optional[BookRepository] = None,
    ):
        self.provider = provider
        self.collection_name = collection_name
        self.empty_fallback = empty_fallback
        self._indexes_ready = False

    def ensure_indexes(self) -> None:
        """Unique ISBN index; documents without an isbn field are not indexed."""
        collection = self.provider.get_collection(self.collection_name)
        ensure_unique_index(collection, [("isbn", ASCENDING)], name="isbn_unique", sparse=True)
        self._indexes_ready = True

    def _collection(self):
        if not self._indexes_ready:
            self.ensure_indexes()
        return self.provider.get_collection(self.collection_name)

    def _normalize_all(self, docs) -> List[Book]:
        books = []
        for doc in docs:
            try:
                books.append(Book.from_document(doc))
            except InvalidIdentifier:
                logger.warning(f"Skipping book document without a usable id: _id={doc.get('_id')!r}")
        return books

    def fetch_all_books(self) -> List[Book]:
        with self.provider.backend_errors("fetching books"):
            docs = list(self._collection().find({}))
        if not docs and self.empty_fallback is not None:
            logger.warning("Books collection is empty, serving the static catalog.")
            return self.empty_fallback.fetch_all_books()
        return self._normalize_all(docs)

    def _serving_static_catalog(self) -> bool:
        if self.empty_fallback is None:
            return False
        with self.provider.backend_errors("checking for an empty books collection"):
            return self._collection().find_one({}, {"_id": 1}) is None

    def fetch_book_by_id(self, book_id: Any) -> Optional[Book]:
        if _canonical_or_none(book_id) is None:
            return None
        predicate = build_id_match_predicate([book_id])
        with self.provider.backend_errors(f"fetching book {book_id!r}"):
            doc = self._collection().find_one(predicate)
        if doc is None and self._serving_static_catalog():
            return self.empty_fallback.fetch_book_by_id(book_id)
        return Book.from_document(doc) if doc else None

    def update_book_aggregate(self, book_id: Any, summary: ReviewSummary) -> bool:
        if _canonical_or_none(book_id) is None:
            return False
        predicate = build_id_match_predicate([book_id])
        with self.provider.backend_errors(f"updating aggregate of book {book_id!r}"):
            result = self._collection().update_one(
                predicate,
                {"$set": {"rating": summary.average, "reviewCount": summary.count}},
            )
        return result.matched_count > 0

    def _fetch_many(self, canonical_ids: List[str]) -> List[Book]:
        predicate = build_id_match_predicate(canonical_ids)
        with self.provider.backend_errors("fetching books by ids"):
            docs = list(self._collection().find(predicate))
        if not docs and self._serving_static_catalog():
            return self.empty_fallback._fetch_many(canonical_ids)
        return self._normalize_all(docs)

    def _id_or_isbn_taken(self, book_id: str, isbn: str) -> bool:
        predicate = {"$or": [build_id_match_predicate([book_id]), {"isbn": isbn}]}
        with self.provider.backend_errors("checking book uniqueness"):
            return self._collection().find_one(predicate) is not None

    def _next_book_id(self) -> int:
        with self.provider.backend_errors("computing next book id"):
            docs = list(self._collection().find({}, {"id": 1, "_id": 1}))
        highest = 0
        for doc in docs:
            raw = doc.get("id", doc.get("_id"))
            try:
                highest = max(highest, int(to_canonical_id(raw)))
            except (InvalidIdentifier, ValueError):
                continue
        return highest + 1

    def _insert(self, book: Book) -> None:
        with self.provider.backend_errors(f"inserting book {book.id}"):
            try:
                self._collection().insert_one(book.to_document())
            except DuplicateKeyError:
                raise DuplicateKey(_DUPLICATE_BOOK) from None
