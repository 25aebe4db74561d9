"""
Script para poblar MongoDB con el catálogo de Amana Bookstore.

Vacía las colecciones de libros y reseñas (y la del carrito si se indica un
fichero) y las vuelve a llenar, escribiendo `_id` igual al campo `id` de cada
documento. Sin ficheros usa los datos de semilla incluidos en el paquete.

Uso:
    MONGODB_URI=mongodb://localhost:27017 python scripts/seed_mongo.py
    python scripts/seed_mongo.py --books data/books.json --reviews data/reviews.json --cart data/cart.json
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from amana_bookstore.core.config import Settings, get_settings
from amana_bookstore.core.errors import BackendUnavailable
from amana_bookstore.crud import MongoBookRepository, MongoCartRepository
from amana_bookstore.db.seed_data import default_books, default_reviews
from amana_bookstore.db.session import MongoClientProvider

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


def load_json(path: Path) -> List[Dict[str, Any]]:
    with path.open(encoding="utf-8") as handle:
        documents = json.load(handle)
    if not isinstance(documents, list):
        raise ValueError(f"Expected a JSON array in {path}")
    return documents


def seed_collection(collection, documents: List[Dict[str, Any]], id_field: str = "id") -> int:
    """
    Vacía la colección e inserta los documentos dados.

    Args:
        collection: Colección pymongo.
        documents (List[Dict[str, Any]]): Documentos a insertar.
        id_field (str): Campo copiado a `_id` cuando existe.

    Returns:
        int: Número de documentos insertados.
    """
    collection.delete_many({})
    if not documents:
        logger.info(f"Colección {collection.name} vaciada (sin documentos que insertar).")
        return 0

    with_ids = [
        {**doc, "_id": doc[id_field]} if doc.get(id_field) else dict(doc)
        for doc in documents
    ]
    collection.insert_many(with_ids, ordered=True)
    logger.info(f"Insertados {len(with_ids)} documentos en {collection.name}.")
    return len(with_ids)


def create_indexes(provider: MongoClientProvider, settings: Settings) -> None:
    """
    Crea los índices únicos que usan los repositorios: ISBN de libros y
    (userId, bookId) de las líneas del carrito.
    """
    MongoBookRepository(provider, settings.MONGODB_BOOKS_COLLECTION).ensure_indexes()
    MongoCartRepository(provider, settings.MONGODB_CART_COLLECTION).ensure_indexes()
    logger.info("Índices únicos verificados.")


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Seed the bookstore MongoDB collections.")
    parser.add_argument("--books", type=Path, help="JSON array of books (default: built-in seed data)")
    parser.add_argument("--reviews", type=Path, help="JSON array of reviews (default: built-in seed data)")
    parser.add_argument("--cart", type=Path, help="JSON array of cart lines (cart left untouched if omitted)")
    args = parser.parse_args(argv)

    settings = get_settings()
    provider = MongoClientProvider.from_settings(settings)
    if not provider.is_configured():
        logger.error("MONGODB_URI no está configurada.")
        return 1

    books = load_json(args.books) if args.books else [b.model_dump(by_alias=True) for b in default_books()]
    reviews = load_json(args.reviews) if args.reviews else [r.model_dump(by_alias=True) for r in default_reviews()]

    try:
        with provider.backend_errors("seeding collections"):
            seed_collection(provider.get_collection(settings.MONGODB_BOOKS_COLLECTION), books)
            seed_collection(provider.get_collection(settings.MONGODB_REVIEWS_COLLECTION), reviews)
            if args.cart:
                cart = load_json(args.cart)
                if cart:
                    seed_collection(provider.get_collection(settings.MONGODB_CART_COLLECTION), cart)
            create_indexes(provider, settings)
        logger.info("Población de MongoDB completada.")
        return 0
    except BackendUnavailable:
        logger.error("No se pudo poblar MongoDB. Ver logs anteriores.")
        return 1
    finally:
        provider.close()


if __name__ == "__main__":
    sys.exit(main())
