# tests/conftest.py
import os
import sys

import mongomock
import pytest

# Add the src directory to the Python path to allow imports
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
src_path = os.path.join(project_root, 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from amana_bookstore.core.config import Settings
from amana_bookstore.core.context import build_context
from amana_bookstore.db.memory import InMemoryStore
from amana_bookstore.db.seed_data import default_books, default_reviews

TEST_MONGODB_URI = "mongodb://localhost:27017/?appName=amana-tests"


def make_settings(**overrides) -> Settings:
    """Settings that ignore the developer's environment and .env file."""
    values = {
        "MONGODB_URI": None,
        "MONGODB_DB": "amana_bookstore_test",
        "MONGODB_FALLBACK_ON_ERROR": False,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def seed_mongo(client, settings: Settings) -> None:
    """Loads the built-in catalog into the mongomock collections, `_id` = `id`."""
    db = client[settings.MONGODB_DB]
    db[settings.MONGODB_BOOKS_COLLECTION].insert_many(
        [{**book.model_dump(by_alias=True), "_id": book.id} for book in default_books()]
    )
    db[settings.MONGODB_REVIEWS_COLLECTION].insert_many(
        [{**review.model_dump(by_alias=True), "_id": review.id} for review in default_reviews()]
    )


# --- Backends ---

@pytest.fixture
def memory_store():
    return InMemoryStore()


@pytest.fixture
def memory_ctx(memory_store):
    """Context with no MongoDB configured: everything lives in the fallback store."""
    return build_context(make_settings(), store=memory_store)


@pytest.fixture
def mongo_client():
    return mongomock.MongoClient()


@pytest.fixture
def mongo_settings():
    return make_settings(MONGODB_URI=TEST_MONGODB_URI)


@pytest.fixture
def mongo_ctx(mongo_client, mongo_settings):
    """Context wired to a seeded in-process MongoDB (mongomock)."""
    seed_mongo(mongo_client, mongo_settings)
    ctx = build_context(mongo_settings, client_factory=lambda uri, **options: mongo_client)
    yield ctx
    ctx.close()


@pytest.fixture(params=["memory", "mongo"])
def ctx(request):
    """Runs a test once per backend, both holding the same seeded catalog."""
    return request.getfixturevalue(f"{request.param}_ctx")
