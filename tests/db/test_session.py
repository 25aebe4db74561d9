# tests/db/test_session.py
import threading
import time

import mongomock
import pytest
from pymongo.errors import AutoReconnect, ServerSelectionTimeoutError

from amana_bookstore.core.errors import BackendUnavailable
from amana_bookstore.db.session import MongoClientProvider


def test_not_configured_without_uri():
    assert MongoClientProvider(None, "db").is_configured() is False
    assert MongoClientProvider("   ", "db").is_configured() is False
    assert MongoClientProvider("mongodb://localhost", "db").is_configured() is True


def test_get_client_when_not_configured_raises_without_calling_factory():
    calls = []
    provider = MongoClientProvider(None, "db", client_factory=lambda *a, **k: calls.append(1))
    with pytest.raises(BackendUnavailable):
        provider.get_client()
    assert calls == []


def test_client_is_memoized_and_receives_timeouts():
    received = {}

    def factory(uri, **options):
        received.update(options, uri=uri)
        return mongomock.MongoClient()

    provider = MongoClientProvider("mongodb://localhost", "bookstore", timeout_ms=1234, client_factory=factory)
    first = provider.get_client()
    assert provider.get_client() is first
    assert received["uri"] == "mongodb://localhost"
    assert received["serverSelectionTimeoutMS"] == 1234
    assert received["socketTimeoutMS"] == 1234
    assert provider.get_collection("books").name == "books"


def test_concurrent_first_callers_share_one_client():
    created = []
    lock = threading.Lock()

    def slow_factory(uri, **options):
        time.sleep(0.05)
        client = mongomock.MongoClient()
        with lock:
            created.append(client)
        return client

    provider = MongoClientProvider("mongodb://localhost", "db", client_factory=slow_factory)
    barrier = threading.Barrier(10)
    seen = []

    def worker():
        barrier.wait()
        seen.append(provider.get_client())

    threads = [threading.Thread(target=worker) for _ in range(10)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(created) == 1
    assert all(client is created[0] for client in seen)


def test_client_creation_failure_is_backend_unavailable():
    def failing(uri, **options):
        raise ServerSelectionTimeoutError("no servers")

    provider = MongoClientProvider("mongodb://nowhere", "db", client_factory=failing)
    with pytest.raises(BackendUnavailable) as exc_info:
        provider.get_client()
    assert isinstance(exc_info.value.__cause__, ServerSelectionTimeoutError)


def test_backend_errors_wraps_and_logs(caplog):
    provider = MongoClientProvider("mongodb://localhost", "db")
    with pytest.raises(BackendUnavailable, match="fetching books"):
        with provider.backend_errors("fetching books"):
            raise AutoReconnect("connection reset")
    assert "MongoDB error while fetching books" in caplog.text


def test_close_forgets_the_client():
    provider = MongoClientProvider("mongodb://localhost", "db", client_factory=lambda uri, **o: mongomock.MongoClient())
    first = provider.get_client()
    provider.close()
    assert provider.get_client() is not first
