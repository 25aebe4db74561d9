# tests/crud/test_crud_review.py
import pytest

from amana_bookstore.core.context import build_context
from amana_bookstore.core.errors import BackendUnavailable, ValidationError
from amana_bookstore.schemas.review import Review, ReviewSummary, round_rating, summarize_reviews

from conftest import make_settings, seed_mongo


def review_payload(book_id, **overrides):
    payload = {
        "bookId": book_id,
        "author": "Test Reviewer",
        "rating": 4,
        "title": "Solid read",
        "comment": "Would recommend.",
    }
    payload.update(overrides)
    return payload


def new_book(ctx):
    return ctx.books.create_book({
        "title": "A Fresh Title",
        "author": "New Author",
        "description": "Freshly added.",
        "price": 10,
        "image": "/images/books/fresh.jpg",
        "isbn": "9781111111111",
        "genre": ["Fiction"],
        "tags": ["new"],
        "datePublished": "2024-05-01",
        "pages": 100,
        "language": "English",
        "publisher": "Fresh House",
        "inStock": True,
        "featured": False,
    })


def test_create_review_updates_book_aggregate(ctx):
    book = new_book(ctx)
    assert (book.rating, book.review_count) == (0, 0)

    ctx.reviews.create_review(review_payload(book.id, rating=5))
    ctx.reviews.create_review(review_payload(int(book.id), rating="3"))

    updated = ctx.books.fetch_book_by_id(book.id)
    assert updated.rating == 4.0
    assert updated.review_count == 2


def test_create_review_on_seeded_book(ctx):
    # review-1a (5) and review-1b (4) are already there
    ctx.reviews.create_review(review_payload("1", rating=3))
    book = ctx.books.fetch_book_by_id("1")
    assert (book.rating, book.review_count) == (4.0, 3)


def test_created_review_fields(ctx):
    review = ctx.reviews.create_review(review_payload(" 2 ", author="  Zainab  ", verified="true"))

    assert review.id.startswith("review-")
    assert review.book_id == "2"
    assert review.author == "Zainab"
    assert review.verified is True
    assert review.timestamp.endswith("Z")
    assert ctx.reviews.fetch_review_by_id(review.id) == review


def test_create_review_defaults_verified_to_false(ctx):
    review = ctx.reviews.create_review(review_payload("2"))
    assert review.verified is False


def test_create_review_for_unknown_book_writes_nothing(ctx):
    before = len(ctx.reviews.fetch_all_reviews())
    with pytest.raises(ValidationError, match="Book not found"):
        ctx.reviews.create_review(review_payload("999"))
    assert len(ctx.reviews.fetch_all_reviews()) == before


@pytest.mark.parametrize("payload, message", [
    (None, "payload is required"),
    ({"author": "x"}, "bookId is required"),
])
def test_create_review_requires_payload_and_book(ctx, payload, message):
    with pytest.raises(ValidationError, match=message):
        ctx.reviews.create_review(payload)


@pytest.mark.parametrize("overrides, message", [
    ({"rating": 6}, "rating must be between 0 and 5"),
    ({"rating": "great"}, "rating must be a valid number"),
    ({"comment": "   "}, "comment must not be empty"),
    ({"timestamp": "last week"}, "timestamp must be a valid ISO timestamp"),
    ({"verified": "sometimes"}, "verified must be a boolean"),
])
def test_create_review_validation(ctx, overrides, message):
    with pytest.raises(ValidationError, match=message):
        ctx.reviews.create_review(review_payload("3", **overrides))
    assert ctx.books.fetch_book_by_id("3").review_count == 2


def test_create_review_rejects_duplicate_id(ctx):
    with pytest.raises(ValidationError, match="Review with the same id already exists"):
        ctx.reviews.create_review(review_payload("1", id="review-1a"))
    assert ctx.books.fetch_book_by_id("1").review_count == 2


def test_reviews_for_book_are_newest_first(ctx):
    ctx.reviews.create_review(review_payload("5", id="review-future", timestamp="2031-01-01T00:00:00Z"))
    ctx.reviews.create_review(review_payload("5", id="review-past", timestamp="1999-01-01T00:00:00Z"))

    ids = [review.id for review in ctx.reviews.fetch_reviews_for_book(5)]
    assert ids[0] == "review-future"
    assert ids[-1] == "review-past"
    assert len(ids) == 4

    timestamps = [review.timestamp for review in ctx.reviews.fetch_all_reviews()]
    assert timestamps == sorted(timestamps, reverse=True)


def test_fetch_reviews_for_invalid_or_unknown_book(ctx):
    assert ctx.reviews.fetch_reviews_for_book("undefined") == []
    assert ctx.reviews.fetch_reviews_for_book("404") == []


def test_fetch_review_by_id(ctx):
    review = ctx.reviews.fetch_review_by_id("review-3b")
    assert review.book_id == "3"
    assert review.author == "Jonas P."
    assert ctx.reviews.fetch_review_by_id("review-missing") is None
    assert ctx.reviews.fetch_review_by_id("") is None


def test_refresh_book_aggregate_recomputes_from_reviews(ctx):
    ctx.books.update_book_aggregate("6", ReviewSummary(count=0, average=0))
    summary = ctx.reviews.refresh_book_aggregate("6")
    assert summary == ReviewSummary(count=2, average=4.5)
    assert ctx.books.fetch_book_by_id("6").rating == 4.5


def test_refresh_aggregate_of_missing_book_logs_warning(memory_ctx, caplog):
    summary = memory_ctx.reviews.refresh_book_aggregate("404")
    assert summary == ReviewSummary(count=0, average=0)
    assert "Book 404 not found" in caplog.text


def test_mongo_reviews_match_numeric_book_ids(mongo_ctx, mongo_client, mongo_settings):
    collection = mongo_client[mongo_settings.MONGODB_DB][mongo_settings.MONGODB_REVIEWS_COLLECTION]
    collection.insert_one({
        "_id": "legacy", "id": "legacy", "bookId": 8, "author": "Old", "rating": 1,
        "title": "t", "comment": "c", "timestamp": "2020-01-01T00:00:00.000Z",
    })
    reviews = mongo_ctx.reviews.fetch_reviews_for_book("8")
    assert {review.id for review in reviews} == {"review-8a", "review-8b", "legacy"}
    assert all(review.book_id == "8" for review in reviews)
    assert mongo_ctx.reviews.refresh_book_aggregate("8") == ReviewSummary(count=3, average=3.0)


# --- Aggregate arithmetic ---

@pytest.mark.parametrize("value, expected", [
    (4.25, 4.3),
    (4.0, 4.0),
    (2.45, 2.5),
    (1.15, 1.1),
    (3.333333, 3.3),
])
def test_round_rating_half_up_on_exact_value(value, expected):
    assert round_rating(value) == expected


def test_summarize_reviews():
    def review(rating):
        return Review(id=f"r{rating}", book_id="1", author="a", rating=rating, title="t",
                      comment="c", timestamp="2024-01-01T00:00:00.000Z")

    assert summarize_reviews([]) == ReviewSummary(count=0, average=0)
    assert summarize_reviews([review(5), review(4), review(4), review(4)]) == ReviewSummary(count=4, average=4.3)


def test_failed_aggregate_refresh_keeps_the_stored_review(mongo_ctx, monkeypatch, caplog):
    def unavailable(book_id, summary):
        raise BackendUnavailable("MongoDB error while updating aggregate")

    monkeypatch.setattr(mongo_ctx.books, "update_book_aggregate", unavailable)

    review = mongo_ctx.reviews.create_review(review_payload("2", rating=1))

    assert mongo_ctx.reviews.fetch_review_by_id(review.id) == review
    assert len(mongo_ctx.reviews.fetch_reviews_for_book("2")) == 3
    # stale until the next review of book 2
    assert mongo_ctx.books.fetch_book_by_id("2").review_count == 2
    assert f"Review {review.id} stored but the aggregate of book 2 was not updated" in caplog.text


def test_fallback_does_not_replay_a_stored_review(mongo_client, mongo_settings, monkeypatch):
    settings = make_settings(MONGODB_URI=mongo_settings.MONGODB_URI, MONGODB_FALLBACK_ON_ERROR=True)
    seed_mongo(mongo_client, settings)
    ctx = build_context(settings, client_factory=lambda uri, **options: mongo_client)
    mongo_books = ctx.reviews._primary.books

    def unavailable(book_id, summary):
        raise BackendUnavailable("MongoDB error while updating aggregate")

    monkeypatch.setattr(mongo_books, "update_book_aggregate", unavailable)

    review = ctx.reviews.create_review(review_payload("2"))

    assert ctx.store.get_review(review.id) is None
    assert len(ctx.store.reviews_for_book("2")) == 2
    reviews = mongo_client[settings.MONGODB_DB][settings.MONGODB_REVIEWS_COLLECTION]
    assert reviews.count_documents({"bookId": "2"}) == 3
