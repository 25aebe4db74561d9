from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status

from ...core.context import AppContext, get_context
from ...schemas.review import Review

router = APIRouter(prefix="/reviews", tags=["Reviews"])


@router.get("", response_model=List[Review])
def list_reviews(
    book_id: Optional[str] = Query(None, alias="bookId"),
    ctx: AppContext = Depends(get_context),
):
    """
    Reviews of one book when `bookId` is given, otherwise all reviews.
    Newest first in both cases.
    """
    if book_id:
        return ctx.reviews.fetch_reviews_for_book(book_id)
    return ctx.reviews.fetch_all_reviews()


@router.get("/{review_id}", response_model=Review)
def get_review(review_id: str, ctx: AppContext = Depends(get_context)):
    review = ctx.reviews.fetch_review_by_id(review_id)
    if review is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Review not found")
    return review


@router.post("", response_model=Review, status_code=status.HTTP_201_CREATED)
def create_review(
    payload: Dict[str, Any] = Body(...),
    ctx: AppContext = Depends(get_context),
):
    """
    Create a review and refresh the book's rating and reviewCount.

    Unknown book or invalid fields => 400.
    """
    return ctx.reviews.create_review(payload)
