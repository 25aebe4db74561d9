from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status

from ...core.context import AppContext, get_context
from ...schemas.book import Book

router = APIRouter(prefix="/books", tags=["Books"])


@router.get("", response_model=List[Book])
def list_books(ctx: AppContext = Depends(get_context)):
    """Whole catalog."""
    return ctx.books.fetch_all_books()


@router.get("/batch", response_model=List[Book])
def get_books_by_ids(
    ids: List[str] = Query([]),
    ctx: AppContext = Depends(get_context),
):
    """
    Several books at once, e.g. `/books/batch?ids=3&ids=1`.

    Order follows `ids`; unknown ids are left out.
    """
    return ctx.books.fetch_books_by_ids(ids)


@router.get("/{book_id}", response_model=Book)
def get_book(book_id: str, ctx: AppContext = Depends(get_context)):
    """
    One book, or 404.

    With an empty MongoDB books collection this answers from the static
    catalog, the same catalog `GET /books` lists.
    """
    book = ctx.books.fetch_book_by_id(book_id)
    if book is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Book not found")
    return book


@router.post("", response_model=Book, status_code=status.HTTP_201_CREATED)
def create_book(
    payload: Dict[str, Any] = Body(...),
    ctx: AppContext = Depends(get_context),
):
    """
    Create a book.

    Validation errors and id/ISBN collisions => 400.
    """
    return ctx.books.create_book(payload)
