from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...core.context import AppContext, get_context
from ...schemas.cart import CartItemWithBook, CartLineIn, CartResponse

router = APIRouter(prefix="/cart", tags=["Cart"])


def build_cart_response(ctx: AppContext, session_id: str) -> CartResponse:
    """
    Cart lines of a session, each enriched with its current book (None if the
    book no longer exists).
    """
    items = ctx.cart.fetch_cart_by_user_id(session_id)
    if not items:
        return CartResponse(session_id=session_id, items=[])

    book_ids = list(dict.fromkeys(item.book_id for item in items))
    books = {book.id: book for book in ctx.books.fetch_books_by_ids(book_ids)}
    enriched = [
        CartItemWithBook(**item.model_dump(), book=books.get(item.book_id))
        for item in items
    ]
    return CartResponse(session_id=session_id, items=enriched)


def _require_session(session_id: Optional[str]) -> str:
    if not session_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing sessionId query parameter",
        )
    return session_id


@router.get("", response_model=CartResponse)
def get_cart(
    session_id: Optional[str] = Query(None, alias="sessionId"),
    ctx: AppContext = Depends(get_context),
):
    return build_cart_response(ctx, _require_session(session_id))


@router.post("", response_model=CartResponse)
def add_to_cart(payload: CartLineIn, ctx: AppContext = Depends(get_context)):
    """
    Add a book to the cart (quantity defaults to 1).

    Missing sessionId/bookId => 400, unknown book => 404.
    """
    if not payload.session_id or payload.book_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="sessionId and bookId are required",
        )

    book = ctx.books.fetch_book_by_id(payload.book_id)
    if book is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Book not found")

    quantity = payload.quantity if payload.quantity is not None else 1
    ctx.cart.add_to_cart(payload.session_id, book.id, quantity)
    return build_cart_response(ctx, payload.session_id)


@router.put("", response_model=CartResponse)
def update_cart_item(payload: CartLineIn, ctx: AppContext = Depends(get_context)):
    """
    Set the quantity of a line (created if absent). Quantity must be a number >= 1.
    """
    quantity = payload.quantity
    if (
        not payload.session_id
        or payload.book_id is None
        or isinstance(quantity, bool)
        or not isinstance(quantity, (int, float))
    ):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="sessionId, bookId, and quantity are required",
        )
    if quantity < 1:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Quantity must be at least 1")

    ctx.cart.update_cart_item_quantity(payload.session_id, payload.book_id, quantity)
    return build_cart_response(ctx, payload.session_id)


@router.delete("", response_model=CartResponse)
def remove_cart_item(
    session_id: Optional[str] = Query(None, alias="sessionId"),
    book_id: Optional[str] = Query(None, alias="bookId"),
    ctx: AppContext = Depends(get_context),
):
    """
    Without `bookId` the whole cart is cleared; with it, one line is removed
    (404 if there was no such line).
    """
    session_id = _require_session(session_id)
    if not book_id:
        ctx.cart.clear_cart(session_id)
        return CartResponse(session_id=session_id, items=[])

    if not ctx.cart.remove_from_cart(session_id, book_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Cart item not found")
    return build_cart_response(ctx, session_id)
