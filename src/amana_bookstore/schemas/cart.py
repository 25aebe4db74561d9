"""
Pydantic schemas for cart lines and the cart response.
"""

from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..db.identifiers import to_canonical_id
from .book import Book


class CartItem(BaseModel):
    """
    One cart line. At most one exists per (session, book).
    """
    id: str
    book_id: str = Field(alias="bookId")
    quantity: int = Field(ge=1)
    added_at: str = Field(alias="addedAt")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "CartItem":
        return cls.model_validate({
            "id": doc.get("id") or str(doc.get("_id")),
            "bookId": to_canonical_id(doc.get("bookId")),
            "quantity": doc.get("quantity"),
            "addedAt": doc.get("addedAt"),
        })


class CartItemWithBook(CartItem):
    book: Optional[Book] = None


class CartResponse(BaseModel):
    """
    Cart as returned by the HTTP layer, each line enriched with its book (or None).
    """
    session_id: str = Field(alias="sessionId")
    items: List[CartItemWithBook] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)


class CartLineIn(BaseModel):
    """Request body for POST/PUT /cart. Field checks happen in the repository."""
    session_id: Optional[str] = Field(None, alias="sessionId")
    book_id: Optional[Any] = Field(None, alias="bookId")
    quantity: Optional[Any] = None

    model_config = ConfigDict(populate_by_name=True)

    def as_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)
