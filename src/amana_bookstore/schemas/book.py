"""
Esquemas Pydantic para la entidad Book de Amana Bookstore.
Define el modelo normalizado que devuelven los repositorios, sea cual sea el backend.
"""

from typing import Any, Dict, List, Mapping

from pydantic import BaseModel, ConfigDict, Field

from ..db.identifiers import to_canonical_id

_TEXT_FIELDS = (
    "title", "author", "description", "image", "isbn",
    "datePublished", "language", "publisher",
)


class Book(BaseModel):
    """
    Libro normalizado.

    Atributos:
        id (str): Identificador canónico.
        price (float): Precio, nunca negativo.
        genre (List[str]): Géneros en orden.
        tags (List[str]): Etiquetas en orden.
        rating (float): Media de las reseñas (0-5), derivada.
        review_count (int): Número de reseñas, derivado.
    """
    id: str
    title: str = ""
    author: str = ""
    description: str = ""
    price: float = 0
    image: str = ""
    isbn: str = ""
    genre: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    date_published: str = Field("", alias="datePublished")
    pages: int = 0
    language: str = ""
    publisher: str = ""
    rating: float = 0
    review_count: int = Field(0, alias="reviewCount")
    in_stock: bool = Field(False, alias="inStock")
    featured: bool = False

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "Book":
        """
        Construye un Book a partir de un documento almacenado.

        Quita `_id`, canonicaliza `id` (o `_id` si falta) y rellena con valores
        por defecto los campos ausentes o nulos de documentos antiguos.

        Raises:
            InvalidIdentifier: Si el documento no tiene ningún id utilizable.
        """
        data = {key: value for key, value in doc.items() if key != "_id"}
        raw_id = data.pop("id", None)
        if raw_id is None:
            raw_id = doc.get("_id")
        data = {key: value for key, value in data.items() if value is not None}
        for key in _TEXT_FIELDS:
            if key in data and not isinstance(data[key], str):
                data[key] = str(data[key])
        return cls.model_validate({**data, "id": to_canonical_id(raw_id)})

    def to_document(self) -> Dict[str, Any]:
        """Forma almacenable (camelCase), con `_id` igual al id canónico."""
        return {**self.model_dump(by_alias=True), "_id": self.id}
