"""
Storage contract for categories and documents.

LibraryStorage is the only thing request handlers and LibraryService know
about; MemStorage and SqlStorage are interchangeable behind it. The read-only
projections have default implementations on top of get_all_documents() so a
backend only needs to provide the primitive CRUD operations, and may override
a projection when it can answer it more cheaply.
"""
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from app.core.errors import InvalidInputError
from app.schemas.category import Category
from app.schemas.document import Document, DocumentCreate
from app.services.query import filter_documents, most_recent

Clock = Callable[[], datetime]

# Fields a partial update may touch. id and uploaded_at are fixed at creation.
UPDATABLE_FIELDS = frozenset(
    {"title", "filename", "size", "category_id", "thumbnail", "favorite", "total_pages", "last_opened_at"}
)
IMMUTABLE_FIELDS = frozenset({"id", "uploaded_at"})


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def check_update_fields(fields: Dict[str, Any]) -> None:
    """Raise InvalidInputError if a partial update names an immutable or unknown field."""
    immutable = IMMUTABLE_FIELDS.intersection(fields)
    if immutable:
        raise InvalidInputError(
            f"Cannot update immutable field(s): {', '.join(sorted(immutable))}",
            details={"fields": sorted(immutable)},
        )
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        raise InvalidInputError(
            f"Unknown document field(s): {', '.join(sorted(unknown))}",
            details={"fields": sorted(unknown)},
        )


def merge_document(current: Document, fields: Dict[str, Any]) -> Document:
    """
    Apply a partial update to `current` and re-run validation, so values are
    coerced (timestamps to UTC, "true" to True) the same way on every backend.
    """
    try:
        return Document.model_validate({**current.model_dump(), **fields})
    except ValidationError as e:
        errors = [f"{'.'.join(map(str, err['loc']))}: {err['msg']}" for err in e.errors()]
        raise InvalidInputError("Invalid document field value(s)", details={"errors": errors}) from e


class LibraryStorage(ABC):
    """Authoritative collection of Categories and Documents."""

    name = "abstract"

    def __init__(self, clock: Optional[Clock] = None):
        self._clock = clock or utc_now

    def now(self) -> datetime:
        return self._clock()

    def close(self) -> None:
        """Release backend resources. Called on application shutdown."""

    # Categories

    @abstractmethod
    def get_all_categories(self) -> List[Category]:
        ...

    @abstractmethod
    def get_category(self, category_id: int) -> Optional[Category]:
        ...

    @abstractmethod
    def get_category_by_name(self, name: str) -> Optional[Category]:
        """Case-insensitive exact match."""

    @abstractmethod
    def create_category(self, name: str) -> Category:
        """Store a category under the next id. Does not check for duplicates."""

    # Documents

    @abstractmethod
    def get_all_documents(self) -> List[Document]:
        """Every document, in id order."""

    @abstractmethod
    def get_document(self, document_id: int) -> Optional[Document]:
        """Pure read; never touches last_opened_at."""

    @abstractmethod
    def create_document(self, document: DocumentCreate) -> Document:
        """Assign the next id and stamp uploaded_at and last_opened_at with now()."""

    @abstractmethod
    def update_document(self, document_id: int, fields: Dict[str, Any]) -> Document:
        """
        Merge `fields` into the stored document and return the result.

        Raises:
            NotFoundError: no document with that id.
            InvalidInputError: `fields` names id, uploaded_at or an unknown field,
                or a value that does not validate.
        """

    @abstractmethod
    def delete_document(self, document_id: int) -> bool:
        """Remove the entity. Returns whether it existed. Never touches files."""

    def record_access(self, document_id: int) -> Document:
        """Mark a document as opened now. Raises NotFoundError if absent."""
        return self.update_document(document_id, {"last_opened_at": self.now()})

    # Projections

    def get_documents_by_category(self, category_id: int) -> List[Document]:
        return filter_documents(self.get_all_documents(), category_id=category_id)

    def search_documents(self, query: str) -> List[Document]:
        return [
            d for d in self.get_all_documents()
            if query.casefold() in d.title.casefold()
        ]

    def get_favorite_documents(self) -> List[Document]:
        return filter_documents(self.get_all_documents(), favorite=True)

    def get_recent_documents(self, limit: int = 10) -> List[Document]:
        return most_recent(self.get_all_documents(), limit)
