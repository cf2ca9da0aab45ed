"""
Upload, update and delete orchestration.

LibraryService is the only place that touches both the entity store and the
blob directory, so it owns the rules that keep them consistent: a rejected
upload leaves neither a blob nor an entity behind, and deleting a document
removes its blob (a blob that is already gone is only logged).
"""
import logging
from pathlib import Path
from typing import Any, BinaryIO, Dict, Iterable, List, Optional, Union

from app.core.errors import ConflictError, InvalidInputError, NotFoundError
from app.schemas.category import Category
from app.schemas.document import Document, DocumentCreate
from app.services.files import BlobStore
from app.services.pdf import count_pages
from app.services.query import category_label
from app.storage.base import LibraryStorage

logger = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"

# Values the client sends for "Uncategorized"
UNCATEGORIZED_SENTINELS = (None, "", "0", 0)


def normalize_category_id(value: Union[int, str, None]) -> Optional[int]:
    """Map the uncategorized sentinel to None and anything else to an int id."""
    if isinstance(value, str):
        value = value.strip()
    if value in UNCATEGORIZED_SENTINELS:
        return None
    if isinstance(value, bool):
        raise InvalidInputError("categoryId must be an integer")
    try:
        category_id = int(value)
    except (TypeError, ValueError):
        raise InvalidInputError(f"categoryId must be an integer, got {value!r}")
    if category_id < 0:
        raise InvalidInputError("categoryId must not be negative")
    return category_id


def default_title(original_filename: str) -> str:
    return Path(original_filename).stem


class LibraryService:
    def __init__(self, storage: LibraryStorage, blobs: BlobStore, max_upload_bytes: int):
        self.storage = storage
        self.blobs = blobs
        self.max_upload_bytes = max_upload_bytes

    # Categories

    def create_category(self, name: str) -> Category:
        name = (name or "").strip()
        if not name:
            raise InvalidInputError("Category name must not be blank")
        if self.storage.get_category_by_name(name) is not None:
            raise ConflictError("Category already exists", details={"name": name})
        category = self.storage.create_category(name)
        logger.info("Category %s created: %s", category.id, category.name)
        return category

    def seed_default_categories(self, names: Iterable[str]) -> List[Category]:
        """Create each default category that is not there yet."""
        created = []
        for name in names:
            name = name.strip()
            if name and self.storage.get_category_by_name(name) is None:
                created.append(self.storage.create_category(name))
        if created:
            logger.info("Seeded default categories: %s", ", ".join(c.name for c in created))
        return created

    # Documents

    def get_document(self, document_id: int) -> Document:
        document = self.storage.get_document(document_id)
        if document is None:
            raise NotFoundError("Document not found")
        return document

    def open_document(self, document_id: int) -> Document:
        """Fetch a document for display and record that it was opened."""
        return self.storage.record_access(document_id)

    def create_document_from_upload(
        self,
        stream: BinaryIO,
        content_type: Optional[str],
        original_filename: Optional[str],
        title: Optional[str] = None,
        category_id: Union[int, str, None] = None,
    ) -> Document:
        if not original_filename:
            raise InvalidInputError("No file uploaded")
        if content_type != PDF_MIME_TYPE:
            raise InvalidInputError(
                f"Only PDF files are allowed, got {content_type or 'unknown type'}",
                details={"content_type": content_type},
            )
        category_id = normalize_category_id(category_id)
        title = (title or "").strip() or default_title(original_filename)
        if not title:
            raise InvalidInputError("Document title must not be blank")

        blob_name, size = self.blobs.save(stream, original_filename, self.max_upload_bytes)
        try:
            total_pages = count_pages(self.blobs.root / blob_name)
            document = self.storage.create_document(
                DocumentCreate(
                    title=title,
                    filename=blob_name,
                    size=size,
                    category_id=category_id,
                    thumbnail=None,
                    total_pages=total_pages,
                )
            )
        except Exception:
            self.blobs.discard(blob_name)
            raise

        logger.info(
            "Document %s uploaded: %r (%s pages, %s bytes, %s)",
            document.id,
            document.title,
            total_pages,
            size,
            category_label(document, self.storage.get_all_categories()),
        )
        return document

    def update_document(self, document_id: int, fields: Dict[str, Any]) -> Document:
        fields = dict(fields)
        if "category_id" in fields:
            fields["category_id"] = normalize_category_id(fields["category_id"])
        return self.storage.update_document(document_id, fields)

    def delete_document(self, document_id: int) -> None:
        document = self.get_document(document_id)
        # blob first: if the disk refuses, the entity stays and the caller sees IOFailure
        if not self.blobs.delete(document.filename):
            logger.warning(
                "Backing file %s for document %s was already missing", document.filename, document_id
            )
        if not self.storage.delete_document(document_id):
            # removed by a concurrent delete between the lookup and here
            raise NotFoundError("Document not found")
        logger.info("Document %s deleted", document_id)

    def resolve_blob(self, filename: str) -> Path:
        return self.blobs.resolve(filename)
