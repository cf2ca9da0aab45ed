import threading
from typing import Any, Dict, List, Optional

from app.core.errors import NotFoundError
from app.schemas.category import Category
from app.schemas.document import Document, DocumentCreate
from app.storage.base import Clock, LibraryStorage, check_update_fields, merge_document


class MemStorage(LibraryStorage):
    """
    Dict-backed store. Nothing survives the process.

    Counters only move forward, so an id is never handed out twice even after
    the document holding it is deleted. Every public method runs under one
    lock because FastAPI calls sync handlers from a thread pool.
    """

    name = "memory"

    def __init__(self, clock: Optional[Clock] = None):
        super().__init__(clock)
        self._lock = threading.RLock()
        self._categories: Dict[int, Category] = {}
        self._documents: Dict[int, Document] = {}
        self._category_id_counter = 1
        self._document_id_counter = 1

    # Categories

    def get_all_categories(self) -> List[Category]:
        with self._lock:
            return list(self._categories.values())

    def get_category(self, category_id: int) -> Optional[Category]:
        with self._lock:
            return self._categories.get(category_id)

    def get_category_by_name(self, name: str) -> Optional[Category]:
        wanted = name.casefold()
        with self._lock:
            for category in self._categories.values():
                if category.name.casefold() == wanted:
                    return category
        return None

    def create_category(self, name: str) -> Category:
        with self._lock:
            category = Category(id=self._category_id_counter, name=name)
            self._category_id_counter += 1
            self._categories[category.id] = category
            return category

    # Documents

    def get_all_documents(self) -> List[Document]:
        with self._lock:
            return list(self._documents.values())

    def get_document(self, document_id: int) -> Optional[Document]:
        with self._lock:
            return self._documents.get(document_id)

    def create_document(self, document: DocumentCreate) -> Document:
        with self._lock:
            now = self.now()
            created = Document(
                **document.model_dump(),
                id=self._document_id_counter,
                uploaded_at=now,
                last_opened_at=now,
            )
            self._document_id_counter += 1
            self._documents[created.id] = created
            return created

    def update_document(self, document_id: int, fields: Dict[str, Any]) -> Document:
        check_update_fields(fields)
        with self._lock:
            current = self._documents.get(document_id)
            if current is None:
                raise NotFoundError(f"Document with id {document_id} not found")
            updated = merge_document(current, fields)
            self._documents[document_id] = updated
            return updated

    def delete_document(self, document_id: int) -> bool:
        with self._lock:
            return self._documents.pop(document_id, None) is not None

    def record_access(self, document_id: int) -> Document:
        with self._lock:
            return super().record_access(document_id)
