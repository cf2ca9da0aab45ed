import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy.orm import Session

from app.core.database import Base, build_engine, build_session_factory
from app.core.errors import NotFoundError
from app.models.category import Category as CategoryModel
from app.models.document import Document as DocumentModel
from app.schemas.category import Category
from app.schemas.document import Document, DocumentCreate
from app.storage.base import Clock, LibraryStorage, check_update_fields, merge_document


class SqlStorage(LibraryStorage):
    """
    SQLAlchemy-backed store. Same contract as MemStorage.

    The default URL is in-memory SQLite, so like MemStorage nothing outlives
    the process unless DATABASE_URL points somewhere durable. Each operation
    runs in its own short session under a lock.
    """

    name = "sql"

    def __init__(self, database_url: str = "sqlite://", clock: Optional[Clock] = None):
        super().__init__(clock)
        self._lock = threading.RLock()
        self._engine = build_engine(database_url)
        self._session_factory = build_session_factory(self._engine)
        Base.metadata.create_all(self._engine)

    @contextmanager
    def _session(self) -> Iterator[Session]:
        with self._lock:
            db = self._session_factory()
            try:
                yield db
                db.commit()
            except Exception:
                db.rollback()
                raise
            finally:
                db.close()

    def close(self) -> None:
        self._engine.dispose()

    # Categories

    def get_all_categories(self) -> List[Category]:
        with self._session() as db:
            rows = db.query(CategoryModel).order_by(CategoryModel.id).all()
            return [Category.model_validate(r) for r in rows]

    def get_category(self, category_id: int) -> Optional[Category]:
        with self._session() as db:
            row = db.get(CategoryModel, category_id)
            return Category.model_validate(row) if row else None

    def get_category_by_name(self, name: str) -> Optional[Category]:
        # lower() in SQL only folds ASCII; compare in Python to match MemStorage
        wanted = name.casefold()
        for category in self.get_all_categories():
            if category.name.casefold() == wanted:
                return category
        return None

    def create_category(self, name: str) -> Category:
        with self._session() as db:
            row = CategoryModel(name=name)
            db.add(row)
            db.flush()
            return Category.model_validate(row)

    # Documents

    def get_all_documents(self) -> List[Document]:
        with self._session() as db:
            rows = db.query(DocumentModel).order_by(DocumentModel.id).all()
            return [Document.model_validate(r) for r in rows]

    def get_document(self, document_id: int) -> Optional[Document]:
        with self._session() as db:
            row = db.get(DocumentModel, document_id)
            return Document.model_validate(row) if row else None

    def create_document(self, document: DocumentCreate) -> Document:
        with self._session() as db:
            now = self.now()
            row = DocumentModel(**document.model_dump(), uploaded_at=now, last_opened_at=now)
            db.add(row)
            db.flush()
            return Document.model_validate(row)

    def update_document(self, document_id: int, fields: Dict[str, Any]) -> Document:
        check_update_fields(fields)
        with self._session() as db:
            row = db.get(DocumentModel, document_id)
            if row is None:
                raise NotFoundError(f"Document with id {document_id} not found")
            merged = merge_document(Document.model_validate(row), fields)
            # write the validated values; SQLite would drop a non-UTC offset
            for k in fields:
                setattr(row, k, getattr(merged, k))
            db.flush()
            return merged

    def delete_document(self, document_id: int) -> bool:
        with self._session() as db:
            row = db.get(DocumentModel, document_id)
            if row is None:
                return False
            db.delete(row)
            return True

    def record_access(self, document_id: int) -> Document:
        with self._lock:
            return super().record_access(document_id)

    # Projections answered by the database

    def get_documents_by_category(self, category_id: int) -> List[Document]:
        with self._session() as db:
            rows = (
                db.query(DocumentModel)
                .filter(DocumentModel.category_id == category_id)
                .order_by(DocumentModel.id)
                .all()
            )
            return [Document.model_validate(r) for r in rows]

    def get_favorite_documents(self) -> List[Document]:
        with self._session() as db:
            rows = (
                db.query(DocumentModel)
                .filter(DocumentModel.favorite.is_(True))
                .order_by(DocumentModel.id)
                .all()
            )
            return [Document.model_validate(r) for r in rows]

