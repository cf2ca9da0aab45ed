"""
Filtering and ordering of document lists.

Everything here is a pure function over a list of Document records; nothing
touches the store. All orderings rely on sorted() being stable, so documents
with equal keys keep their input order.
"""
import unicodedata
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, List, Optional

from app.schemas.category import Category
from app.schemas.document import Document

UNCATEGORIZED = "Uncategorized"


class SortBy(str, Enum):
    LAST_OPENED = "lastOpened"
    NAME = "name"
    DATE_ADDED = "dateAdded"
    SIZE = "size"


def filter_documents(
    docs: Iterable[Document],
    category_id: Optional[int] = None,
    favorite: Optional[bool] = None,
    search_query: Optional[str] = None,
) -> List[Document]:
    """Keep the documents that match every criterion given (AND)."""
    result = list(docs)

    if category_id is not None:
        result = [d for d in result if d.category_id == category_id]
    if favorite is not None:
        result = [d for d in result if d.favorite == favorite]
    if search_query:
        needle = search_query.casefold()
        result = [d for d in result if needle in d.title.casefold()]

    return result


def last_activity(doc: Document) -> Optional[datetime]:
    return doc.last_opened_at or doc.uploaded_at


def title_key(title: str) -> str:
    """Collation key for titles: accents decomposed, case folded."""
    return unicodedata.normalize("NFKD", title).casefold()


def _descending_nulls_last(docs: List[Document], key) -> List[Document]:
    present = [d for d in docs if key(d) is not None]
    missing = [d for d in docs if key(d) is None]
    # reverse=True keeps equal elements in their original order
    return sorted(present, key=key, reverse=True) + missing


def sort_documents(docs: Iterable[Document], sort_by=SortBy.LAST_OPENED) -> List[Document]:
    docs = list(docs)
    sort_by = SortBy(sort_by)

    if sort_by is SortBy.LAST_OPENED:
        return _descending_nulls_last(docs, last_activity)
    if sort_by is SortBy.NAME:
        return sorted(docs, key=lambda d: title_key(d.title))
    if sort_by is SortBy.DATE_ADDED:
        return _descending_nulls_last(docs, lambda d: d.uploaded_at)
    return sorted(docs, key=lambda d: d.size, reverse=True)


def most_recent(docs: Iterable[Document], limit: int = 10) -> List[Document]:
    if limit < 0:
        limit = 0
    return sort_documents(docs, SortBy.LAST_OPENED)[:limit]


def category_label(doc: Document, categories: Iterable[Category]) -> str:
    """Name of the document's category, or "Uncategorized" for null or dangling ids."""
    if doc.category_id is None:
        return UNCATEGORIZED
    names: Dict[int, str] = {c.id: c.name for c in categories}
    return names.get(doc.category_id, UNCATEGORIZED)
