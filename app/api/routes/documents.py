import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile

from app.api.deps import get_library, get_storage
from app.core.errors import LibraryError
from app.schemas.document import Document, DocumentUpdate
from app.services.library import LibraryService
from app.services.query import SortBy, filter_documents, most_recent, sort_documents
from app.storage.base import LibraryStorage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/documents", tags=["documents"])


@router.get("", response_model=List[Document])
def list_documents(
    storage: LibraryStorage = Depends(get_storage),
    category: Optional[int] = Query(None, description="Only documents in this category"),
    search: Optional[str] = Query(None, description="Case-insensitive match on title"),
    favorite: bool = Query(False, description="Only favorites"),
    recent: bool = Query(False, description="Most recently opened first, truncated to limit"),
    limit: Optional[int] = Query(None, ge=0),
    sort: Optional[SortBy] = Query(None, description="lastOpened|name|dateAdded|size"),
):
    """
    List documents. category, search and favorite combine with AND.
    recent=true orders by last opened (falling back to upload time) and
    keeps `limit` documents, 10 by default.
    """
    try:
        # start from the narrowest projection the store offers, then intersect the rest
        if category is not None:
            docs = storage.get_documents_by_category(category)
        elif search:
            docs = storage.search_documents(search)
        elif favorite:
            docs = storage.get_favorite_documents()
        elif recent:
            docs = storage.get_recent_documents(10 if limit is None else limit)
        else:
            docs = storage.get_all_documents()

        docs = filter_documents(
            docs,
            category_id=category,
            favorite=True if favorite else None,
            search_query=search,
        )
        if recent:
            return most_recent(docs, 10 if limit is None else limit)
        if sort is not None:
            docs = sort_documents(docs, sort)
        if limit is not None:
            docs = docs[:limit]
        return docs
    except LibraryError:
        raise
    except Exception:
        logger.exception("Error fetching documents")
        raise HTTPException(status_code=500, detail="Error fetching documents")


@router.get("/{document_id}", response_model=Document)
def open_document(document_id: int, library: LibraryService = Depends(get_library)):
    """
    Fetch a document for the reader. Records the access, so the returned
    lastOpenedAt is the time of this request.
    """
    return library.open_document(document_id)


@router.post("", response_model=Document, status_code=201)
def upload_document(
    file: UploadFile = File(..., description="PDF to upload"),
    title: Optional[str] = Form(None),
    category_id: Optional[str] = Form(None, alias="categoryId"),
    library: LibraryService = Depends(get_library),
):
    """
    Upload a PDF (max MAX_UPLOAD_MB). Title defaults to the file name without
    its extension; categoryId "0" or empty means uncategorized.
    """
    try:
        return library.create_document_from_upload(
            file.file,
            content_type=file.content_type,
            original_filename=file.filename,
            title=title,
            category_id=category_id,
        )
    finally:
        file.file.close()


@router.patch("/{document_id}", response_model=Document)
def update_document(
    document_id: int,
    payload: DocumentUpdate,
    library: LibraryService = Depends(get_library),
):
    return library.update_document(document_id, payload.model_dump(exclude_unset=True))


@router.delete("/{document_id}", status_code=204)
def delete_document(document_id: int, library: LibraryService = Depends(get_library)):
    """
    Delete the document and its backing file. A file that is already gone
    does not fail the request.
    """
    library.delete_document(document_id)
    return None
