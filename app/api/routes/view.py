from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from app.api.deps import get_library
from app.services.library import LibraryService

router = APIRouter(prefix="/api/view", tags=["view"])


@router.get("/{filename}")
def view_document_file(filename: str, library: LibraryService = Depends(get_library)):
    """Stream the raw PDF bytes for the in-browser reader."""
    path = library.resolve_blob(filename)
    return FileResponse(path, media_type="application/pdf")
