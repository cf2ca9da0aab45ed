"""
Exception hierarchy for the PDF library.

The store and the service layer raise these; the API maps each one to an
HTTP status in a single exception handler (see app.main).
"""
from typing import Optional


class LibraryError(Exception):
    """Base class for every error the library surfaces to callers."""

    status_code = 500

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NotFoundError(LibraryError):
    """An id or filename references nothing."""

    status_code = 404


class ConflictError(LibraryError):
    """A category with the same (case-insensitive) name already exists."""

    status_code = 400


class InvalidInputError(LibraryError):
    """Malformed payload, wrong MIME type, oversized or unreadable file."""

    status_code = 400


class IOFailureError(LibraryError):
    """Disk read/write fault on a document's backing file."""

    status_code = 500
