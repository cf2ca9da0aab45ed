import logging
from pathlib import Path

from pypdf import PdfReader
from pypdf.errors import PyPdfError

from app.core.errors import InvalidInputError

logger = logging.getLogger(__name__)


def count_pages(path: Path) -> int:
    """
    Number of pages in the PDF at `path`.

    Raises InvalidInputError when the file does not parse as a PDF.
    """
    try:
        reader = PdfReader(path)
        if reader.is_encrypted:
            # page tree of most "encrypted" PDFs opens with the empty user password
            reader.decrypt("")
        return len(reader.pages)
    except (PyPdfError, ValueError, KeyError) as e:
        logger.warning("Could not read PDF %s: %s", path.name, e)
        raise InvalidInputError("Uploaded file is not a readable PDF") from e
