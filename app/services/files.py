"""
Blob directory for uploaded PDFs.

One file per document, named by a random token plus the original extension.
The store only keeps that name; bytes never go through it.
"""
import logging
import os
from pathlib import Path
from typing import BinaryIO, Optional, Tuple
from uuid import uuid4

from app.core.errors import InvalidInputError, IOFailureError, NotFoundError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


class BlobStore:
    def __init__(self, root: str):
        self.root = Path(root)

    def ensure_root(self) -> None:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise IOFailureError(f"Cannot create upload directory {self.root}: {e}") from e

    def new_name(self, original_filename: str) -> str:
        return uuid4().hex + Path(original_filename).suffix.lower()

    def save(self, stream: BinaryIO, original_filename: str, max_bytes: int) -> Tuple[str, int]:
        """
        Copy `stream` into a new blob and return (blob name, size in bytes).

        Stops as soon as more than `max_bytes` have been read; the partial
        blob is removed before InvalidInputError is raised.
        """
        self.ensure_root()
        name = self.new_name(original_filename)
        path = self.root / name
        size = 0
        try:
            with open(path, "wb") as f:
                while True:
                    chunk = stream.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    size += len(chunk)
                    if size > max_bytes:
                        raise InvalidInputError(
                            f"File too large. Max size: {max_bytes // (1024 * 1024)} MB.",
                            details={"max_bytes": max_bytes},
                        )
                    f.write(chunk)
        except InvalidInputError:
            self.discard(name)
            raise
        except OSError as e:
            self.discard(name)
            raise IOFailureError(f"Failed to write uploaded file: {e}") from e
        return name, size

    def path_for(self, name: str) -> Optional[Path]:
        """Path of blob `name`, or None if the name is not a plain file name."""
        if not name or name in (".", "..") or os.path.basename(name) != name or "\\" in name:
            return None
        return self.root / name

    def resolve(self, name: str) -> Path:
        path = self.path_for(name)
        if path is None or not path.is_file():
            raise NotFoundError("File not found")
        return path

    def delete(self, name: str) -> bool:
        """
        Remove a blob. A missing file is not an error and returns False;
        any other disk fault raises IOFailureError.
        """
        path = self.path_for(name)
        if path is None:
            return False
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise IOFailureError(f"Failed to delete file {name}: {e}") from e
        return True

    def discard(self, name: str) -> None:
        """Best-effort cleanup of a blob that must not outlive a failed upload."""
        try:
            if self.delete(name):
                logger.info("Removed partial upload %s", name)
        except IOFailureError:
            logger.exception("Could not remove partial upload %s", name)
