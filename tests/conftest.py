"""
Shared fixtures: a deterministic clock, stores for both backends, a
temporary upload directory, generated PDFs and an HTTP client.
"""
from datetime import datetime, timedelta, timezone
from io import BytesIO
from pathlib import Path
from typing import Callable, Generator

import pytest
from fastapi.testclient import TestClient
from pypdf import PdfWriter

from app.core.config import Settings
from app.main import create_app
from app.services.files import BlobStore
from app.services.library import LibraryService
from app.storage.base import LibraryStorage
from app.storage.memory import MemStorage
from app.storage.sql import SqlStorage


class FakeClock:
    """Returns a strictly increasing UTC time, one second per call."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)):
        self.current = start

    def __call__(self) -> datetime:
        self.current = self.current + timedelta(seconds=1)
        return self.current


def make_pdf(pages: int = 2) -> bytes:
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=612, height=792)
    out = BytesIO()
    writer.write(out)
    return out.getvalue()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(params=["memory", "sql"])
def storage(request, clock) -> Generator[LibraryStorage, None, None]:
    """Every store contract test runs against both backends."""
    if request.param == "memory":
        store = MemStorage(clock=clock)
    else:
        store = SqlStorage("sqlite://", clock=clock)
    yield store
    store.close()


@pytest.fixture
def upload_dir(tmp_path: Path) -> Path:
    path = tmp_path / "uploads"
    path.mkdir()
    return path


@pytest.fixture
def pdf_factory() -> Callable[[int], bytes]:
    return make_pdf


@pytest.fixture
def two_page_pdf() -> bytes:
    return make_pdf(2)


@pytest.fixture
def library(upload_dir: Path, clock: FakeClock) -> LibraryService:
    return LibraryService(MemStorage(clock=clock), BlobStore(str(upload_dir)), 20 * 1024 * 1024)


@pytest.fixture
def settings(upload_dir: Path) -> Settings:
    return Settings(
        UPLOAD_DIR=str(upload_dir),
        STORAGE_BACKEND="memory",
        LOG_LEVEL="DEBUG",
    )


@pytest.fixture
def client(settings: Settings, clock: FakeClock) -> Generator[TestClient, None, None]:
    app = create_app(settings, storage=MemStorage(clock=clock))
    with TestClient(app) as c:
        yield c


@pytest.fixture
def upload(client: TestClient, two_page_pdf: bytes):
    """POST a file to /api/documents; defaults to a valid two-page PDF."""

    def _upload(content: bytes = None, filename: str = "notes.pdf", content_type: str = "application/pdf", **data):
        return client.post(
            "/api/documents",
            files={"file": (filename, two_page_pdf if content is None else content, content_type)},
            data=data,
        )

    return _upload
