"""
Tests for LibraryService: upload validation, blob cleanup, category rules
and delete behaviour when the backing file is already gone.
"""
import logging
from io import BytesIO

import pytest

from app.core.errors import ConflictError, InvalidInputError, IOFailureError, NotFoundError
from app.services.files import BlobStore
from app.services.library import LibraryService, normalize_category_id
from app.storage.memory import MemStorage


def blobs_in(path):
    return sorted(p.name for p in path.iterdir())


class FailingStorage(MemStorage):
    def create_document(self, document):
        raise RuntimeError("store is down")


class BrokenStream:
    """Hands out one chunk, then fails like a dropped connection or bad sector."""

    def __init__(self, first_chunk: bytes):
        self.chunks = [first_chunk]

    def read(self, size=-1):
        if self.chunks:
            return self.chunks.pop()
        raise OSError("Input/output error")


class TestCategories:
    def test_create_category(self, library):
        category = library.create_category("  Research ")
        assert category.name == "Research"
        assert library.storage.get_category_by_name("research") == category

    def test_duplicate_name_is_rejected_regardless_of_case(self, library):
        library.create_category("Academic")
        with pytest.raises(ConflictError):
            library.create_category("aCADEMIC")
        assert len(library.storage.get_all_categories()) == 1

    def test_blank_name_is_rejected(self, library):
        with pytest.raises(InvalidInputError):
            library.create_category("   ")

    def test_seed_default_categories_is_idempotent(self, library):
        defaults = ["Academic", "Business", "Personal"]
        first = library.seed_default_categories(defaults)
        second = library.seed_default_categories(defaults)

        assert [(c.id, c.name) for c in first] == [(1, "Academic"), (2, "Business"), (3, "Personal")]
        assert second == []


class TestUpload:
    def test_upload_creates_document_and_blob(self, library, upload_dir, two_page_pdf):
        doc = library.create_document_from_upload(
            BytesIO(two_page_pdf), "application/pdf", "Lecture 01.pdf", category_id="2"
        )

        assert doc.title == "Lecture 01"
        assert doc.total_pages == 2
        assert doc.category_id == 2
        assert doc.size == len(two_page_pdf)
        assert doc.favorite is False
        assert doc.thumbnail is None
        assert doc.filename.endswith(".pdf")
        assert doc.filename != "Lecture 01.pdf"
        assert (upload_dir / doc.filename).read_bytes() == two_page_pdf

    def test_title_override_is_used(self, library, two_page_pdf):
        doc = library.create_document_from_upload(
            BytesIO(two_page_pdf), "application/pdf", "scan_0042.pdf", title="  Tax return  "
        )
        assert doc.title == "Tax return"

    def test_page_count_comes_from_the_pdf(self, library, pdf_factory):
        doc = library.create_document_from_upload(BytesIO(pdf_factory(5)), "application/pdf", "five.pdf")
        assert doc.total_pages == 5

    @pytest.mark.parametrize("sentinel", [None, "", "0", 0, " 0 "])
    def test_uncategorized_sentinel_maps_to_none(self, library, two_page_pdf, sentinel):
        doc = library.create_document_from_upload(
            BytesIO(two_page_pdf), "application/pdf", "a.pdf", category_id=sentinel
        )
        assert doc.category_id is None

    def test_wrong_mime_type_leaves_nothing_behind(self, library, upload_dir, two_page_pdf):
        with pytest.raises(InvalidInputError):
            library.create_document_from_upload(BytesIO(two_page_pdf), "image/png", "a.pdf")
        assert blobs_in(upload_dir) == []
        assert library.storage.get_all_documents() == []

    def test_missing_filename(self, library, two_page_pdf):
        with pytest.raises(InvalidInputError):
            library.create_document_from_upload(BytesIO(two_page_pdf), "application/pdf", "")

    def test_oversized_upload_is_removed(self, upload_dir, two_page_pdf):
        library = LibraryService(MemStorage(), BlobStore(str(upload_dir)), max_upload_bytes=64)
        with pytest.raises(InvalidInputError, match="too large"):
            library.create_document_from_upload(BytesIO(two_page_pdf), "application/pdf", "big.pdf")
        assert blobs_in(upload_dir) == []
        assert library.storage.get_all_documents() == []

    def test_upload_at_exact_limit_is_accepted(self, upload_dir, two_page_pdf):
        library = LibraryService(MemStorage(), BlobStore(str(upload_dir)), max_upload_bytes=len(two_page_pdf))
        doc = library.create_document_from_upload(BytesIO(two_page_pdf), "application/pdf", "fits.pdf")
        assert doc.size == len(two_page_pdf)

    def test_unreadable_pdf_is_removed(self, library, upload_dir):
        with pytest.raises(InvalidInputError, match="not a readable PDF"):
            library.create_document_from_upload(
                BytesIO(b"definitely not a pdf"), "application/pdf", "fake.pdf"
            )
        assert blobs_in(upload_dir) == []
        assert library.storage.get_all_documents() == []

    def test_store_failure_after_write_removes_blob(self, upload_dir, two_page_pdf):
        library = LibraryService(FailingStorage(), BlobStore(str(upload_dir)), 20 * 1024 * 1024)
        with pytest.raises(RuntimeError):
            library.create_document_from_upload(BytesIO(two_page_pdf), "application/pdf", "a.pdf")
        assert blobs_in(upload_dir) == []

    def test_read_failure_mid_upload_leaves_nothing_behind(self, library, upload_dir, two_page_pdf):
        with pytest.raises(IOFailureError):
            library.create_document_from_upload(
                BrokenStream(two_page_pdf[:100]), "application/pdf", "a.pdf"
            )
        assert blobs_in(upload_dir) == []
        assert library.storage.get_all_documents() == []

    def test_invalid_category_id(self, library, upload_dir, two_page_pdf):
        with pytest.raises(InvalidInputError):
            library.create_document_from_upload(
                BytesIO(two_page_pdf), "application/pdf", "a.pdf", category_id="books"
            )
        assert blobs_in(upload_dir) == []


class TestUpdateAndOpen:
    def test_update_normalizes_category_sentinel(self, library, two_page_pdf):
        doc = library.create_document_from_upload(
            BytesIO(two_page_pdf), "application/pdf", "a.pdf", category_id=1
        )
        updated = library.update_document(doc.id, {"category_id": 0, "favorite": True})
        assert updated.category_id is None
        assert updated.favorite is True

    def test_open_document_records_access(self, library, two_page_pdf):
        doc = library.create_document_from_upload(BytesIO(two_page_pdf), "application/pdf", "a.pdf")
        opened = library.open_document(doc.id)
        assert opened.last_opened_at > doc.last_opened_at

    def test_open_missing_document(self, library):
        with pytest.raises(NotFoundError):
            library.open_document(1)


class TestDelete:
    def test_delete_removes_entity_and_blob(self, library, upload_dir, two_page_pdf):
        doc = library.create_document_from_upload(BytesIO(two_page_pdf), "application/pdf", "a.pdf")
        library.delete_document(doc.id)

        assert library.storage.get_document(doc.id) is None
        assert blobs_in(upload_dir) == []

    def test_missing_blob_is_logged_not_raised(self, library, upload_dir, two_page_pdf, caplog):
        doc = library.create_document_from_upload(BytesIO(two_page_pdf), "application/pdf", "a.pdf")
        (upload_dir / doc.filename).unlink()

        with caplog.at_level(logging.WARNING, logger="app.services.library"):
            library.delete_document(doc.id)

        assert library.storage.get_document(doc.id) is None
        assert "already missing" in caplog.text

    def test_disk_fault_keeps_entity(self, library, two_page_pdf, monkeypatch):
        doc = library.create_document_from_upload(BytesIO(two_page_pdf), "application/pdf", "a.pdf")

        def refuse(name):
            raise IOFailureError(f"Failed to delete file {name}: permission denied")

        monkeypatch.setattr(library.blobs, "delete", refuse)
        with pytest.raises(IOFailureError):
            library.delete_document(doc.id)
        assert library.storage.get_document(doc.id) is not None

    def test_delete_missing_document(self, library):
        with pytest.raises(NotFoundError):
            library.delete_document(5)

    def test_document_removed_concurrently_is_not_found(self, library, two_page_pdf, monkeypatch):
        doc = library.create_document_from_upload(BytesIO(two_page_pdf), "application/pdf", "a.pdf")
        # another request deletes the entity between the lookup and the delete
        monkeypatch.setattr(library.storage, "delete_document", lambda document_id: False)

        with pytest.raises(NotFoundError):
            library.delete_document(doc.id)


class TestBlobAccess:
    def test_resolve_existing_blob(self, library, upload_dir, two_page_pdf):
        doc = library.create_document_from_upload(BytesIO(two_page_pdf), "application/pdf", "a.pdf")
        assert library.resolve_blob(doc.filename) == upload_dir / doc.filename

    @pytest.mark.parametrize("name", ["missing.pdf", "../secret.pdf", "..", "", "a/b.pdf"])
    def test_resolve_rejects_unknown_or_unsafe_names(self, library, name):
        with pytest.raises(NotFoundError):
            library.resolve_blob(name)


@pytest.mark.parametrize(
    "value, expected",
    [(None, None), ("", None), ("0", None), (0, None), ("3", 3), (3, 3), (" 7 ", 7)],
)
def test_normalize_category_id(value, expected):
    assert normalize_category_id(value) == expected


@pytest.mark.parametrize("value", ["abc", "1.5", "-2", True])
def test_normalize_category_id_rejects_garbage(value):
    with pytest.raises(InvalidInputError):
        normalize_category_id(value)
