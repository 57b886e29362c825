from unittest.mock import MagicMock

import pytest

from doc_summarizer.documents.file_registry import DocumentStore, FileRegistry
from doc_summarizer.errors import (
    BlobStoreError,
    UnsupportedUploadError,
    UploadTooLargeError,
    ValidationError,
)
from doc_summarizer.storage.blob_store import LocalBlobStore


@pytest.fixture
def registry(redis_client, blob_store):
    return FileRegistry(DocumentStore(redis_client), blob_store, max_upload_bytes=1024)


def test_upload_stores_blob_and_metadata(registry, blob_store):
    document = registry.upload("Report.PDF", b"%PDF-1.4 fake", owner_id="user-1", mime_type="application/pdf")

    assert document.extension == ".pdf"
    assert document.size == len(b"%PDF-1.4 fake")
    assert document.owner_id == "user-1"
    assert blob_store.fetch(document.storage_ref) == b"%PDF-1.4 fake"
    assert registry.get(document.id) == document


def test_upload_rejects_oversized_file(registry):
    with pytest.raises(UploadTooLargeError) as exc_info:
        registry.upload("big.txt", b"x" * 1025)
    assert exc_info.value.size == 1025


@pytest.mark.parametrize("filename", ["malware.exe", "archive.zip", "noextension"])
def test_upload_rejects_unsupported_type(registry, filename):
    with pytest.raises(UnsupportedUploadError) as exc_info:
        registry.upload(filename, b"data")
    assert exc_info.value.reason.value == "unsupported_format"


def test_upload_rejects_empty_file(registry):
    with pytest.raises(ValidationError):
        registry.upload("empty.txt", b"")


def test_rejected_upload_stores_nothing(registry, blob_store, redis_client):
    with pytest.raises(UnsupportedUploadError):
        registry.upload("malware.exe", b"data")

    assert list(blob_store.root_dir.iterdir()) == []
    assert redis_client.keys("document:*") == []


def test_register_uses_given_upload_time(registry):
    document = registry.register("a.txt", "ref.txt", "file:///ref.txt", 5, "txt", uploaded_at=1000.0)

    assert document.extension == ".txt"
    assert document.delete_at == 1000.0 + 4 * 24 * 3600


def test_find_expired_drops_dangling_index_entries(registry, redis_client):
    redis_client.zadd("documents:delete_at", {"ghost": 1})

    assert registry.find_expired(now=10) == []
    assert redis_client.zscore("documents:delete_at", "ghost") is None


def test_purge_blob_failure_leaves_metadata(redis_client):
    blob_store = MagicMock()
    blob_store.delete.side_effect = BlobStoreError("storage unavailable")
    registry = FileRegistry(DocumentStore(redis_client), blob_store)
    document = registry.register("a.txt", "ref.txt", "http://blobs/ref.txt", 5, ".txt", uploaded_at=0)

    with pytest.raises(BlobStoreError):
        registry.purge(document)

    assert registry.get(document.id) is not None
    assert [d.id for d in registry.find_expired(now=10 ** 10)] == [document.id]


def test_extracted_text_shares_document_lifetime(registry, redis_client):
    document = registry.upload("a.txt", b"hello world")

    registry.documents.save_extracted_text(document.id, "hello world")

    assert registry.documents.get_extracted_text(document.id) == "hello world"
    assert 0 < redis_client.ttl(f"document:{document.id}:text") <= 4 * 24 * 3600


def test_local_blob_store_refuses_path_escape(tmp_path):
    store = LocalBlobStore(str(tmp_path))
    with pytest.raises(BlobStoreError):
        store.fetch("../secret")
