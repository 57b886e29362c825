"""Blob storage providers."""

from doc_summarizer.storage.blob_store import (
    BlobStore,
    LocalBlobStore,
    HttpBlobStore,
    StoredBlob,
    create_blob_store,
)

__all__ = [
    "BlobStore",
    "LocalBlobStore",
    "HttpBlobStore",
    "StoredBlob",
    "create_blob_store",
]
