"""
Document registry: uploaded file metadata, blob references and retention.

Keys:
- document:{id}          JSON-serialized Document
- document:{id}:text     extracted text, written once by the worker
- documents:delete_at    sorted set of document ids scored by delete_at
"""
import json
import time
import uuid
from pathlib import Path
from typing import List, Optional, Sequence

from redis import Redis

from doc_summarizer.config import (
    FILE_RETENTION_DAYS,
    MAX_UPLOAD_BYTES,
    ALLOWED_EXTENSIONS,
)
from doc_summarizer.errors import ValidationError, UnsupportedUploadError, UploadTooLargeError
from doc_summarizer.extraction.text_extractor import normalize_extension
from doc_summarizer.jobs.job_store import JobStore
from doc_summarizer.jobs.status_cache import StatusCache
from doc_summarizer.logging_config import get_storage_logger
from doc_summarizer.models import Document
from doc_summarizer.storage.blob_store import BlobStore

logger = get_storage_logger()

SECONDS_PER_DAY = 24 * 3600
EXPIRY_INDEX_KEY = "documents:delete_at"


def _document_key(document_id: str) -> str:
    return f"document:{document_id}"


def _text_key(document_id: str) -> str:
    return f"document:{document_id}:text"


def _decode(value) -> str:
    return value.decode() if isinstance(value, bytes) else value


class DocumentStore:
    """Durable Document records and their extracted-text cache."""

    def __init__(self, redis_client: Redis):
        self.redis = redis_client

    def save(self, document: Document) -> None:
        pipe = self.redis.pipeline()
        pipe.set(_document_key(document.id), json.dumps(document.to_dict()))
        pipe.zadd(EXPIRY_INDEX_KEY, {document.id: document.delete_at})
        pipe.execute()

    def get(self, document_id: str) -> Optional[Document]:
        raw = self.redis.get(_document_key(document_id))
        if not raw:
            return None
        return Document.from_dict(json.loads(raw))

    def delete(self, document_id: str) -> None:
        pipe = self.redis.pipeline()
        pipe.delete(_document_key(document_id), _text_key(document_id))
        pipe.zrem(EXPIRY_INDEX_KEY, document_id)
        pipe.execute()

    def expired_ids(self, now: float) -> List[str]:
        return [_decode(d) for d in self.redis.zrangebyscore(EXPIRY_INDEX_KEY, "-inf", now)]

    def get_extracted_text(self, document_id: str) -> Optional[str]:
        raw = self.redis.get(_text_key(document_id))
        return _decode(raw) if raw is not None else None

    def save_extracted_text(self, document_id: str, text: str) -> None:
        """Cache extracted text with the same lifetime as its Document."""
        document = self.get(document_id)
        if document is None:
            return
        ttl = max(1, int(document.delete_at - time.time()))
        self.redis.setex(_text_key(document_id), ttl, text)


class FileRegistry:
    """
    Owns uploaded documents: stores blobs, records metadata, purges on expiry.

    Usage:
        registry = FileRegistry(document_store, blob_store, job_store, cache)
        doc = registry.upload("report.pdf", data, owner_id="user-1")
        registry.purge(doc)
    """

    def __init__(
        self,
        documents: DocumentStore,
        blob_store: BlobStore,
        job_store: Optional[JobStore] = None,
        cache: Optional[StatusCache] = None,
        retention_days: float = FILE_RETENTION_DAYS,
        max_upload_bytes: int = MAX_UPLOAD_BYTES,
        allowed_extensions: Sequence[str] = ALLOWED_EXTENSIONS
    ):
        self.documents = documents
        self.blob_store = blob_store
        self.job_store = job_store
        self.cache = cache
        self.retention_seconds = retention_days * SECONDS_PER_DAY
        self.max_upload_bytes = max_upload_bytes
        self.allowed_extensions = tuple(normalize_extension(e) for e in allowed_extensions)

    # ========================================================================
    # Registration
    # ========================================================================

    def validate_upload(self, filename: str, data: bytes) -> str:
        """Check an upload and return its normalized extension."""
        if not filename:
            raise ValidationError("No file provided")
        if not data:
            raise ValidationError("Uploaded file is empty")
        if len(data) > self.max_upload_bytes:
            raise UploadTooLargeError(len(data), self.max_upload_bytes)

        extension = normalize_extension(Path(filename).suffix)
        if extension not in self.allowed_extensions:
            raise UnsupportedUploadError(extension, self.allowed_extensions)
        return extension

    def register(
        self,
        original_name: str,
        storage_ref: str,
        url: str,
        size: int,
        extension: str,
        owner_id: Optional[str] = None,
        mime_type: Optional[str] = None,
        uploaded_at: Optional[float] = None
    ) -> Document:
        """Record an already-stored blob as a Document with its delete_at."""
        uploaded_at = time.time() if uploaded_at is None else uploaded_at
        document = Document(
            id=uuid.uuid4().hex,
            owner_id=owner_id,
            original_name=original_name,
            storage_ref=storage_ref,
            url=url,
            size=size,
            mime_type=mime_type,
            extension=normalize_extension(extension),
            uploaded_at=uploaded_at,
            delete_at=uploaded_at + self.retention_seconds,
        )
        self.documents.save(document)
        logger.info(
            f"[REGISTRY] Registered | document_id={document.id} | name={original_name} | "
            f"size={size} | delete_at={document.delete_at:.0f}"
        )
        return document

    def upload(
        self,
        filename: str,
        data: bytes,
        owner_id: Optional[str] = None,
        mime_type: Optional[str] = None
    ) -> Document:
        extension = self.validate_upload(filename, data)
        blob = self.blob_store.store(data, extension)
        return self.register(
            original_name=filename,
            storage_ref=blob.ref,
            url=blob.url,
            size=len(data),
            extension=extension,
            owner_id=owner_id,
            mime_type=mime_type,
        )

    def get(self, document_id: str) -> Optional[Document]:
        return self.documents.get(document_id)

    # ========================================================================
    # Retention
    # ========================================================================

    def find_expired(self, now: Optional[float] = None) -> List[Document]:
        now = time.time() if now is None else now
        expired = []
        for document_id in self.documents.expired_ids(now):
            document = self.documents.get(document_id)
            if document is None:
                # Index entry without a record; drop it
                self.documents.delete(document_id)
                continue
            expired.append(document)
        return expired

    def purge(self, document: Document) -> None:
        """
        Delete the blob, then metadata, extracted text, job record and cache entry.

        A blob failure raises before any metadata is touched, so the document
        stays eligible for the next sweep.
        """
        self.blob_store.delete(document.storage_ref)
        self.documents.delete(document.id)
        if self.job_store is not None:
            self.job_store.delete(document.id, document.owner_id)
        if self.cache is not None:
            self.cache.invalidate(document.id)
        logger.info(f"[REGISTRY] Purged | document_id={document.id} | ref={document.storage_ref}")
