"""
Blob storage adapters for uploaded documents.

- LocalBlobStore: files under BLOB_STORE_DIR (development and single host)
- HttpBlobStore: a blob service reachable over HTTP (PUT/GET/DELETE per ref)
"""
import os
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import requests

from doc_summarizer import config
from doc_summarizer.errors import BlobStoreError, BlobNotFoundError
from doc_summarizer.logging_config import get_storage_logger

logger = get_storage_logger()


@dataclass(frozen=True)
class StoredBlob:
    ref: str
    url: str


def _new_ref(extension: str) -> str:
    return f"{uuid.uuid4().hex}{extension.lower()}"


class BlobStore(ABC):
    """Abstract base class for blob storage providers."""

    @abstractmethod
    def store(self, data: bytes, extension: str = "") -> StoredBlob:
        """Persist bytes and return their reference."""

    @abstractmethod
    def fetch(self, ref: str, timeout: Optional[float] = None) -> bytes:
        """Download bytes for a reference."""

    @abstractmethod
    def delete(self, ref: str) -> None:
        """Delete a blob. Deleting a missing blob is not an error."""


class LocalBlobStore(BlobStore):
    """Blob store backed by a local directory."""

    def __init__(self, root_dir: Optional[str] = None):
        self.root_dir = Path(root_dir or config.BLOB_STORE_DIR)
        self.root_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, ref: str) -> Path:
        # Refs are generated by store(); refuse anything that escapes root_dir
        if os.sep in ref or ref.startswith("."):
            raise BlobStoreError(f"Invalid blob reference: {ref}")
        return self.root_dir / ref

    def store(self, data: bytes, extension: str = "") -> StoredBlob:
        ref = _new_ref(extension)
        path = self._path(ref)
        try:
            path.write_bytes(data)
        except OSError as e:
            logger.error(f"[BLOB] Store failed | ref={ref} | error={e}")
            raise BlobStoreError(f"Failed to store blob {ref}: {e}") from e

        logger.info(f"[BLOB] Stored | ref={ref} | size={len(data)} bytes")
        return StoredBlob(ref=ref, url=path.resolve().as_uri())

    def fetch(self, ref: str, timeout: Optional[float] = None) -> bytes:
        path = self._path(ref)
        if not path.is_file():
            raise BlobNotFoundError(f"Blob not found: {ref}")
        try:
            return path.read_bytes()
        except OSError as e:
            raise BlobStoreError(f"Failed to read blob {ref}: {e}") from e

    def delete(self, ref: str) -> None:
        path = self._path(ref)
        try:
            path.unlink()
            logger.info(f"[BLOB] Deleted | ref={ref}")
        except FileNotFoundError:
            logger.debug(f"[BLOB] Already gone | ref={ref}")
        except OSError as e:
            logger.error(f"[BLOB] Delete failed | ref={ref} | error={e}")
            raise BlobStoreError(f"Failed to delete blob {ref}: {e}") from e


class HttpBlobStore(BlobStore):
    """Blob store reached over HTTP at {base_url}/{ref}."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None
    ):
        self.base_url = (base_url or config.BLOB_BASE_URL).rstrip("/")
        self.timeout = timeout or config.DOWNLOAD_TIMEOUT
        self.session = session or requests.Session()

    def _url(self, ref: str) -> str:
        return f"{self.base_url}/{ref}"

    def store(self, data: bytes, extension: str = "") -> StoredBlob:
        ref = _new_ref(extension)
        url = self._url(ref)
        try:
            r = self.session.put(url, data=data, timeout=self.timeout)
            r.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.error(f"[BLOB] Upload failed | ref={ref} | error={e}")
            raise BlobStoreError(f"Failed to upload blob {ref}: {e}") from e

        logger.info(f"[BLOB] Uploaded | ref={ref} | size={len(data)} bytes")
        return StoredBlob(ref=ref, url=url)

    def fetch(self, ref: str, timeout: Optional[float] = None) -> bytes:
        url = self._url(ref)
        timeout = timeout or self.timeout
        try:
            r = self.session.get(url, timeout=timeout)
        except requests.exceptions.Timeout as e:
            logger.error(f"[BLOB] Download TIMEOUT after {timeout}s | ref={ref}")
            raise BlobStoreError(f"Download of {ref} timed out after {timeout}s") from e
        except requests.exceptions.RequestException as e:
            logger.error(f"[BLOB] Download failed | ref={ref} | error={e}")
            raise BlobStoreError(f"Failed to download blob {ref}: {e}") from e

        if r.status_code == 404:
            raise BlobNotFoundError(f"Blob not found: {ref}")
        try:
            r.raise_for_status()
        except requests.exceptions.HTTPError as e:
            raise BlobStoreError(f"Failed to download blob {ref}: {e}") from e
        return r.content

    def delete(self, ref: str) -> None:
        try:
            r = self.session.delete(self._url(ref), timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.error(f"[BLOB] Delete failed | ref={ref} | error={e}")
            raise BlobStoreError(f"Failed to delete blob {ref}: {e}") from e

        if r.status_code == 404:
            logger.debug(f"[BLOB] Already gone | ref={ref}")
            return
        try:
            r.raise_for_status()
        except requests.exceptions.HTTPError as e:
            raise BlobStoreError(f"Failed to delete blob {ref}: {e}") from e
        logger.info(f"[BLOB] Deleted | ref={ref}")


def create_blob_store(backend: Optional[str] = None) -> BlobStore:
    """Build the blob store selected by BLOB_BACKEND."""
    backend = backend or config.BLOB_BACKEND
    if backend == "http":
        return HttpBlobStore()
    if backend == "local":
        return LocalBlobStore()
    raise ValueError(f"Unknown blob backend: {backend}")
