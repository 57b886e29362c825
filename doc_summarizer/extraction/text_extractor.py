"""
Format-dispatched text extraction for stored documents.

Extractors are registered per file extension and receive the raw bytes of
the document. Downloads go through the blob store with a bounded timeout.
"""
import io
import time
from typing import Callable, Dict, Optional

import docx
import fitz

from doc_summarizer import config
from doc_summarizer.errors import (
    ExtractionError,
    FailureReason,
    BlobStoreError,
)
from doc_summarizer.logging_config import get_extraction_logger
from doc_summarizer.storage.blob_store import BlobStore

logger = get_extraction_logger()

ExtractorFn = Callable[[bytes], str]


def extract_pdf_text(data: bytes) -> str:
    """Extract text from all pages of a PDF with PyMuPDF."""
    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except Exception as e:
        raise ExtractionError(
            FailureReason.CORRUPTED_OR_PASSWORD_PROTECTED,
            "The PDF file appears to be corrupted or has an invalid format. "
            "Please try uploading a different PDF file."
        ) from e

    try:
        if doc.needs_pass:
            raise ExtractionError(
                FailureReason.CORRUPTED_OR_PASSWORD_PROTECTED,
                "The PDF file is password-protected. Please upload an unprotected PDF file."
            )
        pages = [page.get_text("text") for page in doc]
        logger.debug(f"[PDF] Extracted {len(pages)} pages")
        return "\n\n".join(pages)
    finally:
        doc.close()


def extract_docx_text(data: bytes) -> str:
    """Extract paragraph and table text from a DOCX file."""
    try:
        document = docx.Document(io.BytesIO(data))
    except Exception as e:
        raise ExtractionError(
            FailureReason.CORRUPTED_OR_PASSWORD_PROTECTED,
            "The DOCX file appears to be corrupted or has an invalid format. "
            "Please try uploading a different DOCX file."
        ) from e

    parts = [p.text for p in document.paragraphs]
    for table in document.tables:
        for row in table.rows:
            parts.append(" | ".join(cell.text for cell in row.cells))
    return "\n".join(parts)


def extract_plain_text(data: bytes) -> str:
    """Decode a plain text file, tolerating stray bytes."""
    return data.decode("utf-8", errors="replace")


DEFAULT_EXTRACTORS: Dict[str, ExtractorFn] = {
    ".pdf": extract_pdf_text,
    ".docx": extract_docx_text,
    ".doc": extract_docx_text,
    ".txt": extract_plain_text,
    ".md": extract_plain_text,
}


def normalize_extension(extension: str) -> str:
    extension = (extension or "").strip().lower()
    if extension and not extension.startswith("."):
        extension = f".{extension}"
    return extension


def _looks_like_text(text: str, min_alnum_ratio: float) -> bool:
    """True when the extraction produced something readable."""
    visible = [c for c in text if not c.isspace()]
    if not visible:
        return False
    alnum = sum(1 for c in visible if c.isalnum())
    return alnum > 0 and (alnum / len(visible)) >= min_alnum_ratio


class TextExtractor:
    """
    Converts a stored document into plain text.

    Usage:
        extractor = TextExtractor(blob_store)
        text = extractor.extract(document.storage_ref, document.extension)
    """

    def __init__(
        self,
        blob_store: BlobStore,
        download_timeout: Optional[float] = None,
        extractors: Optional[Dict[str, ExtractorFn]] = None,
        min_alnum_ratio: float = config.MIN_ALNUM_RATIO
    ):
        self.blob_store = blob_store
        self.download_timeout = download_timeout or config.DOWNLOAD_TIMEOUT
        self.extractors = dict(extractors if extractors is not None else DEFAULT_EXTRACTORS)
        self.min_alnum_ratio = min_alnum_ratio

    def register_extractor(self, extension: str, fn: ExtractorFn) -> None:
        self.extractors[normalize_extension(extension)] = fn

    def supports(self, extension: str) -> bool:
        return normalize_extension(extension) in self.extractors

    def extract(self, storage_ref: str, extension: str) -> str:
        """
        Download and extract text.

        Raises:
            ExtractionError: with one of the extraction failure reasons
        """
        extension = normalize_extension(extension)
        extractor = self.extractors.get(extension)
        if extractor is None:
            supported = ", ".join(sorted(self.extractors))
            logger.warning(f"[EXTRACT] Unsupported format | ext={extension or '<none>'}")
            raise ExtractionError(
                FailureReason.UNSUPPORTED_FORMAT,
                f"Unsupported file type: {extension or '<none>'}. Supported formats: {supported}"
            )

        start_time = time.time()
        logger.info(f"[EXTRACT] START | ref={storage_ref} | ext={extension} | timeout={self.download_timeout}s")

        try:
            data = self.blob_store.fetch(storage_ref, timeout=self.download_timeout)
        except BlobStoreError as e:
            logger.error(f"[EXTRACT] Download failed | ref={storage_ref} | error={e}")
            raise ExtractionError(
                FailureReason.DOWNLOAD_FAILED,
                "Failed to download the file. Please try again."
            ) from e

        if not data:
            raise ExtractionError(
                FailureReason.CORRUPTED_OR_PASSWORD_PROTECTED,
                "Downloaded file is empty or corrupted."
            )

        text = extractor(data)

        if not _looks_like_text(text, self.min_alnum_ratio):
            logger.warning(f"[EXTRACT] No usable text | ref={storage_ref} | chars={len(text)}")
            raise ExtractionError(
                FailureReason.NO_EXTRACTABLE_TEXT,
                "The file contains no extractable text content. "
                "Please ensure the document contains readable text."
            )

        elapsed = time.time() - start_time
        logger.info(f"[EXTRACT] END | bytes={len(data)} | chars={len(text)} | elapsed={elapsed:.2f}s")
        return text
