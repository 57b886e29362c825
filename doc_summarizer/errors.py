"""
Error taxonomy for the summarization pipeline.

Every failure carries an explicit ErrorKind and, where it can end a job, a
machine-readable FailureReason. Retry decisions dispatch on these tags.
"""
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    EXTRACTION = "extraction"
    CAPACITY = "capacity"
    DEPENDENCY = "dependency"
    INFRASTRUCTURE = "infrastructure"


class FailureReason(str, Enum):
    UNSUPPORTED_FORMAT = "unsupported_format"
    DOWNLOAD_FAILED = "download_failed"
    CORRUPTED_OR_PASSWORD_PROTECTED = "corrupted_or_password_protected"
    NO_EXTRACTABLE_TEXT = "no_extractable_text"
    DOCUMENT_TOO_LARGE = "document_too_large"
    SUMMARIZATION_FAILED = "summarization_failed"
    DOCUMENT_NOT_FOUND = "document_not_found"
    INTERNAL_ERROR = "internal_error"


# Reasons worth another attempt; everything else is deterministic
RETRYABLE_REASONS = frozenset({
    FailureReason.DOWNLOAD_FAILED,
    FailureReason.SUMMARIZATION_FAILED,
})


class SummaryPipelineError(Exception):
    """Base class for all pipeline errors."""

    kind: ErrorKind = ErrorKind.INFRASTRUCTURE
    reason: Optional[FailureReason] = None

    def __init__(self, message: str, reason: Optional[FailureReason] = None):
        super().__init__(message)
        self.message = message
        if reason is not None:
            self.reason = reason

    @property
    def retryable(self) -> bool:
        return self.reason in RETRYABLE_REASONS

    def to_dict(self):
        return {
            "kind": self.kind.value,
            "reason": self.reason.value if self.reason else None,
            "message": self.message,
        }


class ValidationError(SummaryPipelineError):
    """Bad input to a submit/status/upload call."""
    kind = ErrorKind.VALIDATION


class UploadTooLargeError(ValidationError):
    def __init__(self, size: int, max_bytes: int):
        self.size = size
        self.max_bytes = max_bytes
        super().__init__(
            f"File too large: {size} bytes. Maximum allowed size is {max_bytes // (1024 * 1024)}MB."
        )


class UnsupportedUploadError(ValidationError):
    reason = FailureReason.UNSUPPORTED_FORMAT

    def __init__(self, extension: str, allowed):
        self.extension = extension
        super().__init__(
            f"Unsupported file type: {extension or '<none>'}. Allowed: {', '.join(allowed)}"
        )


class NotFoundError(SummaryPipelineError):
    """Unknown document or job id."""
    kind = ErrorKind.NOT_FOUND
    reason = FailureReason.DOCUMENT_NOT_FOUND


class ExtractionError(SummaryPipelineError):
    kind = ErrorKind.EXTRACTION

    def __init__(self, reason: FailureReason, message: str):
        super().__init__(message, reason)


class DocumentTooLargeError(SummaryPipelineError):
    """Chunk count above the per-job ceiling. Never retried."""
    kind = ErrorKind.CAPACITY
    reason = FailureReason.DOCUMENT_TOO_LARGE

    def __init__(self, chunk_count: int, max_chunks: int):
        self.chunk_count = chunk_count
        self.max_chunks = max_chunks
        super().__init__(
            f"File is too large to process. This document would require {chunk_count} chunks "
            f"for processing (maximum allowed: {max_chunks} chunks). "
            f"Please upload a smaller document."
        )

    def to_dict(self):
        data = super().to_dict()
        data["chunk_count"] = self.chunk_count
        data["max_chunks"] = self.max_chunks
        return data


class CompletionError(SummaryPipelineError):
    """The LLM completion service failed or returned nothing usable."""
    kind = ErrorKind.DEPENDENCY
    reason = FailureReason.SUMMARIZATION_FAILED


class SummarizationError(SummaryPipelineError):
    """An LLM call inside the map-reduce summarizer failed."""
    kind = ErrorKind.DEPENDENCY
    reason = FailureReason.SUMMARIZATION_FAILED


class BlobStoreError(SummaryPipelineError):
    """The blob storage provider failed."""
    kind = ErrorKind.INFRASTRUCTURE


class BlobNotFoundError(BlobStoreError):
    kind = ErrorKind.NOT_FOUND
