"""
Records shared across the pipeline.

Document and SummaryJob are persisted as JSON in the durable store, CacheEntry
is the projection kept in the status cache, Chunk never leaves the worker.
"""
import time
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Optional, Dict, Any


class JobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)

    @property
    def is_active(self) -> bool:
        return self in (JobStatus.PENDING, JobStatus.PROCESSING)


class SubmitResult(str, Enum):
    ACCEPTED = "accepted"
    ALREADY_ACTIVE = "already_active"
    ALREADY_COMPLETED = "already_completed"
    NOT_FOUND = "not_found"


@dataclass
class Document:
    id: str
    owner_id: Optional[str]
    original_name: str
    storage_ref: str
    url: str
    size: int
    mime_type: Optional[str]
    extension: str
    uploaded_at: float
    delete_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.delete_at

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Document":
        return cls(**data)


@dataclass
class SummaryJob:
    id: str
    owner_id: Optional[str]
    status: JobStatus = JobStatus.PENDING
    result: Optional[str] = None
    error_reason: Optional[str] = None
    error_message: Optional[str] = None
    attempts: int = 0
    method: Optional[str] = None
    chunk_count: Optional[int] = None
    created_at: float = field(default_factory=time.time)
    updated_at: float = field(default_factory=time.time)
    completed_at: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SummaryJob":
        data = dict(data)
        data["status"] = JobStatus(data["status"])
        return cls(**data)


@dataclass
class CacheEntry:
    """Serialized view of a SummaryJob returned by status polling."""
    status: JobStatus
    job_id: str
    content: Optional[str] = None
    error_reason: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def from_job(cls, job: SummaryJob) -> "CacheEntry":
        if job.status == JobStatus.COMPLETED:
            return cls(status=job.status, job_id=job.id, content=job.result)
        if job.status == JobStatus.FAILED:
            return cls(
                status=job.status,
                job_id=job.id,
                error_reason=job.error_reason,
                message=job.error_message,
            )
        return cls(status=job.status, job_id=job.id)

    def to_dict(self) -> Dict[str, Any]:
        data = {"status": self.status.value, "job_id": self.job_id}
        if self.content is not None:
            data["content"] = self.content
        if self.error_reason is not None:
            data["error_reason"] = self.error_reason
        if self.message is not None:
            data["message"] = self.message
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheEntry":
        return cls(
            status=JobStatus(data["status"]),
            job_id=data["job_id"],
            content=data.get("content"),
            error_reason=data.get("error_reason"),
            message=data.get("message"),
        )


@dataclass(frozen=True)
class Chunk:
    index: int
    text: str
    start: int
    end: int
    overlap: int = 0

    @property
    def char_count(self) -> int:
        return len(self.text)

    @property
    def word_count(self) -> int:
        return len(self.text.split())
