"""
SummaryService: the upward surface of the pipeline.

Request handlers call this and nothing else. Nothing here runs extraction
or summarization; submit only records a job and pushes it to the queue.
"""
import re
from typing import List, Optional

from doc_summarizer.documents.file_registry import FileRegistry
from doc_summarizer.errors import NotFoundError, ValidationError
from doc_summarizer.jobs.job_store import JobStore
from doc_summarizer.jobs.status_cache import StatusCache
from doc_summarizer.logging_config import get_api_logger
from doc_summarizer.models import CacheEntry, Document, JobStatus, SubmitResult, SummaryJob
from doc_summarizer.queues.enqueue import SummaryQueue

logger = get_api_logger()

DOCUMENT_ID_RE = re.compile(r"^[A-Za-z0-9_-]{1,128}$")


def validate_document_id(document_id: str) -> str:
    if not document_id or not DOCUMENT_ID_RE.match(document_id):
        raise ValidationError(f"Invalid document id: {document_id!r}")
    return document_id


def _owned_by(document: Document, owner_id: Optional[str]) -> bool:
    # Documents uploaded without an owner are visible to everyone
    return document.owner_id is None or document.owner_id == owner_id


class SummaryService:

    def __init__(
        self,
        job_store: JobStore,
        registry: FileRegistry,
        cache: StatusCache,
        queue: SummaryQueue
    ):
        self.job_store = job_store
        self.registry = registry
        self.cache = cache
        self.queue = queue

    def upload(
        self,
        filename: str,
        data: bytes,
        owner_id: Optional[str] = None,
        mime_type: Optional[str] = None
    ) -> Document:
        return self.registry.upload(filename, data, owner_id=owner_id, mime_type=mime_type)

    def submit(self, document_id: str, owner_id: Optional[str] = None) -> SubmitResult:
        """
        Request a summary for an uploaded document.

        Idempotent per document id: an active job is reported as already_active
        and a completed one as already_completed, neither re-queued. A failed
        job is replaced and re-queued.
        """
        validate_document_id(document_id)

        document = self.registry.get(document_id)
        if document is None or not _owned_by(document, owner_id):
            logger.info(f"[SUBMIT] Not found | document_id={document_id}")
            return SubmitResult.NOT_FOUND

        created, job = self.job_store.create_job(document_id, document.owner_id)
        if not created:
            result = (
                SubmitResult.ALREADY_COMPLETED
                if job.status == JobStatus.COMPLETED
                else SubmitResult.ALREADY_ACTIVE
            )
            logger.info(f"[SUBMIT] {result.value} | document_id={document_id} | status={job.status.value}")
            return result

        self.cache.put(document_id, CacheEntry.from_job(job))
        try:
            self.queue.push(document_id)
        except Exception as e:
            # Leave no pending job that nothing will ever run
            logger.error(f"[SUBMIT] Enqueue failed, rolling back | document_id={document_id} | error={e}")
            self.job_store.delete(document_id, job.owner_id)
            self.cache.invalidate(document_id)
            raise

        logger.info(f"[SUBMIT] Accepted | document_id={document_id}")
        return SubmitResult.ACCEPTED

    def get_status(self, document_id: str) -> CacheEntry:
        """Cached status, falling back to the job store on a miss."""
        validate_document_id(document_id)

        entry = self.cache.get(document_id)
        if entry is not None:
            return entry

        job = self.job_store.get(document_id)
        if job is None:
            raise NotFoundError(f"No summary job for document {document_id}")

        entry = CacheEntry.from_job(job)
        self.cache.put(document_id, entry)
        return entry

    def delete(self, document_id: str, owner_id: Optional[str] = None) -> None:
        """Delete a document, its summary and its cached status."""
        validate_document_id(document_id)

        document = self.registry.get(document_id)
        if document is None or not _owned_by(document, owner_id):
            raise NotFoundError(f"Document {document_id} not found")

        self.registry.purge(document)
        logger.info(f"[DELETE] Deleted | document_id={document_id}")

    def history(self, owner_id: str, limit: int = 50) -> List[SummaryJob]:
        if not owner_id:
            raise ValidationError("owner_id is required")
        return self.job_store.list_for_owner(owner_id, limit=limit)
