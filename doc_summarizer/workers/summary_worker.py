"""
Summary worker: runs one SummaryJob from claim to terminal state.

Flow per job:
1. Wait for a rate limiter slot
2. Claim the job (pending -> processing); skip missing or terminal jobs
3. Extract text (cached beside the Document after the first success)
4. Summarize (direct or map-reduce)
5. Write completed/failed to the job store and the status cache

Retryable failures are retried in-process with exponential backoff; every
attempt is recorded on the job.
"""
import time
from dataclasses import dataclass
from typing import Callable, Optional

from doc_summarizer.config import JOB_MAX_ATTEMPTS, JOB_BACKOFF_BASE_SECONDS
from doc_summarizer.documents.file_registry import DocumentStore
from doc_summarizer.errors import FailureReason, NotFoundError, SummaryPipelineError
from doc_summarizer.extraction.text_extractor import TextExtractor
from doc_summarizer.jobs.job_store import JobStore
from doc_summarizer.jobs.status_cache import StatusCache
from doc_summarizer.logging_config import get_worker_logger, LogContext
from doc_summarizer.models import CacheEntry, Document, SummaryJob
from doc_summarizer.queues.rate_limiter import RateLimiter
from doc_summarizer.summarization.map_reduce_summarizer import MapReduceSummarizer, SummaryResult

logger = get_worker_logger()


@dataclass
class RetryPolicy:
    max_attempts: int = JOB_MAX_ATTEMPTS
    backoff_base: float = JOB_BACKOFF_BASE_SECONDS

    def delay_for(self, attempt: int) -> float:
        """Backoff before the attempt after `attempt` (1-based)."""
        return self.backoff_base * (2 ** (attempt - 1))


class SummaryWorker:

    def __init__(
        self,
        job_store: JobStore,
        documents: DocumentStore,
        cache: StatusCache,
        extractor: TextExtractor,
        summarizer: MapReduceSummarizer,
        retry_policy: Optional[RetryPolicy] = None,
        rate_limiter: Optional[RateLimiter] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.job_store = job_store
        self.documents = documents
        self.cache = cache
        self.extractor = extractor
        self.summarizer = summarizer
        self.retry_policy = retry_policy or RetryPolicy()
        self.rate_limiter = rate_limiter
        self._sleep = sleep

    def _publish(self, job: Optional[SummaryJob]) -> Optional[SummaryJob]:
        if job is not None:
            self.cache.put(job.id, CacheEntry.from_job(job))
        return job

    def process(self, document_id: str) -> Optional[SummaryJob]:
        """Run one job to a terminal state. Returns the final job record."""
        if self.rate_limiter is not None:
            self.rate_limiter.acquire()

        with LogContext(logger, "summary_job", document_id=document_id):
            job = self.job_store.claim(document_id)
            if job is None:
                existing = self.job_store.get(document_id)
                logger.info(
                    f"[WORKER] Skipped | status={existing.status.value if existing else 'missing'}"
                )
                return existing
            self._publish(job)

            try:
                document = self.documents.get(document_id)
                if document is None:
                    return self._fail(document_id, NotFoundError(f"Document {document_id} no longer exists"))
                return self._run_with_retries(document)
            except Exception as e:
                logger.error(f"[WORKER] Unexpected error | error={e}", exc_info=True)
                self._publish(self.job_store.fail(
                    document_id, FailureReason.INTERNAL_ERROR.value, "Internal error while processing document"
                ))
                raise

    def _run_with_retries(self, document: Document) -> Optional[SummaryJob]:
        attempt = 0
        while True:
            attempt += 1
            if self.job_store.record_attempt(document.id) is None:
                logger.warning("[WORKER] Job record disappeared mid-run, stopping")
                return None

            try:
                result = self._run_once(document, attempt)
            except SummaryPipelineError as e:
                if e.retryable and attempt < self.retry_policy.max_attempts:
                    delay = self.retry_policy.delay_for(attempt)
                    logger.warning(
                        f"[WORKER] Attempt {attempt}/{self.retry_policy.max_attempts} failed | "
                        f"reason={e.reason.value} | retry_in={delay:.2f}s"
                    )
                    self._sleep(delay)
                    continue
                logger.error(f"[WORKER] Giving up after attempt {attempt} | reason={e.reason.value if e.reason else None}")
                return self._fail(document.id, e)

            return self._complete(document.id, result)

    def _run_once(self, document: Document, attempt: int) -> SummaryResult:
        text = self.documents.get_extracted_text(document.id)
        if text is None:
            text = self.extractor.extract(document.storage_ref, document.extension)
            self.documents.save_extracted_text(document.id, text)
        else:
            logger.debug(f"[WORKER] Using cached extracted text | attempt={attempt} | chars={len(text)}")

        return self.summarizer.summarize(text)

    def _complete(self, document_id: str, result: SummaryResult) -> Optional[SummaryJob]:
        job = self.job_store.complete(
            document_id, result.content, method=result.method, chunk_count=result.chunk_count
        )
        logger.info(f"[WORKER] Completed | method={result.method} | chunks={result.chunk_count}")
        return self._publish(job)

    def _fail(self, document_id: str, error: SummaryPipelineError) -> Optional[SummaryJob]:
        reason = (error.reason or FailureReason.INTERNAL_ERROR).value
        job = self.job_store.fail(document_id, reason, error.message)
        logger.info(f"[WORKER] Failed | reason={reason} | message={error.message}")
        return self._publish(job)

    def abandon(self, document_id: str, message: str) -> Optional[SummaryJob]:
        """Fail a job whose work horse stopped before reaching a terminal state."""
        job = self.job_store.fail(document_id, FailureReason.INTERNAL_ERROR.value, message)
        if job is not None:
            logger.warning(f"[WORKER] Abandoned | document_id={document_id} | status={job.status.value} | {message}")
        return self._publish(job)


# Worker instance for RQ work horses, built on first use
_worker: Optional[SummaryWorker] = None


def get_worker() -> SummaryWorker:
    global _worker
    if _worker is None:
        from doc_summarizer.bootstrap import build_components
        _worker = build_components().worker
    return _worker


def run_summary_job(document_id: str) -> Optional[str]:
    """RQ entry point. Returns the job's final status."""
    job = get_worker().process(document_id)
    return job.status.value if job else None


def on_summary_job_failure(job, connection, type, value, traceback):
    """RQ failure callback. Covers timeouts and crashes that skip process()'s own handling."""
    get_worker().abandon(job.id, f"Worker stopped: {type.__name__}: {value}")
