"""
Durable SummaryJob records in Redis.

Keys:
- job:{document_id}          JSON-serialized SummaryJob
- owner:{owner_id}:jobs      sorted set of document ids scored by created_at

Job creation is the only check-and-insert in the pipeline and runs under
WATCH/MULTI, so concurrent submits for one document create one record.
"""
import json
import time
from typing import Callable, List, Optional, Tuple

from redis import Redis
from redis.exceptions import WatchError

from doc_summarizer.config import JOB_TIMEOUT
from doc_summarizer.logging_config import get_worker_logger
from doc_summarizer.models import JobStatus, SummaryJob

logger = get_worker_logger()


def _job_key(document_id: str) -> str:
    return f"job:{document_id}"


def _owner_key(owner_id: str) -> str:
    return f"owner:{owner_id}:jobs"


def _dump(job: SummaryJob) -> str:
    return json.dumps(job.to_dict())


def _load(raw) -> Optional[SummaryJob]:
    if not raw:
        return None
    return SummaryJob.from_dict(json.loads(raw))


class JobStore:
    """Redis backed store for SummaryJob records."""

    def __init__(self, redis_client: Redis, stale_after: Optional[float] = JOB_TIMEOUT):
        self.redis = redis_client
        self.stale_after = stale_after

    def _replaceable(self, job: SummaryJob) -> bool:
        if job.status == JobStatus.FAILED:
            return True
        # Processing untouched for longer than RQ lets a job run: the work horse is gone
        return (
            job.status == JobStatus.PROCESSING
            and self.stale_after is not None
            and time.time() - job.updated_at > self.stale_after
        )

    # ========================================================================
    # Creation
    # ========================================================================

    def create_job(self, document_id: str, owner_id: Optional[str]) -> Tuple[bool, SummaryJob]:
        """
        Atomically create a pending job unless one is already live.

        Returns (created, job). An active or completed job is returned as-is
        with created=False. A failed job, or a processing job whose worker died
        (no update for `stale_after` seconds), is superseded by a fresh one.
        """
        key = _job_key(document_id)

        with self.redis.pipeline() as pipe:
            while True:
                try:
                    pipe.watch(key)
                    existing = _load(pipe.get(key))

                    if existing is not None and not self._replaceable(existing):
                        pipe.unwatch()
                        return False, existing

                    job = SummaryJob(id=document_id, owner_id=owner_id)
                    pipe.multi()
                    pipe.set(key, _dump(job))
                    if owner_id:
                        pipe.zadd(_owner_key(owner_id), {document_id: job.created_at})
                    pipe.execute()

                    if existing is not None:
                        logger.info(
                            f"[JOB_STORE] Superseded {existing.status.value} job | document_id={document_id} | "
                            f"previous_reason={existing.error_reason}"
                        )
                    return True, job
                except WatchError:
                    logger.debug(f"[JOB_STORE] WATCH conflict on create, retrying | document_id={document_id}")
                    continue

    # ========================================================================
    # Transitions
    # ========================================================================

    def _update(self, document_id: str, mutate: Callable[[SummaryJob], bool]) -> Optional[SummaryJob]:
        """
        Read-modify-write one job under WATCH.

        `mutate` edits the job in place and returns False to leave it unchanged.
        Returns the stored job, or None when no record exists.
        """
        key = _job_key(document_id)

        with self.redis.pipeline() as pipe:
            while True:
                try:
                    pipe.watch(key)
                    job = _load(pipe.get(key))
                    if job is None:
                        pipe.unwatch()
                        return None

                    if not mutate(job):
                        pipe.unwatch()
                        return job

                    job.updated_at = time.time()
                    pipe.multi()
                    pipe.set(key, _dump(job))
                    pipe.execute()
                    return job
                except WatchError:
                    continue

    def claim(self, document_id: str) -> Optional[SummaryJob]:
        """
        Move an active job to processing.

        Returns None for missing or terminal jobs; those are not worked on.
        A job already in processing (redelivered after a crash) is claimed again.
        """
        claimed = []

        def mutate(job: SummaryJob) -> bool:
            if job.status.is_terminal:
                return False
            job.status = JobStatus.PROCESSING
            claimed.append(job)
            return True

        job = self._update(document_id, mutate)
        return job if claimed else None

    def record_attempt(self, document_id: str) -> Optional[SummaryJob]:
        def mutate(job: SummaryJob) -> bool:
            if job.status.is_terminal:
                return False
            job.attempts += 1
            return True

        return self._update(document_id, mutate)

    def complete(
        self,
        document_id: str,
        result: str,
        method: Optional[str] = None,
        chunk_count: Optional[int] = None
    ) -> Optional[SummaryJob]:
        def mutate(job: SummaryJob) -> bool:
            if job.status.is_terminal:
                return False
            job.status = JobStatus.COMPLETED
            job.result = result
            job.method = method
            job.chunk_count = chunk_count
            job.error_reason = None
            job.error_message = None
            job.completed_at = time.time()
            return True

        return self._update(document_id, mutate)

    def fail(self, document_id: str, reason: str, message: str) -> Optional[SummaryJob]:
        def mutate(job: SummaryJob) -> bool:
            if job.status.is_terminal:
                return False
            job.status = JobStatus.FAILED
            job.result = None
            job.error_reason = reason
            job.error_message = message
            job.completed_at = time.time()
            return True

        return self._update(document_id, mutate)

    # ========================================================================
    # Retrieval / removal
    # ========================================================================

    def get(self, document_id: str) -> Optional[SummaryJob]:
        return _load(self.redis.get(_job_key(document_id)))

    def delete(self, document_id: str, owner_id: Optional[str] = None) -> bool:
        """Remove a job record and its owner index entry."""
        pipe = self.redis.pipeline()
        pipe.delete(_job_key(document_id))
        if owner_id:
            pipe.zrem(_owner_key(owner_id), document_id)
        deleted, *_ = pipe.execute()
        return bool(deleted)

    def list_for_owner(self, owner_id: str, limit: int = 50) -> List[SummaryJob]:
        """Owner's jobs, most recent first. Dangling index entries are skipped."""
        document_ids = self.redis.zrevrange(_owner_key(owner_id), 0, limit - 1)
        if not document_ids:
            return []

        raw_jobs = self.redis.mget([_job_key(_as_str(d)) for d in document_ids])
        return [job for job in (_load(raw) for raw in raw_jobs) if job is not None]


def _as_str(value) -> str:
    return value.decode() if isinstance(value, bytes) else value
