from typing import Optional

from redis import Redis
from rq import Queue
from rq.job import Callback

from doc_summarizer import config
from doc_summarizer.logging_config import get_worker_logger

logger = get_worker_logger()

# Referenced by path so the API process never imports worker dependencies
SUMMARY_TASK = "doc_summarizer.workers.summary_worker.run_summary_job"
SUMMARY_FAILURE_CALLBACK = "doc_summarizer.workers.summary_worker.on_summary_job_failure"


class SummaryQueue:
    """Pushes summary jobs onto the RQ queue, one RQ job per document id."""

    def __init__(
        self,
        queue: Queue,
        job_timeout: int = config.JOB_TIMEOUT,
        result_ttl: int = config.JOB_RESULT_TTL,
        failure_ttl: int = config.JOB_FAILURE_TTL
    ):
        self.queue = queue
        self.job_timeout = job_timeout
        self.result_ttl = result_ttl
        self.failure_ttl = failure_ttl

    def push(self, document_id: str) -> str:
        rq_job = self.queue.enqueue(
            SUMMARY_TASK,
            document_id,
            job_id=document_id,
            job_timeout=self.job_timeout,
            result_ttl=self.result_ttl,
            failure_ttl=self.failure_ttl,
            on_failure=Callback(SUMMARY_FAILURE_CALLBACK),
            description=f"summarize {document_id}",
        )
        logger.info(f"[QUEUE] Enqueued | document_id={document_id} | queue={self.queue.name} | rq_job={rq_job.id}")
        return rq_job.id


def create_summary_queue(
    connection: Redis,
    name: str = config.SUMMARY_QUEUE_NAME,
    job_timeout: Optional[int] = None
) -> SummaryQueue:
    queue = Queue(name, connection=connection)
    return SummaryQueue(queue, job_timeout=job_timeout or config.JOB_TIMEOUT)
