"""Job records and status cache."""

from doc_summarizer.jobs.job_store import JobStore
from doc_summarizer.jobs.status_cache import StatusCache, ttl_for_status

__all__ = ["JobStore", "StatusCache", "ttl_for_status"]
