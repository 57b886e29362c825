from doc_summarizer.queues.enqueue import SummaryQueue, create_summary_queue, SUMMARY_TASK, SUMMARY_FAILURE_CALLBACK
from doc_summarizer.queues.rate_limiter import RateLimiter

__all__ = ["SummaryQueue", "create_summary_queue", "SUMMARY_TASK", "SUMMARY_FAILURE_CALLBACK", "RateLimiter"]
