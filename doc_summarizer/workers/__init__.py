from doc_summarizer.workers.summary_worker import RetryPolicy, SummaryWorker, run_summary_job

__all__ = ["RetryPolicy", "SummaryWorker", "run_summary_job"]
