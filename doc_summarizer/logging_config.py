"""
Logging for the summarization pipeline.

One rotating log file per area, every ERROR record duplicated into error.log,
INFO and above echoed to the console. Each record carries the id of the
document being worked on (or "-") through a ContextVar, so lines written from
worker threads and request handlers can be grepped per document.
"""

import os
import logging
import logging.handlers
from pathlib import Path
from contextvars import ContextVar
from typing import Optional

LOG_DIR = Path(os.environ.get("DOC_SUMMARIZER_LOG_DIR", Path(__file__).parent / "logs"))
LOG_DIR.mkdir(parents=True, exist_ok=True)

LOG_MAX_BYTES = 10 * 1024 * 1024
LOG_BACKUP_COUNT = 5

DETAILED_FORMAT = "%(asctime)s | %(levelname)-8s | %(document_id)-32s | %(name)-28s | %(funcName)-20s | %(message)s"
SIMPLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(document_id)-32s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Logger name suffix -> log file
AREA_LOG_FILES = {
    "api": "api.log",
    "worker": "worker.log",
    "extraction": "extraction.log",
    "summarization": "summarization.log",
    "cache": "cache.log",
    "storage": "storage.log",
    "cleanup": "cleanup.log",
}

current_document_id: ContextVar[Optional[str]] = ContextVar("document_id", default=None)


class DocumentIdFilter(logging.Filter):
    def filter(self, record):
        record.document_id = current_document_id.get() or "-"
        return True


def _file_handler(filename: str, level=logging.DEBUG) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        LOG_DIR / filename,
        maxBytes=LOG_MAX_BYTES,
        backupCount=LOG_BACKUP_COUNT,
        encoding="utf-8"
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(DETAILED_FORMAT, DATE_FORMAT))
    handler.addFilter(DocumentIdFilter())
    return handler


def _console_handler(level=logging.INFO) -> logging.Handler:
    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(SIMPLE_FORMAT, DATE_FORMAT))
    handler.addFilter(DocumentIdFilter())
    return handler


def get_area_logger(area: str) -> logging.Logger:
    """Return the `doc_summarizer.<area>` logger, attaching handlers on first use."""
    logger = logging.getLogger(f"doc_summarizer.{area}")
    if logger.handlers:
        return logger

    logger.setLevel(logging.DEBUG)
    logger.addHandler(_file_handler(AREA_LOG_FILES[area]))
    logger.addHandler(_file_handler("error.log", logging.ERROR))
    logger.addHandler(_console_handler())
    return logger


def get_api_logger():
    return get_area_logger("api")


def get_worker_logger():
    """Worker, queue, rate limiter and job store."""
    return get_area_logger("worker")


def get_extraction_logger():
    return get_area_logger("extraction")


def get_summarization_logger():
    """Chunking, LLM calls and map-reduce steps."""
    return get_area_logger("summarization")


def get_cache_logger():
    return get_area_logger("cache")


def get_storage_logger():
    """Blob stores and the file registry."""
    return get_area_logger("storage")


def get_cleanup_logger():
    return get_area_logger("cleanup")


def setup_all_loggers():
    """Attach every area's handlers and send uvicorn's output to api.log."""
    for area in AREA_LOG_FILES:
        get_area_logger(area)

    for name in ("uvicorn", "uvicorn.access"):
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers = [_file_handler(AREA_LOG_FILES["api"])]


class DocumentContext:
    """Tag every record logged inside the block with `document_id`."""

    def __init__(self, document_id: str):
        self.document_id = document_id
        self._token = None

    def __enter__(self):
        self._token = current_document_id.set(self.document_id)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        current_document_id.reset(self._token)
        return False


class LogContext(DocumentContext):
    """
    Log START/END (or FAILED with traceback) around an operation.

    Usage:
        with LogContext(logger, "summary_job", document_id=doc_id, attempt=1):
            ...
    """

    def __init__(self, logger: logging.Logger, operation: str, document_id: Optional[str] = None, **details):
        super().__init__(document_id if document_id else current_document_id.get())
        self.logger = logger
        self.operation = operation
        self.details = details

    def __enter__(self):
        super().__enter__()
        details = " | ".join(f"{k}={v}" for k, v in self.details.items())
        self.logger.info(f"START: {self.operation}" + (f" | {details}" if details else ""))
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            self.logger.error(f"FAILED: {self.operation} - {exc_val}", exc_info=True)
        else:
            self.logger.info(f"END: {self.operation}")
        return super().__exit__(exc_type, exc_val, exc_tb)
