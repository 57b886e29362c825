import logging

import pytest

from doc_summarizer.logging_config import (
    AREA_LOG_FILES,
    DocumentContext,
    DocumentIdFilter,
    LogContext,
    current_document_id,
    get_area_logger,
)


def _tagged(message="x"):
    record = logging.LogRecord("test", logging.INFO, __file__, 1, message, None, None)
    DocumentIdFilter().filter(record)
    return record.document_id


def test_records_carry_document_id_inside_context():
    assert _tagged() == "-"
    with DocumentContext("doc1"):
        assert _tagged() == "doc1"
        with DocumentContext("doc2"):
            assert _tagged() == "doc2"
        assert _tagged() == "doc1"
    assert _tagged() == "-"


def test_log_context_reports_failure_and_restores_id(caplog):
    logger = get_area_logger("worker")

    with caplog.at_level(logging.INFO, logger="doc_summarizer.worker"):
        with pytest.raises(RuntimeError):
            with LogContext(logger, "summary_job", document_id="doc1", attempt=1):
                assert current_document_id.get() == "doc1"
                raise RuntimeError("boom")

    messages = [r.getMessage() for r in caplog.records]
    assert "START: summary_job | attempt=1" in messages
    assert any(m.startswith("FAILED: summary_job - boom") for m in messages)
    assert current_document_id.get() is None


def test_area_loggers_attach_handlers_once():
    logger = get_area_logger("cache")
    handlers = list(logger.handlers)

    assert get_area_logger("cache").handlers == handlers
    assert len(handlers) == 3
    assert set(AREA_LOG_FILES) >= {"api", "worker", "cleanup"}
