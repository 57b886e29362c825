"""Retention sweeper for expired documents."""

from doc_summarizer.cleanup.cleanup_service import RetentionSweeper

__all__ = ["RetentionSweeper"]
