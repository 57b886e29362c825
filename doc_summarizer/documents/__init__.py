"""Uploaded document metadata and retention."""

from doc_summarizer.documents.file_registry import DocumentStore, FileRegistry

__all__ = ["DocumentStore", "FileRegistry"]
