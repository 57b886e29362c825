"""Asynchronous document summarization pipeline."""

__version__ = "1.0.0"
