"""Text extraction module."""

from doc_summarizer.extraction.text_extractor import (
    TextExtractor,
    DEFAULT_EXTRACTORS,
    normalize_extension,
)

__all__ = ["TextExtractor", "DEFAULT_EXTRACTORS", "normalize_extension"]
