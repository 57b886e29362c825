"""Chunking module for the summarization pipeline."""

from doc_summarizer.chunking.text_chunker import TextChunker, ChunkSequence

__all__ = ["TextChunker", "ChunkSequence"]
