"""Summarization module: LLM clients, prompts and the map-reduce summarizer."""

from doc_summarizer.summarization.llm_client import (
    LLMClient,
    OllamaClient,
    VllmClient,
    create_llm_client,
)
from doc_summarizer.summarization.map_reduce_summarizer import (
    MapReduceSummarizer,
    SummaryResult,
    METHOD_DIRECT,
    METHOD_MAP_REDUCE,
)

__all__ = [
    "LLMClient",
    "OllamaClient",
    "VllmClient",
    "create_llm_client",
    "MapReduceSummarizer",
    "SummaryResult",
    "METHOD_DIRECT",
    "METHOD_MAP_REDUCE",
]
