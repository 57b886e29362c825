"""
Map-reduce summarization for extracted document text.

Short texts go through a single direct LLM call. Longer texts are:
1. Split into overlapping chunks (refused above the chunk ceiling)
2. Summarized chunk by chunk, in order (MAP phase)
3. Combined by one final LLM call (REDUCE phase)
4. Rendered as a structured Markdown artifact with per-chunk statistics
"""
import time
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional

from doc_summarizer.chunking.text_chunker import TextChunker
from doc_summarizer.config import (
    DIRECT_SUMMARY_MAX_CHARS,
    MAX_CHUNKS_PER_DOCUMENT,
    CHUNK_DELAY_SECONDS,
)
from doc_summarizer.errors import (
    CompletionError,
    DocumentTooLargeError,
    SummarizationError,
)
from doc_summarizer.logging_config import get_summarization_logger
from doc_summarizer.models import Chunk
from doc_summarizer.summarization.llm_client import LLMClient
from doc_summarizer.summarization.response_parser import clean_completion
from doc_summarizer.summarization.summary_prompts import (
    get_direct_summary_prompt,
    get_chunk_summary_prompt,
    get_final_combine_prompt,
)

logger = get_summarization_logger()

METHOD_DIRECT = "direct"
METHOD_MAP_REDUCE = "map_reduce"


@dataclass
class ChunkSummary:
    index: int
    summary: str
    word_count: int
    char_count: int


@dataclass
class SummaryResult:
    content: str
    method: str
    chunk_count: int
    chunk_summaries: List[ChunkSummary] = field(default_factory=list)


def render_structured_summary(final_summary: str, chunk_summaries: List[ChunkSummary]) -> str:
    """Compose the Markdown artifact returned for map-reduce summaries."""
    total_chunks = len(chunk_summaries)
    total_words = sum(c.word_count for c in chunk_summaries)
    total_chars = sum(c.char_count for c in chunk_summaries)
    avg_words = round(total_words / total_chunks) if total_chunks else 0

    lines = [
        "# Document Summary",
        "",
        "## Processing Statistics",
        f"- **Total Chunks Processed:** {total_chunks}",
        f"- **Total Words:** {total_words:,}",
        f"- **Total Characters:** {total_chars:,}",
        f"- **Average Words per Chunk:** {avg_words}",
        "",
        "## Comprehensive Summary",
        "",
        final_summary,
        "",
        "## Detailed Chunk Analysis",
        "",
    ]
    for c in chunk_summaries:
        lines.extend([
            f"### Section {c.index + 1}",
            f"**Words:** {c.word_count:,} | **Characters:** {c.char_count:,}",
            "",
            c.summary,
            "",
        ])
    lines.extend([
        "---",
        f"*Generated using chunked processing across {total_chunks} sections.*",
    ])
    return "\n".join(lines)


class MapReduceSummarizer:
    """Turns extracted text into a summary using an injected LLM client."""

    def __init__(
        self,
        llm: LLMClient,
        chunker: Optional[TextChunker] = None,
        direct_threshold: int = DIRECT_SUMMARY_MAX_CHARS,
        max_chunks: int = MAX_CHUNKS_PER_DOCUMENT,
        chunk_delay: float = CHUNK_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.llm = llm
        self.chunker = chunker or TextChunker()
        self.direct_threshold = direct_threshold
        self.max_chunks = max_chunks
        self.chunk_delay = chunk_delay
        self._sleep = sleep

    def _call_llm(self, prompt: str, context: str) -> str:
        try:
            return clean_completion(self.llm.complete(prompt, context=context))
        except CompletionError as e:
            logger.error(f"[SUMMARIZE] LLM call failed | context={context} | error={e.message}")
            raise SummarizationError(f"Summarization failed during {context}: {e.message}") from e

    def summarize(self, text: str) -> SummaryResult:
        start_time = time.time()
        logger.info(f"[SUMMARIZE] START | chars={len(text)} | direct_threshold={self.direct_threshold}")

        if len(text) <= self.direct_threshold:
            logger.info("[SUMMARIZE] Using DIRECT method (single LLM call)")
            summary = self._call_llm(get_direct_summary_prompt(text), context="direct")
            logger.info(f"[SUMMARIZE] END | method=direct | elapsed={time.time() - start_time:.2f}s")
            return SummaryResult(content=summary, method=METHOD_DIRECT, chunk_count=1)

        chunks = self.chunker.split(text)
        total_chunks = chunks.count()
        logger.info(f"[SUMMARIZE] Size decision | chunks={total_chunks} | max_chunks={self.max_chunks}")

        if total_chunks > self.max_chunks:
            logger.warning(f"[SUMMARIZE] REFUSED | chunks={total_chunks} exceeds max_chunks={self.max_chunks}")
            raise DocumentTooLargeError(total_chunks, self.max_chunks)

        chunk_summaries = self._map_chunks(chunks, total_chunks)

        logger.info(f"[REDUCE_PHASE] START | summaries={len(chunk_summaries)}")
        final_summary = self._call_llm(
            get_final_combine_prompt([c.summary for c in chunk_summaries]),
            context="reduce",
        )

        content = render_structured_summary(final_summary, chunk_summaries)
        logger.info(
            f"[SUMMARIZE] END | method=map_reduce | chunks={total_chunks} | "
            f"elapsed={time.time() - start_time:.2f}s"
        )
        return SummaryResult(
            content=content,
            method=METHOD_MAP_REDUCE,
            chunk_count=total_chunks,
            chunk_summaries=chunk_summaries,
        )

    def _map_chunks(self, chunks: Iterable[Chunk], total_chunks: int) -> List[ChunkSummary]:
        logger.info(f"[MAP_PHASE] START | total_chunks={total_chunks}")
        results: List[ChunkSummary] = []

        for chunk in chunks:
            if chunk.index and self.chunk_delay > 0:
                self._sleep(self.chunk_delay)

            logger.info(
                f"[MAP_PHASE] Chunk {chunk.index + 1}/{total_chunks} | "
                f"words={chunk.word_count} | chars={chunk.char_count}"
            )
            summary = self._call_llm(
                get_chunk_summary_prompt(chunk.text, chunk.index, total_chunks),
                context=f"chunk_{chunk.index + 1}_of_{total_chunks}",
            )
            results.append(ChunkSummary(
                index=chunk.index,
                summary=summary,
                word_count=chunk.word_count,
                char_count=chunk.char_count,
            ))

        logger.info(f"[MAP_PHASE] END | summaries_generated={len(results)}")
        return results
