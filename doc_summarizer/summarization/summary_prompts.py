"""
Prompt templates for document summarization.
"""
from typing import List

from doc_summarizer.config import (
    DIRECT_SUMMARY_WORDS,
    CHUNK_SUMMARY_WORDS,
    FINAL_SUMMARY_WORDS,
)

# =========================
# Direct summarization prompt
# =========================
DIRECT_SUMMARY_PROMPT = """
You are summarizing a complete document.

IMPORTANT RULES:
- If the content is not in English, first translate it internally into English
- Use ONLY the information present in the content
- Do NOT add assumptions, interpretations, or external knowledge
- Preserve factual accuracy (numbers, dates, metrics, names)

CONTENT:
{content}

TASK:
Generate a concise English summary of {word_count} words that focuses on the key
points, main ideas, and important details.

OUTPUT:
Summary:
"""


# =========================
# Chunk (map) prompt
# =========================
CHUNK_SUMMARY_PROMPT = """
This is chunk {chunk_number} of {total_chunks} from a larger document.

IMPORTANT RULES:
- Use ONLY the information present in this chunk
- Do NOT add assumptions or external knowledge
- Preserve factual accuracy (numbers, dates, metrics, names)

CHUNK CONTENT:
{content}

TASK:
Generate a detailed summary of approximately {word_count} words for this section, focusing on:
- Key concepts and main ideas
- Important facts and details
- Any conclusions or insights

The summary will be merged with summaries of the other {other_chunks} section(s),
so keep it self-contained.

OUTPUT:
Summary:
"""


# =========================
# Reduce prompt
# =========================
FINAL_COMBINE_PROMPT = """
Below are summaries from {total_chunks} consecutive sections of one document, in order.

SECTION SUMMARIES:
{summaries}

TASK:
Create a comprehensive, well-structured final summary that:
- Combines all key points coherently
- Maintains logical flow and organization
- Highlights the most important insights
- Removes redundancy while preserving essential information
- Keeps the final summary between {word_count} words

OUTPUT:
Summary:
"""

SECTION_SEPARATOR = "\n\n---\n\n"


def get_direct_summary_prompt(content: str, word_count: str = DIRECT_SUMMARY_WORDS) -> str:
    return DIRECT_SUMMARY_PROMPT.format(content=content, word_count=word_count)


def get_chunk_summary_prompt(
    content: str,
    chunk_index: int,
    total_chunks: int,
    word_count: int = CHUNK_SUMMARY_WORDS
) -> str:
    """Build the map prompt. chunk_index is 0-based."""
    return CHUNK_SUMMARY_PROMPT.format(
        content=content,
        chunk_number=chunk_index + 1,
        total_chunks=total_chunks,
        other_chunks=total_chunks - 1,
        word_count=word_count,
    )


def get_final_combine_prompt(summaries: List[str], word_count: str = FINAL_SUMMARY_WORDS) -> str:
    formatted = SECTION_SEPARATOR.join(
        f"[Section {i + 1}]\n{summary}" for i, summary in enumerate(summaries)
    )
    return FINAL_COMBINE_PROMPT.format(
        summaries=formatted,
        total_chunks=len(summaries),
        word_count=word_count,
    )
