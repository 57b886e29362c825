"""
Cleanup rules for free-text LLM completions.

Rules, applied in order:
1. Trim surrounding whitespace.
2. Unwrap a single Markdown code fence that wraps the whole reply.
3. Drop a leading "Summary:" style label echoed back from the prompt.
4. An empty reply after cleaning is a CompletionError.
"""
import re

from doc_summarizer.errors import CompletionError

_FENCE_RE = re.compile(r"^```[\w-]*\n(?P<body>.*)\n```$", re.DOTALL)

# Only label-with-colon counts: "Summary of findings..." is prose
_LABEL_RE = re.compile(
    r"^(?:\*\*)?(?:final\s+)?summary(?:\s*\(in english\))?\s*:(?:\*\*)?\s*",
    re.IGNORECASE,
)


def unwrap_code_fence(text: str) -> str:
    match = _FENCE_RE.match(text)
    return match.group("body").strip() if match else text


def strip_summary_label(text: str) -> str:
    return _LABEL_RE.sub("", text, count=1).strip()


def clean_completion(text: str) -> str:
    """Apply all cleanup rules to one completion."""
    if text is None:
        raise CompletionError("LLM returned no content")

    cleaned = text.strip()
    cleaned = unwrap_code_fence(cleaned)
    cleaned = strip_summary_label(cleaned)

    if not cleaned:
        raise CompletionError("LLM returned an empty completion")
    return cleaned
