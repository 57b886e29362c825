"""
Boundary-aware character chunking for long documents.

Strategy: fill a window of chunk_size characters, then cut at the softest
boundary available inside it (paragraph > line > sentence > whitespace >
hard cut). The next chunk starts `overlap` characters before the cut.
"""
from typing import Iterator, Optional, Sequence, Tuple

from doc_summarizer.config import DEFAULT_CHUNKING_CONFIG
from doc_summarizer.models import Chunk


# Boundary levels in priority order; separators within a level are equal
SEPARATOR_LEVELS: Tuple[Tuple[str, ...], ...] = (
    ("\n\n",),
    ("\n",),
    (". ", "! ", "? "),
    (" ", "\t"),
)


class ChunkSequence:
    """
    Lazy, restartable view over the chunks of one text.

    Each iteration re-runs the splitter, so the sequence can be walked any
    number of times and always yields the same chunks.
    """

    def __init__(self, chunker: "TextChunker", text: str):
        self._chunker = chunker
        self._text = text

    def __iter__(self) -> Iterator[Chunk]:
        return self._chunker.iter_chunks(self._text)

    def count(self) -> int:
        return sum(1 for _ in self)


class TextChunker:
    """Splits text into overlapping chunks on natural boundaries."""

    def __init__(
        self,
        chunk_size: Optional[int] = None,
        overlap: Optional[int] = None,
        separator_levels: Sequence[Tuple[str, ...]] = SEPARATOR_LEVELS
    ):
        self.chunk_size = DEFAULT_CHUNKING_CONFIG.chunk_size if chunk_size is None else chunk_size
        self.overlap = DEFAULT_CHUNKING_CONFIG.overlap if overlap is None else overlap
        self.separator_levels = tuple(separator_levels)

        if self.chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {self.chunk_size}")
        if self.overlap < 0 or self.overlap >= self.chunk_size:
            raise ValueError(
                f"overlap must be in [0, chunk_size), got overlap={self.overlap} chunk_size={self.chunk_size}"
            )

    def split(self, text: str) -> ChunkSequence:
        return ChunkSequence(self, text)

    def _find_cut(self, text: str, start: int, limit: int) -> int:
        """
        End offset (exclusive) for the chunk that starts at `start`.

        A boundary only counts if it lies beyond the overlap region, so the
        next chunk always starts after the current one.
        """
        min_cut = start + self.overlap + 1

        for level in self.separator_levels:
            best = -1
            for sep in level:
                idx = text.rfind(sep, start, limit)
                if idx == -1:
                    continue
                cut = idx + len(sep)
                if cut >= min_cut and cut > best:
                    best = cut
            if best != -1:
                return best

        # No natural boundary: hard cut
        return limit

    def iter_chunks(self, text: str) -> Iterator[Chunk]:
        if not text:
            return

        length = len(text)
        start = 0
        index = 0
        prev_end = 0

        while True:
            if length - start <= self.chunk_size:
                end = length
            else:
                end = self._find_cut(text, start, start + self.chunk_size)

            overlap = max(0, prev_end - start) if index else 0
            yield Chunk(index=index, text=text[start:end], start=start, end=end, overlap=overlap)

            if end >= length:
                return

            index += 1
            prev_end = end
            start = end - self.overlap
