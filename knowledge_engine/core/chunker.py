"""
Boundary-aware text chunker.

Splits long text into overlapping chunks, preferring to cut at a paragraph
break, then a sentence end, then a word boundary.

Dependencies: None
System role: First stage of knowledge ingestion (before embedding)
"""

from dataclasses import dataclass

DEFAULT_CHUNK_SIZE = 1500
DEFAULT_OVERLAP = 200

# Break markers in priority order; the cut lands just after the marker.
_BREAK_MARKERS = ("\n\n", ". ", " ")


@dataclass(frozen=True)
class Chunk:
    """A contiguous slice of a document and its position among emitted chunks."""

    text: str
    index: int


class TextChunker:
    """Split documents into overlapping chunks at natural boundaries."""

    def __init__(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        overlap: int = DEFAULT_OVERLAP,
    ) -> None:
        """
        Initialize chunker with size configuration.

        Args:
            chunk_size: Maximum chunk size in characters
            overlap: Characters shared between consecutive chunks

        Raises:
            ValueError: When chunk_size is not positive or overlap is not in
                [0, chunk_size / 2)
        """
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if overlap < 0 or 2 * overlap >= chunk_size:
            raise ValueError("overlap must be non-negative and less than half of chunk_size")

        self.chunk_size = chunk_size
        self.overlap = overlap
        # Every cut lands past the window midpoint, so each step gains at least this much
        self.min_advance = (chunk_size + 1) // 2 - overlap

    def chunk(self, text: str) -> list[Chunk]:
        """
        Split text into chunks.

        Text that fits in a single chunk comes back as one trimmed chunk with
        index 0. Longer text is scanned window by window; chunks that are blank
        after trimming are dropped without consuming an index.

        Args:
            text: Document text

        Returns:
            list[Chunk]: Chunks in document order with contiguous indices
        """
        if len(text) <= self.chunk_size:
            return [Chunk(text=text.strip(), index=0)]

        chunks: list[Chunk] = []
        start = 0
        length = len(text)

        while start < length:
            end = min(start + self.chunk_size, length)
            if end < length:
                end = start + self._find_cut(text[start:end])

            piece = text[start:end].strip()
            if piece:
                chunks.append(Chunk(text=piece, index=len(chunks)))

            if end >= length:
                break
            start = max(end - self.overlap, start + self.min_advance)

        return chunks

    def _find_cut(self, window: str) -> int:
        """Return the cut offset inside a full window."""
        midpoint = self.chunk_size * 0.5
        for marker in _BREAK_MARKERS:
            position = window.rfind(marker)
            if position > midpoint:
                return position + len(marker)
        return len(window)


def chunk_text(
    text: str,
    max_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_OVERLAP,
) -> list[Chunk]:
    """
    Split text into overlapping chunks at paragraph, sentence or word boundaries.

    Args:
        text: Document text
        max_size: Maximum chunk size in characters
        overlap: Characters shared between consecutive chunks

    Returns:
        list[Chunk]: Ordered chunks
    """
    return TextChunker(chunk_size=max_size, overlap=overlap).chunk(text)
