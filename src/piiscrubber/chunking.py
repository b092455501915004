"""
Content chunker.

Splits large documents into overlapping windows cut at natural boundaries
so each window fits comfortably in one detection call.
"""

import logging
import re
from typing import Any, Dict, List

from .exceptions import ChunkingError
from .types import Chunk

logger = logging.getLogger(__name__)

# Boundary patterns in priority order
BOUNDARIES = (
    ("paragraph", re.compile(r"\n\s*\n")),
    ("sentence", re.compile(r"[.!?][\"')\]]*\s+")),
    ("word", re.compile(r"\s+")),
)
_WHITESPACE = re.compile(r"\s")


class ContentChunker:
    """
    Splits text into overlapping chunks.

    Every chunk after the first starts ``overlap_size`` characters before the
    end of the previous one, so an entity cut by one boundary appears whole
    in the neighbouring chunk.

    Example:
        chunker = ContentChunker(max_chunk_size=5000, overlap_size=500)
        chunks = chunker.chunk(document)
        chunks[0].start_offset == 0 and chunks[-1].end_offset == len(document)
    """

    def __init__(
        self,
        max_chunk_size: int = 5000,
        overlap_size: int = 500,
        boundary_margin: int = 500,
    ):
        if max_chunk_size < 2 or overlap_size < 0 or overlap_size >= max_chunk_size:
            raise ValueError(
                "Chunk geometry requires 0 <= overlap_size < max_chunk_size"
            )
        self.max_chunk_size = max_chunk_size
        self.overlap_size = overlap_size
        # Each step must advance past the overlap, so the backward search for a
        # boundary may only eat half of the non-overlapping part of a window
        self.boundary_margin = min(boundary_margin, (max_chunk_size - overlap_size) // 2)

    def chunk(self, text: str) -> List[Chunk]:
        """
        Split ``text`` into chunks.

        Args:
            text: Full document text

        Returns:
            Chunks covering ``[0, len(text))`` with no gaps

        Raises:
            ChunkingError: If the produced chunks are inconsistent
        """
        if not text:
            return []

        length = len(text)
        if length <= self.max_chunk_size:
            return [Chunk(index=0, start_offset=0, end_offset=length, text=text)]

        chunks: List[Chunk] = []
        start = 0
        while True:
            target = start + self.max_chunk_size
            if target >= length:
                chunks.append(self._make(text, len(chunks), start, length))
                break

            end = self.find_boundary(text, start, target)
            chunks.append(self._make(text, len(chunks), start, end))

            next_start = self._snap_start(text, end - self.overlap_size, end)
            if next_start <= start:
                raise ChunkingError(
                    f"Chunking made no progress at offset {start}"
                )
            start = next_start

        errors = self.validate(chunks, text)
        if errors:
            raise ChunkingError("; ".join(errors))

        logger.debug(
            "Document chunked",
            extra={"chunk_count": len(chunks), "document_length": length},
        )
        return chunks

    def find_boundary(self, text: str, start: int, target: int) -> int:
        """
        Find where a chunk ending near ``target`` should actually end.

        Priority: paragraph > sentence > word. Falls back to a hard cut at
        ``target`` when the window holds no boundary at all.
        """
        search_start = max(start + 1, target - self.boundary_margin)
        window = text[search_start:target]

        for _name, pattern in BOUNDARIES:
            last = None
            for match in pattern.finditer(window):
                last = match
            if last is not None:
                return search_start + last.end()

        return target

    def _snap_start(self, text: str, position: int, previous_end: int) -> int:
        """Move a chunk start forward to the next word start.

        Never moves by more than half the overlap, so consecutive chunks
        keep sharing text.
        """
        if self.overlap_size == 0 or position <= 0:
            return max(position, 0)
        if _WHITESPACE.match(text[position - 1]):
            return position
        limit = min(position + self.overlap_size // 2, previous_end - 1)
        match = _WHITESPACE.search(text, position, limit)
        if match is None:
            return position
        return match.end()

    @staticmethod
    def _make(text: str, index: int, start: int, end: int) -> Chunk:
        return Chunk(index=index, start_offset=start, end_offset=end, text=text[start:end])

    def stats(self, chunks: List[Chunk]) -> Dict[str, Any]:
        """Size statistics for the audit record."""
        if not chunks:
            return {"count": 0, "avgSize": 0, "minSize": 0, "maxSize": 0}

        sizes = [c.size for c in chunks]
        return {
            "count": len(chunks),
            "avgSize": round(sum(sizes) / len(sizes)),
            "minSize": min(sizes),
            "maxSize": max(sizes),
            "overlapSize": self.overlap_size,
            "maxChunkSize": self.max_chunk_size,
        }

    def validate(self, chunks: List[Chunk], text: str) -> List[str]:
        """Check coverage, overlap and offsets. Returns a list of problems."""
        errors: List[str] = []
        if not chunks:
            return ["No chunks produced"] if text else []

        if chunks[0].start_offset != 0:
            errors.append(f"First chunk starts at {chunks[0].start_offset}")
        if chunks[-1].end_offset != len(text):
            errors.append(
                f"Last chunk ends at {chunks[-1].end_offset}, text length {len(text)}"
            )

        for i, current in enumerate(chunks):
            if current.start_offset >= current.end_offset:
                errors.append(f"Chunk {i}: empty range")
            if current.size > self.max_chunk_size:
                errors.append(f"Chunk {i}: {current.size} chars exceeds maximum")
            if current.text != text[current.start_offset : current.end_offset]:
                errors.append(f"Chunk {i}: content does not match offsets")
            if i + 1 < len(chunks):
                following = chunks[i + 1]
                if following.start_offset > current.end_offset:
                    errors.append(
                        f"Chunk {i}-{i + 1}: gap of "
                        f"{following.start_offset - current.end_offset} chars"
                    )
                if self.overlap_size and following.start_offset >= current.end_offset:
                    errors.append(f"Chunk {i}-{i + 1}: no overlap")

        return errors
