"""
Entity merger.

Brings chunk-local detector output into document coordinates, collapses
duplicates reported by neighbouring chunks, and leaves one ordered,
non-overlapping entity list.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from .detectors.vocabulary import normalize
from .types import Chunk, Entity

logger = logging.getLogger(__name__)


@dataclass
class ChunkEntities:
    """Entities found in one chunk, offsets relative to the chunk."""

    chunk: Chunk
    entities: List[Entity] = field(default_factory=list)


class EntityMerger:
    """Combines detector results into a single global entity list."""

    def merge(
        self,
        text: str,
        results: Iterable[ChunkEntities],
        chunks: Optional[Sequence[Chunk]] = None,
    ) -> List[Entity]:
        """
        Merge per-chunk entities.

        Args:
            text: The full document
            results: Entities per chunk, in any order
            chunks: All chunks of the document, used to locate overlap regions

        Returns:
            Entities sorted by start offset, no two overlapping
        """
        results = list(results)
        if chunks is None:
            chunks = [r.chunk for r in results]
        by_index = {c.index: c for c in chunks}

        global_entities = self.to_global(text, results)
        deduped = self.dedupe_overlap_regions(global_entities, by_index)
        merged = self.resolve_overlaps(deduped)

        self._check_invariants(merged)
        return merged

    def merge_single(self, text: str, entities: Iterable[Entity]) -> List[Entity]:
        """Merge entities found over the whole document in one pass."""
        whole = Chunk(index=0, start_offset=0, end_offset=len(text), text=text)
        return self.merge(text, [ChunkEntities(chunk=whole, entities=list(entities))])

    @staticmethod
    def to_global(text: str, results: Iterable[ChunkEntities]) -> List[Entity]:
        """Shift chunk-local offsets by each chunk's start offset."""
        shifted: List[Entity] = []
        for result in results:
            chunk = result.chunk
            for entity in result.entities:
                moved = entity.shifted(chunk.start_offset, chunk_index=chunk.index)
                if moved.start < 0 or moved.end > len(text) or moved.start >= moved.end:
                    logger.warning(
                        "Dropping entity with out-of-range offsets",
                        extra={
                            "entity_type": moved.type,
                            "start": moved.start,
                            "end": moved.end,
                        },
                    )
                    continue
                if text[moved.start : moved.end] != moved.text:
                    logger.warning(
                        "Dropping entity whose text does not match its offsets",
                        extra={"entity_type": moved.type, "start": moved.start},
                    )
                    continue
                shifted.append(moved)
        return shifted

    def dedupe_overlap_regions(
        self, entities: List[Entity], chunks: Dict[int, Chunk]
    ) -> List[Entity]:
        """Collapse the same entity reported by two adjacent chunks.

        Two entities are the same when they share a type, their ranges
        overlap, and one normalised text equals or contains the other. The
        representative is the one lying more outside its chunk's overlap
        regions, then the longer, then the more confident.
        """
        ordered = sorted(entities, key=lambda e: (e.start, -e.length))
        kept: List[Entity] = []

        for entity in ordered:
            duplicate_of = None
            for i in range(len(kept) - 1, -1, -1):
                if self._same_entity(entity, kept[i]):
                    duplicate_of = i
                    break

            if duplicate_of is None:
                kept.append(entity)
                continue

            incumbent = kept[duplicate_of]
            if self._rank(entity, chunks) > self._rank(incumbent, chunks):
                kept[duplicate_of] = entity

        return kept

    @staticmethod
    def _same_entity(a: Entity, b: Entity) -> bool:
        if a.type != b.type or not a.overlaps(b):
            return False
        text_a, text_b = normalize(a.text), normalize(b.text)
        return text_a == text_b or text_a in text_b or text_b in text_a

    def _rank(self, entity: Entity, chunks: Dict[int, Chunk]) -> tuple:
        return (
            self._non_overlap_portion(entity, chunks),
            entity.length,
            entity.confidence,
        )

    @staticmethod
    def _non_overlap_portion(entity: Entity, chunks: Dict[int, Chunk]) -> int:
        """Characters of ``entity`` outside its chunk's shared regions."""
        if entity.chunk_index is None or entity.chunk_index not in chunks:
            return entity.length
        chunk = chunks[entity.chunk_index]
        exclusive_start = chunk.start_offset
        exclusive_end = chunk.end_offset
        previous = chunks.get(chunk.index - 1)
        following = chunks.get(chunk.index + 1)
        if previous is not None:
            exclusive_start = max(exclusive_start, previous.end_offset)
        if following is not None:
            exclusive_end = min(exclusive_end, following.start_offset)
        return max(0, min(entity.end, exclusive_end) - max(entity.start, exclusive_start))

    @staticmethod
    def resolve_overlaps(entities: List[Entity]) -> List[Entity]:
        """Keep one entity per contested range.

        Earlier start wins; on equal starts the higher confidence, then the
        longer span.
        """
        ordered = sorted(entities, key=lambda e: (e.start, -e.confidence, -e.length))
        merged: List[Entity] = []
        for entity in ordered:
            if merged and entity.start < merged[-1].end:
                logger.debug(
                    "Discarding overlapping entity",
                    extra={
                        "entity_type": entity.type,
                        "kept_type": merged[-1].type,
                        "start": entity.start,
                    },
                )
                continue
            merged.append(entity)
        return merged

    @staticmethod
    def _check_invariants(entities: List[Entity]) -> None:
        for previous, current in zip(entities, entities[1:]):
            if current.start < previous.end:
                raise AssertionError(
                    f"Merged entities overlap at {current.start}: "
                    f"{previous.type} and {current.type}"
                )
