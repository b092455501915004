"""Core value types shared by the detectors, chunker, merger and redactor."""

from dataclasses import dataclass, field, replace
from typing import List, Optional

from .exceptions import DetectionError

# Entity.detector values
DETECTOR_REGEX = "regex"
DETECTOR_LLM = "llm"


@dataclass(frozen=True)
class Entity:
    """A detected span of PII.

    Offsets are ``[start, end)``. Detectors report them relative to the text
    they were given; after merging they are document-global.
    """

    type: str
    start: int
    end: int
    text: str
    detector: str
    confidence: float = 1.0
    chunk_index: Optional[int] = None

    @property
    def length(self) -> int:
        return self.end - self.start

    def overlaps(self, other: "Entity") -> bool:
        return self.start < other.end and other.start < self.end

    def shifted(self, offset: int, chunk_index: Optional[int] = None) -> "Entity":
        """Move the entity by ``offset`` characters."""
        return replace(
            self,
            start=self.start + offset,
            end=self.end + offset,
            chunk_index=self.chunk_index if chunk_index is None else chunk_index,
        )

    def to_dict(self) -> dict:
        """Span metadata without the matched text."""
        return {
            "type": self.type,
            "start": self.start,
            "end": self.end,
            "detector": self.detector,
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class Chunk:
    """A bounded slice of a document, ``text == document[start_offset:end_offset]``."""

    index: int
    start_offset: int
    end_offset: int
    text: str

    @property
    def size(self) -> int:
        return self.end_offset - self.start_offset


@dataclass
class DetectionOutcome:
    """Result of running one detector over one unit of text.

    A failed LLM call is reported through ``error`` rather than raised, so
    the orchestrator can degrade a single chunk and keep going.
    """

    entities: List[Entity] = field(default_factory=list)
    error: Optional[DetectionError] = None
    input_tokens: int = 0
    output_tokens: int = 0
    calls: int = 0

    @property
    def degraded(self) -> bool:
        return self.error is not None
