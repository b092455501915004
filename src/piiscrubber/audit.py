"""
Audit records for scrub operations.

An audit record describes what happened to one document: which method ran,
what was found (counts only, never values), how long it took, and which
chunks were degraded. Callers store it verbatim next to the document.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .types import Entity

METHOD_REGEX_ONLY = "regex_only"
METHOD_HYBRID = "hybrid"
METHOD_HYBRID_CHUNKED = "hybrid_chunked"
METHOD_ERROR = "error"
METHODS = (METHOD_REGEX_ONLY, METHOD_HYBRID, METHOD_HYBRID_CHUNKED, METHOD_ERROR)


class _AuditModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )


class ConfidenceStats(_AuditModel):
    average: float = 0.0
    min: float = 0.0
    max: float = 0.0
    # high >= 0.9, medium >= 0.7, low below
    distribution: Dict[str, int] = Field(
        default_factory=lambda: {"high": 0, "medium": 0, "low": 0}
    )


class EntityStats(_AuditModel):
    total: int = 0
    by_type: Dict[str, int] = Field(default_factory=dict)
    by_detector: Dict[str, int] = Field(default_factory=dict)
    confidence: ConfidenceStats = Field(default_factory=ConfidenceStats)


class PerformanceStats(_AuditModel):
    duration_ms: int = 0
    original_length: int = 0
    redacted_length: int = 0
    characters_redacted: int = 0
    redaction_percentage: float = 0.0


class ChunkStats(_AuditModel):
    count: int = 0
    avg_size: int = 0
    min_size: int = 0
    max_size: int = 0
    overlap_size: Optional[int] = None
    max_chunk_size: Optional[int] = None


class LLMUsage(_AuditModel):
    model: str = ""
    calls: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    estimated_cost_usd: float = 0.0


class AuditRecord(_AuditModel):
    """Versioned metadata for one scrub call."""

    version: str
    timestamp: str
    method: str
    data_type: str
    entities: EntityStats
    performance: PerformanceStats
    chunk_stats: Optional[ChunkStats] = None
    degraded_chunks: Optional[List[int]] = None
    llm_usage: Optional[LLMUsage] = None
    validation_errors: Optional[List[Dict[str, Any]]] = None
    error: Optional[str] = None

    @property
    def scrubbed(self) -> bool:
        return self.entities.total > 0 and self.method != METHOD_ERROR

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready dict with camelCase keys, optional sections omitted."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class AuditRecorder:
    """Builds AuditRecord instances."""

    def __init__(self, version: str = "1.0.0"):
        self.version = version

    def record(
        self,
        entities: Sequence[Entity],
        method: str,
        data_type: str = "unknown",
        duration_ms: int = 0,
        original_length: int = 0,
        redacted_length: int = 0,
        chunk_stats: Optional[Dict[str, Any]] = None,
        degraded_chunks: Optional[Sequence[int]] = None,
        llm_usage: Optional[Dict[str, Any]] = None,
        validation_errors: Optional[List[Dict[str, Any]]] = None,
        error: Optional[str] = None,
    ) -> AuditRecord:
        """
        Create the audit record for one call.

        Args:
            entities: Merged entities that were redacted
            method: One of ``regex_only``, ``hybrid``, ``hybrid_chunked``, ``error``
            data_type: Document type tag
            duration_ms: Wall time of the call
            original_length: Input length in characters
            redacted_length: Output length in characters
            chunk_stats: Chunker statistics (chunked path only)
            degraded_chunks: Indices of chunks that lost LLM detection
            llm_usage: Aggregated token usage
            validation_errors: Post-redaction check findings
            error: Failure description (error path only)

        Returns:
            Immutable AuditRecord
        """
        if method not in METHODS:
            raise ValueError(f"Unknown scrub method: {method}")

        characters_redacted = sum(e.length for e in entities)
        percentage = (
            round(characters_redacted / original_length * 100, 2)
            if original_length
            else 0.0
        )

        return AuditRecord(
            version=self.version,
            timestamp=datetime.now(timezone.utc).isoformat(),
            method=method,
            data_type=data_type,
            entities=EntityStats(
                total=len(entities),
                by_type=self._count(e.type for e in entities),
                by_detector=self._count(e.detector for e in entities),
                confidence=self._confidence(entities),
            ),
            performance=PerformanceStats(
                duration_ms=duration_ms,
                original_length=original_length,
                redacted_length=redacted_length,
                characters_redacted=characters_redacted,
                redaction_percentage=percentage,
            ),
            chunk_stats=ChunkStats.model_validate(chunk_stats) if chunk_stats else None,
            degraded_chunks=sorted(degraded_chunks) if degraded_chunks is not None else None,
            llm_usage=LLMUsage.model_validate(llm_usage) if llm_usage else None,
            validation_errors=validation_errors or None,
            error=error,
        )

    @staticmethod
    def _count(values) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for value in values:
            counts[value] = counts.get(value, 0) + 1
        return counts

    @staticmethod
    def _confidence(entities: Sequence[Entity]) -> ConfidenceStats:
        if not entities:
            return ConfidenceStats()
        scores = [e.confidence for e in entities]
        return ConfidenceStats(
            average=round(sum(scores) / len(scores), 3),
            min=min(scores),
            max=max(scores),
            distribution={
                "high": sum(1 for s in scores if s >= 0.9),
                "medium": sum(1 for s in scores if 0.7 <= s < 0.9),
                "low": sum(1 for s in scores if s < 0.7),
            },
        )

    @staticmethod
    def summarize(audits: Sequence[AuditRecord]) -> Dict[str, Any]:
        """Aggregate report over many audit records."""
        if not audits:
            return {"totalOperations": 0, "itemsWithPii": 0, "averageDurationMs": 0}

        with_pii = sum(1 for a in audits if a.scrubbed)
        total_entities = sum(a.entities.total for a in audits)
        durations = [a.performance.duration_ms for a in audits]

        entity_types: Dict[str, int] = {}
        methods: Dict[str, int] = {}
        for audit in audits:
            for entity_type, count in audit.entities.by_type.items():
                entity_types[entity_type] = entity_types.get(entity_type, 0) + count
            methods[audit.method] = methods.get(audit.method, 0) + 1

        return {
            "totalOperations": len(audits),
            "itemsWithPii": with_pii,
            "itemsWithoutPii": len(audits) - with_pii,
            "percentageWithPii": round(with_pii / len(audits) * 100, 2),
            "totalEntitiesDetected": total_entities,
            "averageEntitiesPerItem": round(total_entities / len(audits), 2),
            "averageDurationMs": round(sum(durations) / len(durations), 3),
            "minDurationMs": min(durations),
            "maxDurationMs": max(durations),
            "degradedOperations": sum(1 for a in audits if a.degraded_chunks),
            "entityTypes": entity_types,
            "methods": methods,
        }

    @staticmethod
    def format(audit: AuditRecord) -> str:
        """Human-readable rendering of one audit record."""
        lines = [
            "=== PII Scrubbing Audit ===",
            f"Timestamp: {audit.timestamp}",
            f"Scrubbed: {'Yes' if audit.scrubbed else 'No'}",
            f"Method: {audit.method}",
            f"Data type: {audit.data_type}",
            f"Duration: {audit.performance.duration_ms}ms",
        ]

        if audit.chunk_stats:
            lines.append(
                f"Chunks: {audit.chunk_stats.count} "
                f"(avg {audit.chunk_stats.avg_size} chars)"
            )
        if audit.degraded_chunks:
            lines.append(
                "Degraded chunks: " + ", ".join(str(i) for i in audit.degraded_chunks)
            )
        if audit.error:
            lines.append(f"Error: {audit.error}")

        if audit.entities.total > 0:
            lines.append(f"\nEntities Detected: {audit.entities.total}")
            lines.append("By Type:")
            for entity_type, count in sorted(audit.entities.by_type.items()):
                lines.append(f"  - {entity_type}: {count}")
            lines.append("\nConfidence:")
            lines.append(f"  - Average: {audit.entities.confidence.average}")
            lines.append(
                f"  - Range: {audit.entities.confidence.min} - "
                f"{audit.entities.confidence.max}"
            )
            distribution = audit.entities.confidence.distribution
            lines.append(
                f"  - High: {distribution.get('high', 0)}, "
                f"Medium: {distribution.get('medium', 0)}, "
                f"Low: {distribution.get('low', 0)}"
            )

        return "\n".join(lines)
