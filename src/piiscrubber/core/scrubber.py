"""
PIIScrubber, the public entry point of the engine.

Decides between a single pass and chunked processing, runs the detectors,
merges and redacts, and always hands back a ScrubResult. Nothing raised
inside a scrub call reaches the caller.
"""

import logging
import math
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from ..audit import (
    METHOD_ERROR,
    METHOD_HYBRID,
    METHOD_HYBRID_CHUNKED,
    METHOD_REGEX_ONLY,
    AuditRecorder,
)
from ..chunking import ContentChunker
from ..config import ScrubConfig
from ..detectors import BaseDetector, LLMEntityDetector, RegexDetector
from ..exceptions import ChunkingError
from ..merging import ChunkEntities, EntityMerger
from ..providers import DEFAULT_MODEL, BaseLLMProvider, ModelInfo, get_provider
from ..redaction import RedactionEngine
from ..schemas import ScrubResult
from ..types import Chunk, DetectionOutcome, Entity

logger = logging.getLogger(__name__)


class _Usage:
    """Token usage accumulated over one call, written only by the calling thread."""

    def __init__(self):
        self.calls = 0
        self.input_tokens = 0
        self.output_tokens = 0

    def add(self, outcome: DetectionOutcome) -> None:
        self.calls += outcome.calls
        self.input_tokens += outcome.input_tokens
        self.output_tokens += outcome.output_tokens

    def as_dict(self, model_info: Optional[ModelInfo]) -> Optional[Dict[str, Any]]:
        if model_info is None or self.calls == 0:
            return None
        return {
            "model": model_info.model_id,
            "calls": self.calls,
            "inputTokens": self.input_tokens,
            "outputTokens": self.output_tokens,
            "estimatedCostUsd": round(
                model_info.estimate_cost(self.input_tokens, self.output_tokens), 6
            ),
        }


class PIIScrubber:
    """
    Hybrid PII scrubber.

    Features:
    - Regex pass for structured PII, LLM pass for names, addresses, health...
    - Chunked processing of large documents on a bounded worker pool
    - Per-chunk degradation when the LLM is slow or unavailable
    - Audit record on every call, including failures

    Example:
        scrubber = PIIScrubber(model="gpt-4o-mini")
        result = scrubber.scrub(transcript, "transcript")
        store(result.content, result.audit.to_dict())
    """

    def __init__(
        self,
        provider: Optional[BaseLLMProvider] = None,
        config: Optional[ScrubConfig] = None,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        detectors: Optional[List[BaseDetector]] = None,
        hash_key: Optional[str] = None,
        **options: Any,
    ):
        """
        Initialize the scrubber.

        Args:
            provider: LLM provider shared by all calls (built from ``model`` if omitted)
            config: Base configuration; ``options`` are applied on top
            api_key: API key for the provider (uses env var if not provided)
            base_url: Optional base URL override for the provider
            detectors: Explicit detector list, replacing the defaults
            hash_key: Key for the ``hash`` redaction strategy
            **options: Any ScrubConfig field, snake_case or camelCase

        Raises:
            ConfigurationError: On invalid options or missing credentials
        """
        base = config or ScrubConfig()
        self.config = base.with_overrides(**options)

        self.provider = provider
        if detectors is None:
            detectors = []
            if self.config.enable_regex:
                detectors.append(RegexDetector())
            if self.config.enable_llm:
                if self.provider is None:
                    self.provider = get_provider(
                        model=self.config.model, api_key=api_key, base_url=base_url
                    )
                detectors.append(LLMEntityDetector(self.provider, self.config))
        self.detectors: List[BaseDetector] = detectors
        self.model_info = self.provider.get_model_info() if self.provider else None

        self.merger = EntityMerger()
        self.redactor = RedactionEngine(self.config.redaction_strategy, hash_key=hash_key)
        self.recorder = AuditRecorder(version=self.config.audit_version)

    def scrub(self, text: Any, data_type: str = "unknown", **overrides: Any) -> ScrubResult:
        """
        Detect and redact PII.

        Args:
            text: Document text (``None`` and bytes are accepted)
            data_type: Document type tag, e.g. "transcript" or "assessment"
            **overrides: Per-call options such as ``enable_llm=False``

        Returns:
            ScrubResult; on failure the content is the original text and
            ``audit.method == "error"``
        """
        start_time = time.monotonic()
        text = _coerce_text(text)
        data_type = str(data_type or "unknown")

        try:
            config = self.config.with_overrides(**overrides)
            detectors = self._active_detectors(config)
            use_llm = any(d.contextual for d in detectors)

            if use_llm and config.enable_chunking and len(text) > config.chunk_threshold_chars:
                return self._scrub_chunked(text, data_type, config, detectors, start_time)
            return self._scrub_single(text, data_type, detectors, use_llm, start_time)

        except Exception as e:
            logger.error(
                "Scrubbing failed, returning original text",
                exc_info=True,
                extra={"data_type": data_type, "text_length": len(text)},
            )
            return self._fallback(text, data_type, start_time, e)

    def _active_detectors(self, config: ScrubConfig) -> List[BaseDetector]:
        active = []
        for detector in self.detectors:
            if detector.contextual and not config.enable_llm:
                continue
            if not detector.contextual and not config.enable_regex:
                continue
            active.append(detector)
        return active

    def _scrub_single(
        self,
        text: str,
        data_type: str,
        detectors: Sequence[BaseDetector],
        use_llm: bool,
        start_time: float,
    ) -> ScrubResult:
        unit = Chunk(index=0, start_offset=0, end_offset=len(text), text=text)
        found = ChunkEntities(chunk=unit)
        usage = _Usage()
        degraded: List[int] = []

        for detector in detectors:
            outcome = detector.detect(text, data_type)
            usage.add(outcome)
            if outcome.degraded:
                logger.warning(
                    "LLM detection unavailable, applying pattern matches only",
                    extra={
                        "data_type": data_type,
                        "error": type(outcome.error).__name__,
                        "attempts": outcome.error.attempts,
                    },
                )
                degraded = [0]
            found.entities.extend(outcome.entities)

        entities = self.merger.merge(text, [found], [unit])
        return self._finish(
            text,
            data_type,
            entities,
            method=METHOD_HYBRID if use_llm else METHOD_REGEX_ONLY,
            start_time=start_time,
            degraded=degraded if use_llm else None,
            usage=usage,
        )

    def _scrub_chunked(
        self,
        text: str,
        data_type: str,
        config: ScrubConfig,
        detectors: Sequence[BaseDetector],
        start_time: float,
    ) -> ScrubResult:
        chunker = ContentChunker(
            max_chunk_size=config.max_chunk_size_chars,
            overlap_size=config.overlap_size_chars,
            boundary_margin=config.boundary_margin_chars,
        )
        chunks = chunker.chunk(text)
        if not chunks:
            raise ChunkingError("No chunks produced")

        chunk_stats = chunker.stats(chunks)
        logger.info(
            "Chunked document",
            extra={
                "data_type": data_type,
                "chunk_count": chunk_stats["count"],
                "avg_chunk_size": chunk_stats["avgSize"],
            },
        )

        inline = [d for d in detectors if not d.contextual]
        pooled = [d for d in detectors if d.contextual]

        # Single aggregation point: only this thread touches results/usage/degraded
        results: Dict[int, ChunkEntities] = {c.index: ChunkEntities(chunk=c) for c in chunks}
        usage = _Usage()
        degraded = set()

        for chunk in chunks:
            for detector in inline:
                results[chunk.index].entities.extend(
                    detector.detect(chunk.text, data_type).entities
                )

        workers = min(config.max_concurrent_chunks, len(chunks))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="pii-chunk") as executor:
            futures = {
                executor.submit(_detect_chunk, pooled, chunk, data_type): chunk
                for chunk in chunks
            }
            for future in as_completed(futures):
                chunk = futures[future]
                try:
                    outcomes = future.result()
                except Exception:
                    logger.error(
                        "Chunk processing failed",
                        exc_info=True,
                        extra={"chunk_index": chunk.index},
                    )
                    degraded.add(chunk.index)
                    continue

                for outcome in outcomes:
                    usage.add(outcome)
                    if outcome.degraded:
                        logger.warning(
                            "Chunk degraded to pattern matches only",
                            extra={
                                "chunk_index": chunk.index,
                                "error": type(outcome.error).__name__,
                                "attempts": outcome.error.attempts,
                            },
                        )
                        degraded.add(chunk.index)
                    results[chunk.index].entities.extend(outcome.entities)

        entities = self.merger.merge(text, results.values(), chunks)
        return self._finish(
            text,
            data_type,
            entities,
            method=METHOD_HYBRID_CHUNKED,
            start_time=start_time,
            degraded=sorted(degraded),
            usage=usage,
            chunk_stats=chunk_stats,
        )

    def _finish(
        self,
        text: str,
        data_type: str,
        entities: List[Entity],
        method: str,
        start_time: float,
        degraded: Optional[List[int]],
        usage: _Usage,
        chunk_stats: Optional[Dict[str, Any]] = None,
    ) -> ScrubResult:
        content = self.redactor.apply(text, entities)

        validation_errors = self.redactor.validate(text, content, entities)
        if validation_errors:
            logger.warning(
                "Redaction left detected values in the output",
                extra={"data_type": data_type, "issues": len(validation_errors)},
            )

        duration_ms = _elapsed_ms(start_time)
        audit = self.recorder.record(
            entities=entities,
            method=method,
            data_type=data_type,
            duration_ms=duration_ms,
            original_length=len(text),
            redacted_length=len(content),
            chunk_stats=chunk_stats,
            degraded_chunks=degraded,
            llm_usage=usage.as_dict(self.model_info),
            validation_errors=validation_errors,
        )

        logger.info(
            "Scrub complete",
            extra={
                "method": method,
                "data_type": data_type,
                "entities": len(entities),
                "degraded_chunks": len(degraded or []),
                "duration_ms": duration_ms,
            },
        )
        return ScrubResult(content=content, audit=audit, entities=entities)

    def _fallback(
        self, text: str, data_type: str, start_time: float, error: Exception
    ) -> ScrubResult:
        return _error_result(self.recorder, text, data_type, start_time, error)

    def scrub_many(
        self,
        items: Iterable[Union[str, Tuple[str, str]]],
        data_type: str = "unknown",
    ) -> List[ScrubResult]:
        """Scrub several documents one after another.

        Items are texts or ``(text, data_type)`` pairs.
        """
        results = []
        for item in items:
            if isinstance(item, tuple):
                results.append(self.scrub(item[0], item[1]))
            else:
                results.append(self.scrub(item, data_type))
        return results

    @staticmethod
    def performance_stats(results: Sequence[ScrubResult]) -> Optional[Dict[str, Any]]:
        """Duration percentiles and entity counts over many results."""
        if not results:
            return None

        durations = [r.audit.performance.duration_ms for r in results]
        counts = [r.audit.entities.total for r in results]

        return {
            "totalOperations": len(results),
            "duration": {
                "average": sum(durations) / len(durations),
                "min": min(durations),
                "max": max(durations),
                "p50": _percentile(durations, 50),
                "p95": _percentile(durations, 95),
                "p99": _percentile(durations, 99),
            },
            "entities": {
                "average": sum(counts) / len(counts),
                "min": min(counts),
                "max": max(counts),
                "total": sum(counts),
            },
        }


def _detect_chunk(
    detectors: Sequence[BaseDetector], chunk: Chunk, data_type: str
) -> List[DetectionOutcome]:
    return [detector.detect(chunk.text, data_type) for detector in detectors]


def _error_result(
    recorder: AuditRecorder, text: str, data_type: str, start_time: float, error: Exception
) -> ScrubResult:
    audit = recorder.record(
        entities=[],
        method=METHOD_ERROR,
        data_type=data_type,
        duration_ms=_elapsed_ms(start_time),
        original_length=len(text),
        redacted_length=len(text),
        error=f"{type(error).__name__}: {error}",
    )
    return ScrubResult(content=text, audit=audit, entities=[])


def _coerce_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    try:
        return str(value)
    except Exception:
        logger.warning("Input could not be converted to text", exc_info=True)
        return ""


def _elapsed_ms(start_time: float) -> int:
    return int(round((time.monotonic() - start_time) * 1000))


def _percentile(values: Sequence[int], p: int) -> int:
    ordered = sorted(values)
    index = math.ceil(p / 100 * len(ordered)) - 1
    return ordered[max(0, index)]


def scrub(
    text: Any,
    data_type: str = "unknown",
    model: str = DEFAULT_MODEL,
    api_key: Optional[str] = None,
    base_url: Optional[str] = None,
    **options: Any,
) -> ScrubResult:
    """
    One-liner function for quick scrubbing.

    The scrubber is built on every call. A construction failure (missing API
    key, invalid option) is reported like any other failure: the original
    text comes back with ``audit.method == "error"``. Build a PIIScrubber
    once to have such problems raised up front.

    Examples:
        ```python
        from piiscrubber import scrub

        result = scrub("Call Dana at 555-123-4567", "transcript")
        print(result.content)        # "Call [NAME] at [PHONE]"
        print(result.audit.method)   # "hybrid"

        # Patterns only, no API key needed
        result = scrub(text, "transcript", enable_llm=False)
        ```

    Args:
        text: Document text
        data_type: Document type tag
        model: Model to use (default: gpt-4o-mini)
        api_key: API key (uses env var if not provided)
        base_url: Optional base URL override
        **options: Any ScrubConfig field

    Returns:
        ScrubResult with redacted content and audit record
    """
    start_time = time.monotonic()
    try:
        scrubber = PIIScrubber(api_key=api_key, base_url=base_url, model=model, **options)
    except Exception as e:
        logger.error(
            "Could not build scrubber, returning original text",
            extra={"error": str(e), "model": model},
        )
        text = _coerce_text(text)
        data_type = str(data_type or "unknown")
        return _error_result(AuditRecorder(), text, data_type, start_time, e)
    return scrubber.scrub(text, data_type)
