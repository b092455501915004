"""Entity detectors: deterministic patterns and a context-aware LLM pass."""

from .base import BaseDetector
from .llm import LLMEntityDetector, compute_timeout_ms
from .regex import DEFAULT_ENTITIES, PII_PATTERNS, RegexDetector

__all__ = [
    "BaseDetector",
    "RegexDetector",
    "LLMEntityDetector",
    "PII_PATTERNS",
    "DEFAULT_ENTITIES",
    "compute_timeout_ms",
]
