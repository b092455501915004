"""
Configuration for piiscrubber.

``ScrubConfig`` is read-only once a scrubber is built. Options may be given
in snake_case or in the camelCase spelling used by callers that store the
configuration as JSON (``baseTimeoutMs``, ``maxConcurrentChunks``...).
"""

import os
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from .exceptions import ConfigurationError
from .providers import DEFAULT_MODEL

ENV_PREFIX = "PII_SCRUB_"


class ScrubConfig(BaseModel):
    """Engine configuration."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="forbid",
    )

    model: str = DEFAULT_MODEL
    temperature: float = Field(default=0.0, ge=0.0, le=2.0)

    # Adaptive timeout: min(max, base + per_kb * ceil(bytes / 1024))
    base_timeout_ms: int = Field(default=30_000, gt=0)
    per_kb_timeout_ms: int = Field(default=10_000, ge=0)
    max_timeout_ms: int = Field(default=600_000, gt=0)
    max_retries: int = Field(default=2, ge=0)

    chunk_threshold_chars: int = Field(default=5_000, gt=0)
    max_chunk_size_chars: int = Field(default=5_000, ge=2)
    overlap_size_chars: int = Field(default=500, ge=0)
    boundary_margin_chars: int = Field(default=500, ge=0)
    max_concurrent_chunks: int = Field(default=5, ge=1)

    enable_regex: bool = True
    enable_llm: bool = True
    enable_chunking: bool = True

    redaction_strategy: Literal[
        "replace", "hash", "remove", "mask", "preserve_length"
    ] = "replace"
    audit_version: str = "1.0.0"
    # Below this many non-whitespace characters the LLM call is skipped
    min_llm_chars: int = Field(default=20, ge=0)
    max_output_tokens: int = Field(default=2048, gt=0)

    @model_validator(mode="after")
    def check_chunk_geometry(self) -> "ScrubConfig":
        if self.overlap_size_chars >= self.max_chunk_size_chars:
            raise ValueError(
                "overlap_size_chars must be smaller than max_chunk_size_chars"
            )
        if self.base_timeout_ms > self.max_timeout_ms:
            raise ValueError("base_timeout_ms must not exceed max_timeout_ms")
        return self

    @classmethod
    def from_options(cls, options: Optional[Dict[str, Any]] = None) -> "ScrubConfig":
        """Build a config, turning validation failures into ConfigurationError."""
        try:
            return cls.model_validate(options or {})
        except ValidationError as e:
            raise ConfigurationError(f"Invalid scrubber configuration: {e}") from e

    @classmethod
    def from_env(cls, **overrides: Any) -> "ScrubConfig":
        """Build a config from ``PII_SCRUB_*`` environment variables.

        ``PII_SCRUB_MAX_RETRIES=3`` sets ``max_retries``; keyword overrides win.
        """
        options: Dict[str, Any] = {}
        for name in cls.model_fields:
            value = os.getenv(f"{ENV_PREFIX}{name.upper()}")
            if value is not None:
                options[name] = value
        options.update(overrides)
        return cls.from_options(options)

    def with_overrides(self, **overrides: Any) -> "ScrubConfig":
        """Return a validated copy with some options replaced."""
        if not overrides:
            return self
        options = self.model_dump()
        for key, value in overrides.items():
            options[_field_name(key)] = value
        return self.from_options(options)


def _field_name(key: str) -> str:
    if key in ScrubConfig.model_fields:
        return key
    for name, field in ScrubConfig.model_fields.items():
        if field.alias == key:
            return name
    return key
