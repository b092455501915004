"""
piiscrubber - PII detection and redaction for coaching documents

Hybrid detection (patterns + a hosted LLM), chunking for large documents,
graceful degradation, and an audit record for every call.
Supports multiple LLM providers: OpenAI, Anthropic, and Ollama.
"""

__version__ = "0.1.0"

import sys

if sys.version_info < (3, 10):
    raise RuntimeError("piiscrubber requires Python 3.10 or higher")

from .audit import AuditRecord, AuditRecorder
from .chunking import ContentChunker
from .config import ScrubConfig
from .core.scrubber import PIIScrubber, scrub
from .detectors import BaseDetector, LLMEntityDetector, RegexDetector
from .exceptions import (
    ChunkingError,
    ConfigurationError,
    DetectionError,
    DetectionResponseError,
    DetectionTimeout,
    DetectionTransportError,
    ScrubError,
)
from .logging_config import configure_logging
from .merging import EntityMerger
from .providers import (
    DEFAULT_MODEL,
    MODELS,
    PROVIDERS,
    AnthropicProvider,
    BaseLLMProvider,
    CompletionResult,
    ModelInfo,
    OllamaProvider,
    OpenAIProvider,
    get_provider,
    list_models,
    list_providers,
)
from .redaction import RedactionEngine
from .schemas import ScrubResult
from .types import Chunk, DetectionOutcome, Entity

__all__ = [
    "__version__",
    # Main API
    "scrub",
    "PIIScrubber",
    "ScrubConfig",
    # Result types
    "ScrubResult",
    "AuditRecord",
    "Entity",
    "Chunk",
    "DetectionOutcome",
    # Components
    "RegexDetector",
    "LLMEntityDetector",
    "BaseDetector",
    "ContentChunker",
    "EntityMerger",
    "RedactionEngine",
    "AuditRecorder",
    # Errors
    "ScrubError",
    "ConfigurationError",
    "ChunkingError",
    "DetectionError",
    "DetectionTimeout",
    "DetectionTransportError",
    "DetectionResponseError",
    # Logging
    "configure_logging",
    # Providers
    "MODELS",
    "DEFAULT_MODEL",
    "PROVIDERS",
    "BaseLLMProvider",
    "CompletionResult",
    "ModelInfo",
    "AnthropicProvider",
    "OpenAIProvider",
    "OllamaProvider",
    "get_provider",
    "list_models",
    "list_providers",
]
