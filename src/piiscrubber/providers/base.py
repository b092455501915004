"""
Base provider abstraction for hosted LLM completion services.

Defines the interface that all LLM providers must implement.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

# CompletionResult.error_type values
ERROR_TIMEOUT = "timeout"
ERROR_TRANSPORT = "transport"
ERROR_API = "api"


@dataclass
class ModelInfo:
    """Information about an LLM model."""

    name: str
    provider: str
    model_id: str
    input_cost_per_million: float
    output_cost_per_million: float
    supports_json_mode: bool = False
    context_window: int = 128000

    def estimate_cost(self, input_tokens: int, output_tokens: int) -> float:
        return (
            input_tokens * self.input_cost_per_million
            + output_tokens * self.output_cost_per_million
        ) / 1_000_000


@dataclass
class CompletionResult:
    """Unified result from an LLM completion.

    Providers never raise on request failures; they report them here with
    ``error_type`` set to one of ``timeout``, ``transport`` or ``api``.
    """

    success: bool
    content: str
    input_tokens: int = 0
    output_tokens: int = 0
    model: str = ""
    error: Optional[str] = None
    error_type: Optional[str] = None
    status_code: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    @property
    def retryable(self) -> bool:
        """Whether another attempt could plausibly succeed."""
        if self.success:
            return False
        if self.error_type in (ERROR_TIMEOUT, ERROR_TRANSPORT):
            return True
        # Bad requests and auth failures will fail the same way again
        if self.status_code is not None and 400 <= self.status_code < 500:
            return self.status_code in (408, 409, 429)
        return True


class BaseLLMProvider(ABC):
    """Abstract base class for LLM providers."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "",
        base_url: Optional[str] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url

    @abstractmethod
    def complete(
        self,
        prompt: str,
        system: Optional[str] = None,
        max_tokens: int = 2048,
        temperature: float = 0.0,
        timeout: Optional[float] = None,
        json_mode: bool = False,
    ) -> CompletionResult:
        """
        Generate a completion for the given prompt.

        Args:
            prompt: The user prompt
            system: Optional system instruction
            max_tokens: Maximum tokens to generate
            temperature: Sampling temperature (0.0 for deterministic)
            timeout: Per-request timeout in seconds
            json_mode: Ask the service for a JSON object response

        Returns:
            CompletionResult with the generated content
        """
        pass

    @abstractmethod
    def get_model_info(self) -> ModelInfo:
        """Get information about the current model."""
        pass

    @classmethod
    @abstractmethod
    def get_provider_name(cls) -> str:
        """Get the provider name (e.g., 'anthropic', 'openai')."""
        pass
