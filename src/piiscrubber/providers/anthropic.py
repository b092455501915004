"""
Anthropic Claude provider implementation.
"""

import os
from typing import Optional

import anthropic
from anthropic import Anthropic

from ..exceptions import ConfigurationError
from .base import (
    ERROR_API,
    ERROR_TIMEOUT,
    ERROR_TRANSPORT,
    BaseLLMProvider,
    CompletionResult,
    ModelInfo,
)

ANTHROPIC_MODELS = {
    "claude-haiku": {
        "id": "claude-3-haiku-20240307",
        "input_cost": 0.25,
        "output_cost": 1.25,
        "context_window": 200000,
    },
    "claude-haiku-4": {
        "id": "claude-haiku-4-5-20251001",
        "input_cost": 1.0,
        "output_cost": 5.0,
        "context_window": 200000,
    },
    "claude-sonnet": {
        "id": "claude-sonnet-4-5-20250929",
        "input_cost": 3.0,
        "output_cost": 15.0,
        "context_window": 200000,
    },
}


class AnthropicProvider(BaseLLMProvider):
    """Anthropic Claude provider."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "claude-haiku",
        base_url: Optional[str] = None,
    ):
        api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        if not api_key:
            raise ConfigurationError(
                "Anthropic API key required. Set ANTHROPIC_API_KEY env var or pass api_key."
            )

        super().__init__(api_key=api_key, model=model, base_url=base_url)

        if model not in ANTHROPIC_MODELS:
            raise ConfigurationError(
                f"Unknown Anthropic model: {model}. "
                f"Available: {list(ANTHROPIC_MODELS.keys())}"
            )

        self.model_config = ANTHROPIC_MODELS[model]
        self.model_id = self.model_config["id"]
        self.client = Anthropic(api_key=api_key, base_url=base_url, max_retries=0)

    def complete(
        self,
        prompt: str,
        system: Optional[str] = None,
        max_tokens: int = 2048,
        temperature: float = 0.0,
        timeout: Optional[float] = None,
        json_mode: bool = False,
    ) -> CompletionResult:
        # No native JSON mode; the prompt carries the output contract
        kwargs = {}
        if system:
            kwargs["system"] = system
        if timeout is not None:
            kwargs["timeout"] = timeout

        try:
            response = self.client.messages.create(
                model=self.model_id,
                max_tokens=max_tokens,
                temperature=temperature,
                messages=[{"role": "user", "content": prompt}],
                **kwargs,
            )

            return CompletionResult(
                success=True,
                content=response.content[0].text,
                input_tokens=response.usage.input_tokens,
                output_tokens=response.usage.output_tokens,
                model=self.model_id,
                metadata={"stop_reason": response.stop_reason},
            )

        except anthropic.APITimeoutError as e:
            return CompletionResult(
                success=False,
                content="",
                model=self.model_id,
                error=str(e),
                error_type=ERROR_TIMEOUT,
            )
        except anthropic.APIConnectionError as e:
            return CompletionResult(
                success=False,
                content="",
                model=self.model_id,
                error=str(e),
                error_type=ERROR_TRANSPORT,
            )
        except anthropic.APIStatusError as e:
            return CompletionResult(
                success=False,
                content="",
                model=self.model_id,
                error=str(e),
                error_type=ERROR_API,
                status_code=e.status_code,
            )
        except Exception as e:
            return CompletionResult(
                success=False,
                content="",
                model=self.model_id,
                error=str(e),
                error_type=ERROR_API,
            )

    def get_model_info(self) -> ModelInfo:
        return ModelInfo(
            name=self.model,
            provider="anthropic",
            model_id=self.model_id,
            input_cost_per_million=self.model_config["input_cost"],
            output_cost_per_million=self.model_config["output_cost"],
            supports_json_mode=False,
            context_window=self.model_config.get("context_window", 200000),
        )

    @classmethod
    def get_provider_name(cls) -> str:
        return "anthropic"
