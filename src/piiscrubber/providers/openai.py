"""
OpenAI provider implementation.
"""

import os
from typing import Optional

import openai
from openai import OpenAI

from ..exceptions import ConfigurationError
from .base import (
    ERROR_API,
    ERROR_TIMEOUT,
    ERROR_TRANSPORT,
    BaseLLMProvider,
    CompletionResult,
    ModelInfo,
)

OPENAI_MODELS = {
    "gpt-4o": {
        "id": "gpt-4o",
        "input_cost": 2.50,
        "output_cost": 10.0,
        "context_window": 128000,
    },
    "gpt-4o-mini": {
        "id": "gpt-4o-mini",
        "input_cost": 0.15,
        "output_cost": 0.60,
        "context_window": 128000,
    },
    "gpt-4-turbo": {
        "id": "gpt-4-turbo",
        "input_cost": 10.0,
        "output_cost": 30.0,
        "context_window": 128000,
    },
    "gpt-3.5-turbo": {
        "id": "gpt-3.5-turbo",
        "input_cost": 0.50,
        "output_cost": 1.50,
        "context_window": 16385,
    },
}


class OpenAIProvider(BaseLLMProvider):
    """OpenAI GPT provider."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4o-mini",
        base_url: Optional[str] = None,
    ):
        api_key = api_key or os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise ConfigurationError(
                "OpenAI API key required. Set OPENAI_API_KEY env var or pass api_key."
            )

        super().__init__(api_key=api_key, model=model, base_url=base_url)

        if model not in OPENAI_MODELS:
            raise ConfigurationError(
                f"Unknown OpenAI model: {model}. "
                f"Available: {list(OPENAI_MODELS.keys())}"
            )

        self.model_config = OPENAI_MODELS[model]
        self.model_id = self.model_config["id"]
        # Retries are owned by the detector so every attempt gets a fresh timeout
        self.client = OpenAI(api_key=api_key, base_url=base_url, max_retries=0)

    def complete(
        self,
        prompt: str,
        system: Optional[str] = None,
        max_tokens: int = 2048,
        temperature: float = 0.0,
        timeout: Optional[float] = None,
        json_mode: bool = False,
    ) -> CompletionResult:
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        kwargs = {}
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        if timeout is not None:
            kwargs["timeout"] = timeout

        try:
            response = self.client.chat.completions.create(
                model=self.model_id,
                max_tokens=max_tokens,
                temperature=temperature,
                messages=messages,
                **kwargs,
            )

            choice = response.choices[0]
            usage = response.usage

            return CompletionResult(
                success=True,
                content=choice.message.content or "",
                input_tokens=usage.prompt_tokens if usage else 0,
                output_tokens=usage.completion_tokens if usage else 0,
                model=self.model_id,
                metadata={"finish_reason": choice.finish_reason},
            )

        except openai.APITimeoutError as e:
            return CompletionResult(
                success=False,
                content="",
                model=self.model_id,
                error=str(e),
                error_type=ERROR_TIMEOUT,
            )
        except openai.APIConnectionError as e:
            return CompletionResult(
                success=False,
                content="",
                model=self.model_id,
                error=str(e),
                error_type=ERROR_TRANSPORT,
            )
        except openai.APIStatusError as e:
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
            provider="openai",
            model_id=self.model_id,
            input_cost_per_million=self.model_config["input_cost"],
            output_cost_per_million=self.model_config["output_cost"],
            supports_json_mode=True,
            context_window=self.model_config.get("context_window", 128000),
        )

    @classmethod
    def get_provider_name(cls) -> str:
        return "openai"
