"""
Ollama provider implementation for local LLM models.
"""

import os
from typing import Optional

import httpx

from .base import (
    ERROR_API,
    ERROR_TIMEOUT,
    ERROR_TRANSPORT,
    BaseLLMProvider,
    CompletionResult,
    ModelInfo,
)

OLLAMA_MODELS = {
    "llama3": {
        "id": "llama3:latest",
        "context_window": 8192,
    },
    "llama3.2": {
        "id": "llama3.2:latest",
        "context_window": 128000,
    },
    "mistral": {
        "id": "mistral:latest",
        "context_window": 32000,
    },
}

DEFAULT_OLLAMA_URL = "http://localhost:11434"
DEFAULT_OLLAMA_TIMEOUT = 120.0


class OllamaProvider(BaseLLMProvider):
    """Ollama provider for local models."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "llama3",
        base_url: Optional[str] = None,
    ):
        base_url = base_url or os.getenv("OLLAMA_BASE_URL", DEFAULT_OLLAMA_URL)
        super().__init__(api_key=api_key, model=model, base_url=base_url)

        if model not in OLLAMA_MODELS:
            # Allow custom models not in the predefined list
            self.model_config = {
                "id": f"{model}:latest" if ":" not in model else model,
                "context_window": 8192,
            }
        else:
            self.model_config = OLLAMA_MODELS[model]

        self.model_id = self.model_config["id"]
        self.client = httpx.Client(base_url=base_url, timeout=DEFAULT_OLLAMA_TIMEOUT)

    def complete(
        self,
        prompt: str,
        system: Optional[str] = None,
        max_tokens: int = 2048,
        temperature: float = 0.0,
        timeout: Optional[float] = None,
        json_mode: bool = False,
    ) -> CompletionResult:
        payload = {
            "model": self.model_id,
            "prompt": prompt,
            "stream": False,
            "options": {
                "temperature": temperature,
                "num_predict": max_tokens,
            },
        }
        if system:
            payload["system"] = system
        if json_mode:
            payload["format"] = "json"

        try:
            response = self.client.post(
                "/api/generate",
                json=payload,
                timeout=timeout if timeout is not None else DEFAULT_OLLAMA_TIMEOUT,
            )
            response.raise_for_status()
            data = response.json()

            return CompletionResult(
                success=True,
                content=data.get("response", ""),
                input_tokens=data.get("prompt_eval_count", 0),
                output_tokens=data.get("eval_count", 0),
                model=self.model_id,
                metadata={
                    "total_duration": data.get("total_duration"),
                    "load_duration": data.get("load_duration"),
                },
            )

        except httpx.TimeoutException as e:
            return CompletionResult(
                success=False,
                content="",
                model=self.model_id,
                error=f"Ollama request timed out: {e}",
                error_type=ERROR_TIMEOUT,
            )
        except httpx.ConnectError:
            return CompletionResult(
                success=False,
                content="",
                model=self.model_id,
                error=f"Cannot connect to Ollama at {self.base_url}. Is Ollama running?",
                error_type=ERROR_TRANSPORT,
            )
        except httpx.HTTPStatusError as e:
            return CompletionResult(
                success=False,
                content="",
                model=self.model_id,
                error=str(e),
                error_type=ERROR_API,
                status_code=e.response.status_code,
            )
        except httpx.TransportError as e:
            return CompletionResult(
                success=False,
                content="",
                model=self.model_id,
                error=str(e),
                error_type=ERROR_TRANSPORT,
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
            provider="ollama",
            model_id=self.model_id,
            input_cost_per_million=0.0,
            output_cost_per_million=0.0,
            supports_json_mode=True,
            context_window=self.model_config.get("context_window", 8192),
        )

    @classmethod
    def get_provider_name(cls) -> str:
        return "ollama"
