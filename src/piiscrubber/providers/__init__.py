"""
Hosted and local completion services used for contextual PII detection.

- OpenAI: gpt-4o-mini (default), native JSON mode
- Anthropic: Claude models, JSON contract carried by the prompt
- Ollama: local models, nothing leaves the machine
"""

import logging
from typing import Optional, Type

from ..exceptions import ConfigurationError
from .anthropic import ANTHROPIC_MODELS, AnthropicProvider
from .base import BaseLLMProvider, CompletionResult, ModelInfo
from .ollama import OLLAMA_MODELS, OllamaProvider
from .openai import OPENAI_MODELS, OpenAIProvider

logger = logging.getLogger(__name__)

PROVIDERS: dict[str, Type[BaseLLMProvider]] = {
    "openai": OpenAIProvider,
    "anthropic": AnthropicProvider,
    "ollama": OllamaProvider,
}

_REGISTRIES = {
    "openai": OPENAI_MODELS,
    "anthropic": ANTHROPIC_MODELS,
    "ollama": OLLAMA_MODELS,
}

# Model name -> registry entry tagged with its provider
MODELS = {
    name: {**entry, "provider": provider}
    for provider, registry in _REGISTRIES.items()
    for name, entry in registry.items()
}

DEFAULT_MODEL = "gpt-4o-mini"

_LOCAL_PREFIXES = ("llama", "mistral", "qwen", "gemma", "phi")


def resolve_provider_name(model: str) -> str:
    """
    Name of the provider serving ``model``.

    Unregistered names are accepted as local Ollama models when they carry a
    tag (``qwen2:7b``) or a known local model family prefix.

    Raises:
        ConfigurationError: If no provider can serve the model
    """
    if model in MODELS:
        return MODELS[model]["provider"]
    if ":" in model or model.startswith(_LOCAL_PREFIXES):
        return "ollama"
    raise ConfigurationError(
        f"Unknown model: {model}. Available models: {list(MODELS.keys())}"
    )


def get_provider(
    model: str = DEFAULT_MODEL,
    api_key: Optional[str] = None,
    base_url: Optional[str] = None,
) -> BaseLLMProvider:
    """
    Build the provider for a model.

    The returned instance is shared by every detection call of a scrubber,
    including calls made from worker threads.

    Args:
        model: Model name (e.g., 'gpt-4o-mini', 'claude-haiku', 'llama3')
        api_key: API key (not needed for Ollama)
        base_url: Optional base URL override

    Returns:
        Initialized provider instance

    Raises:
        ConfigurationError: If the model is unknown or credentials are missing
    """
    provider_name = resolve_provider_name(model)
    logger.debug(
        "Creating LLM provider", extra={"provider": provider_name, "model": model}
    )
    return PROVIDERS[provider_name](model=model, api_key=api_key, base_url=base_url)


def list_models() -> dict[str, dict]:
    """Registered models with their provider and pricing."""
    return {name: dict(entry) for name, entry in MODELS.items()}


def list_providers() -> list[str]:
    return list(PROVIDERS.keys())


__all__ = [
    "BaseLLMProvider",
    "CompletionResult",
    "ModelInfo",
    "AnthropicProvider",
    "OpenAIProvider",
    "OllamaProvider",
    "MODELS",
    "PROVIDERS",
    "DEFAULT_MODEL",
    "get_provider",
    "list_models",
    "list_providers",
    "resolve_provider_name",
]
