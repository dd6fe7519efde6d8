"""Factory functions for creating LLM adapters.

This module provides:
- Provider detection from model names
- Adapter instantiation based on provider/model
- Default model and API key lookup for each provider
"""

from src.config import Settings
from src.errors import ConfigurationError
from src.llm.adapters.base import BaseAdapter
from src.llm.types import LLMConfig, LLMProvider


def detect_provider(model: str) -> LLMProvider:
    """Detect provider from model name.

    Examples:
        >>> detect_provider("gemini-2.0-flash")
        LLMProvider.GEMINI
        >>> detect_provider("gpt-4o")
        LLMProvider.OPENAI
        >>> detect_provider("claude-3-5-sonnet-latest")
        LLMProvider.ANTHROPIC
    """
    model_lower = model.lower()
    if model_lower.startswith("gemini"):
        return LLMProvider.GEMINI
    elif model_lower.startswith(("gpt", "o1", "o3")):
        return LLMProvider.OPENAI
    elif model_lower.startswith("claude"):
        return LLMProvider.ANTHROPIC
    else:
        # Unknown names go to the project default provider
        return LLMProvider.GEMINI


def create_adapter(config: LLMConfig) -> BaseAdapter:
    """Create adapter instance for the specified provider.

    Raises:
        ValueError: If provider is unknown
    """
    if config.provider == LLMProvider.GEMINI:
        from src.llm.adapters.gemini import GeminiAdapter
        return GeminiAdapter(config)
    elif config.provider == LLMProvider.OPENAI:
        from src.llm.adapters.openai import OpenAIAdapter
        return OpenAIAdapter(config)
    elif config.provider == LLMProvider.ANTHROPIC:
        from src.llm.adapters.anthropic import AnthropicAdapter
        return AnthropicAdapter(config)
    else:
        raise ValueError(f"Unknown provider: {config.provider}")


def get_default_model(provider: LLMProvider) -> str:
    """Get default model for a provider."""
    defaults = {
        LLMProvider.GEMINI: "gemini-2.0-flash",
        LLMProvider.OPENAI: "gpt-4o-mini",
        LLMProvider.ANTHROPIC: "claude-3-5-sonnet-latest",
    }
    return defaults.get(provider, "gemini-2.0-flash")


def resolve_api_key(settings: Settings, provider: LLMProvider) -> str:
    """Look up the API key for a provider.

    Raises:
        ConfigurationError: No key is configured for the provider.
    """
    keys = {
        LLMProvider.GEMINI: (settings.google_api_key, "GOOGLE_GENERATIVE_AI_API_KEY"),
        LLMProvider.OPENAI: (settings.openai_api_key, "OPENAI_API_KEY"),
        LLMProvider.ANTHROPIC: (settings.anthropic_api_key, "ANTHROPIC_API_KEY"),
    }
    api_key, env_name = keys[provider]
    if not api_key:
        raise ConfigurationError(
            f"{provider.value} API key required; set {env_name}",
            details={"provider": provider.value},
        )
    return api_key
