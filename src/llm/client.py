"""UnifiedChatClient - Provider-agnostic LLM interface.

This module provides the main interface for business logic to interact with
any LLM provider through a unified API.

Usage:
    from src.llm import UnifiedChatClient

    # Project default from settings
    llm = UnifiedChatClient(settings)
    text = await llm.chat("Hello!")

    # Specify model (provider auto-detected)
    llm = UnifiedChatClient(settings, model="gpt-4o")
    result = await llm.invoke(messages)
"""

from src.config import Settings
from src.llm.adapters.base import BaseAdapter
from src.llm.factory import (
    create_adapter,
    detect_provider,
    get_default_model,
    resolve_api_key,
)
from src.llm.types import (
    LLMConfig,
    LLMProvider,
    LLMResult,
    Message,
)


class UnifiedChatClient:
    """Provider-agnostic LLM client.

    This is the main interface for business logic to use any LLM provider.
    It handles provider detection, API key lookup and adapter creation.

    Examples:
        # Uses default from settings
        client = UnifiedChatClient(settings)

        # Auto-detects OpenAI from model name
        client = UnifiedChatClient(settings, model="gpt-4o")

        # Explicit provider with default model
        client = UnifiedChatClient(settings, provider=LLMProvider.ANTHROPIC)

        # Send messages
        result = await client.invoke(messages)

        # Simple chat (returns text only)
        text = await client.chat("Hello!", system_message="You are helpful.")
    """

    def __init__(
        self,
        settings: Settings,
        model: str | None = None,
        provider: LLMProvider | None = None,
        temperature: float | None = None,
        max_tokens: int = 8192,
        timeout_seconds: float | None = None,
    ):
        """Initialize the unified chat client.

        Args:
            settings: Application settings holding provider keys and defaults.
            model: Model name. If not provided, uses settings default or
                   provider default.
            provider: LLM provider. If not provided, detected from model name.
            temperature: Sampling temperature, settings default when omitted.
            max_tokens: Maximum tokens in response.
            timeout_seconds: Per-call timeout, settings default when omitted.

        Raises:
            ConfigurationError: No API key is configured for the provider.
        """
        if provider is None and model is None:
            model = settings.default_llm_model
            provider = detect_provider(model)
        elif provider is None:
            provider = detect_provider(model)
        elif model is None:
            model = get_default_model(provider)

        self.config = LLMConfig(
            provider=provider,
            model=model,
            api_key=resolve_api_key(settings, provider),
            temperature=settings.llm_temperature if temperature is None else temperature,
            max_tokens=max_tokens,
            timeout_seconds=(
                settings.llm_timeout_seconds if timeout_seconds is None else timeout_seconds
            ),
        )

        self._adapter: BaseAdapter | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "UnifiedChatClient":
        """Build the client for the configured default model."""
        return cls(settings)

    @property
    def adapter(self) -> BaseAdapter:
        """Lazy-load adapter on first call."""
        if self._adapter is None:
            self._adapter = create_adapter(self.config)
        return self._adapter

    @property
    def provider(self) -> LLMProvider:
        return self.config.provider

    @property
    def model(self) -> str:
        return self.config.model

    async def invoke(self, messages: list[Message]) -> LLMResult:
        """Send messages and get unified result.

        Raises:
            TransportError: The provider call failed or timed out.
        """
        return await self.adapter.invoke(messages)

    async def chat(self, user_message: str, system_message: str | None = None) -> str:
        """Simple chat interface - returns text only."""
        messages = []
        if system_message:
            messages.append(Message.system(system_message))
        messages.append(Message.user(user_message))

        result = await self.invoke(messages)
        return result.text
