"""Anthropic provider adapter using langchain-anthropic."""

from langchain_anthropic import ChatAnthropic

from src.llm.adapters.base import BaseAdapter
from src.llm.types import LLMConfig, LLMProvider


class AnthropicAdapter(BaseAdapter):
    """Anthropic provider adapter using langchain-anthropic.

    ChatAnthropic lifts the leading SystemMessage into Anthropic's separate
    system parameter, so the shared message conversion applies unchanged.
    """

    provider = LLMProvider.ANTHROPIC

    def build_client(self, config: LLMConfig) -> ChatAnthropic:
        return ChatAnthropic(
            model=config.model,
            api_key=config.api_key,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
            timeout=config.timeout_seconds,
        )
