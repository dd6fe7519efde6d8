"""OpenAI provider adapter using langchain-openai."""

from langchain_openai import ChatOpenAI

from src.llm.adapters.base import BaseAdapter
from src.llm.types import LLMConfig, LLMProvider


class OpenAIAdapter(BaseAdapter):
    """OpenAI provider adapter using langchain-openai."""

    provider = LLMProvider.OPENAI

    def build_client(self, config: LLMConfig) -> ChatOpenAI:
        return ChatOpenAI(
            model=config.model,
            api_key=config.api_key,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
            timeout=config.timeout_seconds,
        )
