"""Gemini provider adapter using langchain-google-genai."""

from langchain_google_genai import ChatGoogleGenerativeAI

from src.llm.adapters.base import BaseAdapter
from src.llm.types import LLMConfig, LLMProvider


class GeminiAdapter(BaseAdapter):
    """Gemini provider adapter using langchain-google-genai."""

    provider = LLMProvider.GEMINI

    def build_client(self, config: LLMConfig) -> ChatGoogleGenerativeAI:
        return ChatGoogleGenerativeAI(
            model=config.model,
            google_api_key=config.api_key,
            temperature=config.temperature,
            max_output_tokens=config.max_tokens,
            timeout=config.timeout_seconds,
        )
