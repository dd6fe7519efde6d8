"""LLM provider adapters package."""

from src.llm.adapters.anthropic import AnthropicAdapter
from src.llm.adapters.base import BaseAdapter
from src.llm.adapters.gemini import GeminiAdapter
from src.llm.adapters.openai import OpenAIAdapter

__all__ = [
    "AnthropicAdapter",
    "BaseAdapter",
    "GeminiAdapter",
    "OpenAIAdapter",
]
