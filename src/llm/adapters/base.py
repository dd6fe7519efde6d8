"""Base adapter for LLM providers backed by LangChain chat models."""

import logging
import time
from abc import ABC, abstractmethod
from typing import Any

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import (
    AIMessage,
    BaseMessage,
    HumanMessage,
    SystemMessage,
)

from src.errors import TransportError
from src.llm.types import (
    FinishReason,
    LLMConfig,
    LLMProvider,
    LLMResult,
    Message,
    MessageRole,
    TokenUsage,
    ToolCall,
)

logger = logging.getLogger(__name__)


class BaseAdapter(ABC):
    """Abstract base for LLM provider adapters.

    Subclasses only decide how the LangChain chat model is built; message
    conversion, response normalization and error mapping are shared.
    """

    provider: LLMProvider

    def __init__(self, config: LLMConfig):
        self.config = config
        self.client = self.build_client(config)

    @abstractmethod
    def build_client(self, config: LLMConfig) -> BaseChatModel:
        """Create the provider's LangChain chat model."""

    def convert_messages(self, messages: list[Message]) -> list[BaseMessage]:
        """Convert canonical messages to LangChain format."""
        result: list[BaseMessage] = []
        for msg in messages:
            if msg.role == MessageRole.SYSTEM:
                result.append(SystemMessage(content=msg.content))
            elif msg.role == MessageRole.USER:
                result.append(HumanMessage(content=msg.content))
            elif msg.role == MessageRole.ASSISTANT:
                result.append(AIMessage(content=msg.content))
        return result

    def parse_response(self, response: Any, latency_ms: float) -> LLMResult:
        """Parse LangChain response to unified format."""
        # Content may be a plain string or a list of content blocks
        text = ""
        content = getattr(response, "content", "")
        if isinstance(content, str):
            text = content
        elif isinstance(content, list):
            parts = []
            for block in content:
                if isinstance(block, dict) and block.get("type") == "text":
                    parts.append(block.get("text", ""))
                elif isinstance(block, str):
                    parts.append(block)
            text = "".join(parts)

        tool_calls = [
            ToolCall(
                id=tc.get("id") or "",
                name=tc.get("name", ""),
                arguments=tc.get("args", {}),
            )
            for tc in (getattr(response, "tool_calls", None) or [])
        ]

        usage = TokenUsage()
        um = getattr(response, "usage_metadata", None)
        if um:
            usage = TokenUsage(
                prompt_tokens=um.get("input_tokens", 0),
                completion_tokens=um.get("output_tokens", 0),
                total_tokens=um.get("total_tokens", 0),
            )

        return LLMResult(
            text=text,
            tool_calls=tool_calls,
            finish_reason=FinishReason.TOOL_CALLS if tool_calls else FinishReason.STOP,
            provider=self.provider,
            model=self.config.model,
            latency_ms=latency_ms,
            usage=usage,
        )

    async def invoke(self, messages: list[Message]) -> LLMResult:
        """Send messages to the provider and get a unified result.

        Raises:
            TransportError: The provider call failed or timed out.
        """
        start_time = time.perf_counter()
        try:
            response = await self.client.ainvoke(self.convert_messages(messages))
        except Exception as e:
            latency_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                f"{self.provider.value} request failed: {e}",
                extra={"model": self.config.model, "latency_ms": round(latency_ms, 2)},
            )
            raise TransportError(self.provider.value, str(e)) from e

        result = self.parse_response(response, (time.perf_counter() - start_time) * 1000)
        logger.info(
            f"{self.provider.value} request completed",
            extra={
                "request_id": result.request_id,
                "provider": result.provider.value,
                "model": result.model,
                "latency_ms": round(result.latency_ms, 2),
                "total_tokens": result.usage.total_tokens,
            },
        )
        return result
