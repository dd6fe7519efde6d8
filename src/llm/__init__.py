"""Multi-provider LLM abstraction layer.

This package provides a unified interface for interacting with multiple LLM providers
(Gemini, OpenAI, Anthropic) with consistent types, standardized result formats and
schema-validated structured output.

Usage:
    from src.llm import UnifiedChatClient, generate_structured

    llm = UnifiedChatClient(settings)
    text = await llm.chat("Hello!")

    structured = await generate_structured(llm, IdeaAnalysis, prompt)
    analysis = structured.payload
"""

# Enums
from src.llm.types import (
    LLMProvider,
    MessageRole,
    FinishReason,
)

# Core types
from src.llm.types import (
    Message,
    ToolCall,
    TokenUsage,
    LLMResult,
    LLMConfig,
)

# Client and Factory
from src.llm.client import UnifiedChatClient
from src.llm.factory import (
    detect_provider,
    create_adapter,
    get_default_model,
    resolve_api_key,
)

# Structured output
from src.llm.structured import (
    ChatModel,
    StructuredResult,
    generate_structured,
    strip_code_fences,
)

__all__ = [
    # Enums
    "LLMProvider",
    "MessageRole",
    "FinishReason",
    # Core types
    "Message",
    "ToolCall",
    "TokenUsage",
    "LLMResult",
    "LLMConfig",
    # Client
    "UnifiedChatClient",
    # Factory
    "detect_provider",
    "create_adapter",
    "get_default_model",
    "resolve_api_key",
    # Structured output
    "ChatModel",
    "StructuredResult",
    "generate_structured",
    "strip_code_fences",
]
