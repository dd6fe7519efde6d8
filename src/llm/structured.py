"""Schema-validated structured output on top of the unified chat client.

The model is asked for a single JSON object matching a pydantic model's JSON
schema. The reply is validated with ``model_validate_json``; on mismatch the
model is re-prompted with the validation errors, at most ``max_retries``
times, before ``MalformedAgentResponse`` is raised with the raw text.
"""

import json
import logging
from typing import Generic, Protocol, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from src.errors import MalformedAgentResponse
from src.llm.types import LLMResult, Message, TokenUsage, ToolCall

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


class ChatModel(Protocol):
    """Anything that can answer a list of messages with an LLMResult."""

    async def invoke(self, messages: list[Message]) -> LLMResult: ...


SCHEMA_INSTRUCTIONS = """Respond with a single JSON object that conforms to this JSON Schema:

{schema}

Rules:
- Output ONLY the JSON object, no prose before or after it
- Use the exact property names from the schema
- Include every required property"""

RETRY_PROMPT = """Your previous reply could not be accepted.

Validation errors:
{errors}

Reply again with ONLY a corrected JSON object that conforms to the schema."""


class StructuredResult(BaseModel, Generic[T]):
    """Validated payload plus the raw model results that produced it."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    payload: T
    results: list[LLMResult] = Field(default_factory=list)
    attempts: int = 1

    @property
    def usage(self) -> TokenUsage:
        total = TokenUsage()
        for result in self.results:
            total = total + result.usage
        return total

    @property
    def tool_calls(self) -> list[ToolCall]:
        return [tc for result in self.results for tc in result.tool_calls]


def strip_code_fences(text: str) -> str:
    """Remove a surrounding markdown code fence, if any."""
    text = text.strip()
    if text.startswith("```"):
        text = text.split("```")[1]
        if text.startswith("json"):
            text = text[4:]
        text = text.strip()
    return text


def schema_instructions(schema: type[BaseModel]) -> str:
    """Render the JSON-schema instruction block for a model."""
    return SCHEMA_INSTRUCTIONS.format(
        schema=json.dumps(schema.model_json_schema(by_alias=True), indent=2)
    )


async def generate_structured(
    llm: ChatModel,
    schema: type[T],
    prompt: str,
    system_message: str | None = None,
    max_retries: int = 1,
) -> StructuredResult[T]:
    """Ask the model for a payload and validate it against ``schema``.

    Raises:
        MalformedAgentResponse: No valid payload after ``max_retries`` re-prompts.
        TransportError: The provider call failed.
    """
    messages: list[Message] = []
    if system_message:
        messages.append(Message.system(system_message))
    messages.append(Message.user(f"{prompt}\n\n{schema_instructions(schema)}"))

    results: list[LLMResult] = []
    attempts = 0
    while True:
        attempts += 1
        result = await llm.invoke(messages)
        results.append(result)

        try:
            payload = schema.model_validate_json(strip_code_fences(result.text))
        except PydanticValidationError as e:
            errors = str(e)
            logger.warning(
                f"Structured output rejected for {schema.__name__}",
                extra={"attempt": attempts, "request_id": result.request_id},
            )
            if attempts > max_retries:
                raise MalformedAgentResponse(
                    schema.__name__, result.text, errors, attempts=attempts
                ) from e
            messages = messages + [
                Message.assistant(result.text),
                Message.user(RETRY_PROMPT.format(errors=errors)),
            ]
            continue

        return StructuredResult[schema](payload=payload, results=results, attempts=attempts)
