"""Common machinery for LLM-backed workflow steps.

Every step follows the same shape: check the required inputs, build a
prompt, ask the model for a schema-validated payload, then turn the
payload (plus any vendor side effects) into the step's artifact.
"""
import time
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Generic, Optional, TypeVar

import structlog
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from src.errors import ValidationError
from src.llm.structured import ChatModel, StructuredResult, generate_structured
from src.llm.types import TokenUsage, ToolCall
from src.schemas.feedback import TargetStep

logger = structlog.get_logger()

InputT = TypeVar("InputT", bound=BaseModel)
OutputT = TypeVar("OutputT", bound=BaseModel)
PayloadT = TypeVar("PayloadT", bound=BaseModel)


class StepRun(BaseModel, Generic[OutputT]):
    """Artifact produced by one step invocation plus model accounting."""
    output: OutputT
    usage: TokenUsage = Field(default_factory=TokenUsage)
    tool_calls: list[ToolCall] = Field(default_factory=list)
    attempts: int = 1
    duration_ms: float = 0.0


def is_missing(value: Any) -> bool:
    """None, blank strings and empty collections count as missing."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, dict, tuple, set)):
        return len(value) == 0
    return False


class AgentStep(ABC, Generic[InputT, OutputT]):
    """Base class for the five workflow steps."""

    name: ClassVar[TargetStep]
    required_fields: ClassVar[tuple[str, ...]] = ()
    system_prompt: ClassVar[str] = ""

    def __init__(self, llm: ChatModel, structured_output_retries: int = 1):
        self.llm = llm
        self.structured_output_retries = structured_output_retries

    def validate(self, data: InputT) -> None:
        """Fail fast on the first missing required field.

        Raises:
            ValidationError: Naming the missing field in camelCase.
        """
        for field in self.required_fields:
            if is_missing(getattr(data, field, None)):
                raise ValidationError(to_camel(field))

    async def generate(
        self, schema: type[PayloadT], prompt: str
    ) -> StructuredResult[PayloadT]:
        """Ask the model for a payload of type ``schema``."""
        return await generate_structured(
            self.llm,
            schema,
            prompt,
            system_message=self.system_prompt or None,
            max_retries=self.structured_output_retries,
        )

    async def run(self, data: InputT) -> StepRun[OutputT]:
        """Validate input, execute the step and collect accounting.

        Raises:
            ValidationError: A required input is missing.
            MalformedAgentResponse: The model never produced a valid payload.
            ProductMaestroError: Vendor or integrity failures from ``execute``.
        """
        self.validate(data)
        start = time.perf_counter()
        logger.info("step_started", step=self.name.value)

        output, structured = await self.execute(data)

        duration_ms = (time.perf_counter() - start) * 1000
        run = StepRun[type(output)](
            output=output,
            usage=structured.usage if structured else TokenUsage(),
            tool_calls=structured.tool_calls if structured else [],
            attempts=structured.attempts if structured else 1,
            duration_ms=duration_ms,
        )
        logger.info(
            "step_completed",
            step=self.name.value,
            attempts=run.attempts,
            total_tokens=run.usage.total_tokens,
            duration_ms=round(duration_ms, 2),
        )
        return run

    @abstractmethod
    async def execute(
        self, data: InputT
    ) -> tuple[OutputT, Optional[StructuredResult]]:
        """Produce the artifact; returns it with the structured model result."""
