"""Idea generation step: raw idea to refined concept and personas."""
from typing import Optional

import structlog

from src.knowledge import KnowledgeBase, format_snippets
from src.llm.structured import ChatModel, StructuredResult
from src.schemas.base import CamelModel
from src.schemas.feedback import TargetStep
from src.schemas.product import IdeaAnalysis
from src.steps.base import AgentStep
from src.steps.prompts import IDEA_SYSTEM, IDEA_TEMPLATE, render_context

logger = structlog.get_logger()


class IdeaInput(CamelModel):
    raw_idea: str = ""
    additional_context: Optional[str] = None


class IdeaGenerationStep(AgentStep[IdeaInput, IdeaAnalysis]):
    """Refine a raw idea, optionally grounded in knowledge-base snippets."""

    name = TargetStep.IDEA_GENERATION
    required_fields = ("raw_idea",)
    system_prompt = IDEA_SYSTEM

    def __init__(
        self,
        llm: ChatModel,
        knowledge: Optional[KnowledgeBase] = None,
        structured_output_retries: int = 1,
    ):
        super().__init__(llm, structured_output_retries)
        self.knowledge = knowledge

    async def build_prompt(self, data: IdeaInput) -> str:
        knowledge = ""
        if self.knowledge:
            snippets = await self.knowledge.search(data.raw_idea)
            if snippets:
                knowledge = f"\n{format_snippets(snippets)}\n"
                logger.info("idea_knowledge_attached", snippets=len(snippets))
        return IDEA_TEMPLATE.format(
            raw_idea=data.raw_idea.strip(),
            additional_context=render_context(data.additional_context),
            knowledge=knowledge,
        )

    async def execute(
        self, data: IdeaInput
    ) -> tuple[IdeaAnalysis, StructuredResult[IdeaAnalysis]]:
        structured = await self.generate(IdeaAnalysis, await self.build_prompt(data))
        return structured.payload, structured
