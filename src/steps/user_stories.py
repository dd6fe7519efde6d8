"""User story generation step."""
from typing import Optional

from pydantic import Field

from src.llm.structured import StructuredResult
from src.schemas.base import CamelModel
from src.schemas.feedback import TargetStep
from src.schemas.product import (
    RefinedIdea,
    UserPersona,
    UserStoryAnalysis,
    UserStoryDraft,
)
from src.steps.base import AgentStep
from src.steps.prompts import (
    USER_STORY_SYSTEM,
    USER_STORY_TEMPLATE,
    render_context,
    render_features,
    render_personas,
)


class UserStoryInput(CamelModel):
    refined_idea: Optional[RefinedIdea] = None
    user_personas: list[UserPersona] = Field(default_factory=list)
    additional_context: Optional[str] = None
    focus_areas: list[str] = Field(default_factory=list)


class UserStoryGenerationStep(AgentStep[UserStoryInput, UserStoryAnalysis]):
    """Turn the refined idea and personas into stories grouped into epics.

    Totals and readiness are computed here from the stories, not taken from
    the model.
    """

    name = TargetStep.USER_STORY
    required_fields = ("refined_idea", "user_personas")
    system_prompt = USER_STORY_SYSTEM

    def build_prompt(self, data: UserStoryInput) -> str:
        idea = data.refined_idea
        focus = ""
        if data.focus_areas:
            focus = f"\nFocus areas: {', '.join(data.focus_areas)}\n"
        return USER_STORY_TEMPLATE.format(
            title=idea.title,
            description=idea.description,
            problem_statement=idea.problem_statement,
            target_audience=idea.target_audience,
            features=render_features(idea.features),
            personas=render_personas(data.user_personas),
            additional_context=render_context(data.additional_context),
            focus_areas=focus,
        )

    async def execute(
        self, data: UserStoryInput
    ) -> tuple[UserStoryAnalysis, StructuredResult[UserStoryDraft]]:
        structured = await self.generate(UserStoryDraft, self.build_prompt(data))
        return UserStoryAnalysis.from_draft(structured.payload), structured
