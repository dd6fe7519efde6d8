"""Feedback routing artifacts."""
from enum import Enum
from typing import Optional

from pydantic import Field

from src.schemas.base import CamelModel


class TargetStep(str, Enum):
    """Steps feedback can be routed back to."""
    IDEA_GENERATION = "idea-generation"
    USER_STORY = "user-story"
    PRD = "prd"
    SPRINT_PLANNER = "sprint-planner"
    VISUAL_DESIGN = "visual-design"

    @classmethod
    def normalize(cls, raw: str) -> Optional["TargetStep"]:
        """Map a model-produced target name onto a known step, or None."""
        key = raw.strip().lower().replace("_", "-").replace(" ", "-")
        for member in cls:
            if key == member.value:
                return member
        return _TARGET_SYNONYMS.get(key)


_TARGET_SYNONYMS = {
    "idea": TargetStep.IDEA_GENERATION,
    "idea-agent": TargetStep.IDEA_GENERATION,
    "idea-refinement": TargetStep.IDEA_GENERATION,
    "user-stories": TargetStep.USER_STORY,
    "user-story-generator": TargetStep.USER_STORY,
    "user-story-generation": TargetStep.USER_STORY,
    "prd-agent": TargetStep.PRD,
    "prd-generation": TargetStep.PRD,
    "sprint-planning": TargetStep.SPRINT_PLANNER,
    "sprint": TargetStep.SPRINT_PLANNER,
    "visual": TargetStep.VISUAL_DESIGN,
    "visual-design-agent": TargetStep.VISUAL_DESIGN,
}


class RoutingPayload(CamelModel):
    """Routing decision as produced by the model."""
    target_agent: str = Field(
        json_schema_extra={"enum": [step.value for step in TargetStep]},
        description="Step to re-run",
    )
    confidence: float = Field(ge=0.0, le=1.0)
    reasoning: str = ""
    suggested_action: str = ""
    requires_approval: bool = True


class FeedbackDecision(CamelModel):
    """Routing decision for one piece of feedback.

    ``target_step`` is None when the model named a step outside the known
    set; ``raw_target`` keeps what it actually said.
    """
    target_step: Optional[TargetStep] = Field(default=None, alias="targetAgent")
    confidence: float = Field(ge=0.0, le=1.0)
    reasoning: str = ""
    suggested_action: str = ""
    requires_approval: bool = True
    raw_target: str = ""
    notice: Optional[str] = None

    @property
    def is_actionable(self) -> bool:
        return self.target_step is not None
