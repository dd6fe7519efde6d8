"""Visual design artifacts.

Only references to the Miro board are kept locally; the board content
lives in Miro.
"""
from enum import Enum
from typing import Optional

from pydantic import Field

from src.schemas.base import CamelModel


class ElementType(str, Enum):
    """Kinds of elements placed on a board."""
    TITLE = "title"
    PERSONA_CARD = "persona_card"
    JOURNEY_STAGE = "journey_stage"
    PAIN_POINT = "pain_point"
    PROCESS_STEP = "process_step"


class ElementCount(CamelModel):
    type: ElementType
    count: int = 0


class ElementFailure(CamelModel):
    type: ElementType
    label: str
    error: str


class VisualBoard(CamelModel):
    board_id: str
    name: str
    view_link: str
    manifest: list[ElementCount] = Field(default_factory=list)

    @property
    def items_created(self) -> int:
        return sum(entry.count for entry in self.manifest)


class JourneyStage(CamelModel):
    name: str = Field(min_length=1)
    description: str = ""
    touchpoints: list[str] = Field(default_factory=list)
    pain_points: list[str] = Field(default_factory=list)


class ProcessNode(CamelModel):
    label: str = Field(min_length=1)
    description: str = ""


class DesignInsights(CamelModel):
    user_experience_gaps: list[str] = Field(default_factory=list)
    process_optimizations: list[str] = Field(default_factory=list)
    stakeholder_recommendations: list[str] = Field(default_factory=list)


class VisualDesignDraft(CamelModel):
    """Visual design payload as produced by the model."""
    journey_stages: list[JourneyStage] = Field(min_length=1)
    process_flow: list[ProcessNode] = Field(default_factory=list)
    insights: DesignInsights = Field(default_factory=DesignInsights)


class VisualAnalysis(CamelModel):
    """Output of the visual design step."""
    board: VisualBoard
    journey_stages: list[JourneyStage] = Field(default_factory=list)
    process_flow: list[ProcessNode] = Field(default_factory=list)
    insights: DesignInsights = Field(default_factory=DesignInsights)
    failed_elements: list[ElementFailure] = Field(default_factory=list)
    message: Optional[str] = None
