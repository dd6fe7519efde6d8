"""Product Requirements Document artifacts."""
from typing import Optional

from pydantic import Field

from src.schemas.base import CamelModel
from src.schemas.product import Feature, UserPersona


class GoalMetric(CamelModel):
    goal: str
    metric: str
    target: str


class PRDDocument(CamelModel):
    """Comprehensive PRD, laid out to map onto Notion blocks."""
    title: str = Field(min_length=1)
    executive_summary: str = Field(min_length=1)
    problem_statement: str = ""
    solution_overview: str = ""
    features: list[Feature] = Field(default_factory=list)
    user_personas: list[UserPersona] = Field(default_factory=list)
    goals_and_metrics: list[GoalMetric] = Field(default_factory=list)
    assumptions: list[str] = Field(default_factory=list)
    constraints: list[str] = Field(default_factory=list)
    dependencies: list[str] = Field(default_factory=list)
    open_questions: list[str] = Field(default_factory=list)
    future_considerations: list[str] = Field(default_factory=list)
    technical_overview: Optional[str] = None
    ui_ux_notes: Optional[str] = None
    version: str = "1.0"


class PRDAnalysis(CamelModel):
    """Output of the PRD step."""
    prd: PRDDocument
    published: bool = False
    notion_page_id: Optional[str] = None
    notion_page_url: Optional[str] = None
    message: str = ""
    blocks_written: int = 0
    last_updated: str = ""
    recommendations: list[str] = Field(default_factory=list)
