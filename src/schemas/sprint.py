"""Sprint planning artifacts."""
from enum import Enum
from typing import Optional

from pydantic import Field

from src.errors import DataIntegrityError
from src.schemas.base import CamelModel


class SprintLength(str, Enum):
    ONE_WEEK = "1 week"
    TWO_WEEKS = "2 weeks"
    THREE_WEEKS = "3 weeks"
    FOUR_WEEKS = "4 weeks"

    @property
    def weeks(self) -> int:
        return int(self.value.split()[0])


class SprintTask(CamelModel):
    title: str
    description: str = ""
    estimated_hours: int = 0
    assignee: Optional[str] = None
    dependencies: list[str] = Field(default_factory=list)
    story_id: Optional[str] = None


# =============================================================================
# Linear references
# =============================================================================


class LinearCycleRef(CamelModel):
    cycle_id: str
    cycle_name: str
    sprint_number: int
    linear_url: Optional[str] = None


class LinearIssueRef(CamelModel):
    issue_id: str
    issue_identifier: str
    title: str
    story_id: str
    cycle_id: Optional[str] = None
    url: Optional[str] = None


class LinearIntegration(CamelModel):
    """Outcome of mirroring the plan into Linear cycles and issues."""
    enabled: bool = False
    team_id: Optional[str] = None
    cycles_created: list[LinearCycleRef] = Field(default_factory=list)
    issues_created: list[LinearIssueRef] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)


# =============================================================================
# Plan
# =============================================================================


class Sprint(CamelModel):
    id: str
    number: int = Field(ge=1)
    name: str
    goal: str = ""
    duration_weeks: int = Field(ge=1)
    user_stories: list[str] = Field(default_factory=list)  # Story ids
    tasks: list[SprintTask] = Field(default_factory=list)
    deliverables: list[str] = Field(default_factory=list)
    risks: list[str] = Field(default_factory=list)
    velocity: int = 0  # Sum of assigned story points
    cycle: Optional[LinearCycleRef] = None


class SprintSummary(CamelModel):
    total_story_points: int = 0
    allocated_story_points: int = 0
    unallocated_stories: list[str] = Field(default_factory=list)
    sprint_capacity: int = 0
    estimated_duration: str = ""
    risk_factors: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)


class SprintInsight(CamelModel):
    """Model-written narrative for one already-allocated sprint."""
    sprint_number: int
    goal: str
    deliverables: list[str] = Field(default_factory=list)
    risks: list[str] = Field(default_factory=list)


class SprintInsights(CamelModel):
    """Sprint planning payload as produced by the model."""
    sprints: list[SprintInsight] = Field(default_factory=list)
    risk_factors: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)


class SprintPlan(CamelModel):
    """Output of the sprint planning step."""
    sprints: list[Sprint] = Field(default_factory=list)
    summary: SprintSummary = Field(default_factory=SprintSummary)
    linear_integration: LinearIntegration = Field(default_factory=LinearIntegration)

    def assert_references(self, story_ids: set[str]) -> None:
        """Check every sprint and Linear issue points at a known story.

        Raises:
            DataIntegrityError: A sprint references a story outside ``story_ids``.
        """
        referenced = [sid for sprint in self.sprints for sid in sprint.user_stories]
        referenced += [
            task.story_id for sprint in self.sprints for task in sprint.tasks if task.story_id
        ]
        referenced += [issue.story_id for issue in self.linear_integration.issues_created]
        unknown = sorted({sid for sid in referenced if sid not in story_ids})
        if unknown:
            raise DataIntegrityError(
                "Sprint plan references unknown user story ids",
                unknown_ids=unknown,
            )
