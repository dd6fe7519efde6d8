"""Workflow session state.

A session is created when a workflow run starts and is mutated after every
step transition. It is terminal once status is completed or failed, until
feedback starts another iteration.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import Field

from src.schemas.base import CamelModel
from src.schemas.feedback import FeedbackDecision, TargetStep
from src.schemas.prd import PRDAnalysis
from src.schemas.product import IdeaAnalysis, UserStoryAnalysis
from src.schemas.sprint import SprintLength, SprintPlan
from src.schemas.visual import VisualAnalysis


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WorkflowStep(str, Enum):
    """Position of a session in the step sequence."""
    IDLE = "idle"
    IDEA = "idea"
    USER_STORIES = "user-stories"
    PRD = "prd"
    SPRINT_PLANNING = "sprint-planning"
    VISUAL_DESIGN = "visual-design"
    DONE = "done"

    @classmethod
    def from_target(cls, target: TargetStep) -> "WorkflowStep":
        return {
            TargetStep.IDEA_GENERATION: cls.IDEA,
            TargetStep.USER_STORY: cls.USER_STORIES,
            TargetStep.PRD: cls.PRD,
            TargetStep.SPRINT_PLANNER: cls.SPRINT_PLANNING,
            TargetStep.VISUAL_DESIGN: cls.VISUAL_DESIGN,
        }[target]


# Execution order of the steps that produce artifacts
STEP_ORDER: list[WorkflowStep] = [
    WorkflowStep.IDEA,
    WorkflowStep.USER_STORIES,
    WorkflowStep.PRD,
    WorkflowStep.SPRINT_PLANNING,
    WorkflowStep.VISUAL_DESIGN,
]

OPTIONAL_STEPS = {WorkflowStep.SPRINT_PLANNING, WorkflowStep.VISUAL_DESIGN}


class SessionStatus(str, Enum):
    RUNNING = "running"
    WAITING_FOR_FEEDBACK = "waiting-for-feedback"
    COMPLETED = "completed"
    FAILED = "failed"


class StepStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    SKIPPED = "skipped"
    FAILED = "failed"


class QualityMetrics(CamelModel):
    """Progress of a session across its steps."""
    completion_percentage: float = 0.0
    per_step_status: dict[WorkflowStep, StepStatus] = Field(default_factory=dict)
    artifacts_generated: int = 0
    integrations_used: list[str] = Field(default_factory=list)

    def recompute(self) -> None:
        """completed / (not skipped) * 100."""
        statuses = list(self.per_step_status.values())
        counted = [s for s in statuses if s != StepStatus.SKIPPED]
        completed = [s for s in counted if s == StepStatus.COMPLETED]
        self.completion_percentage = (
            round(len(completed) / len(counted) * 100, 2) if counted else 0.0
        )
        self.artifacts_generated = len(completed)


class StepError(CamelModel):
    """Why a step failed; kept on the session next to earlier artifacts."""
    step: WorkflowStep
    code: str
    message: str
    details: dict[str, Any] = Field(default_factory=dict)


class WorkflowRequest(CamelModel):
    """Inputs for one workflow run."""
    raw_idea: str = ""
    additional_context: Optional[str] = None
    team_size: int = Field(default=4, ge=1)
    sprint_length: SprintLength = SprintLength.TWO_WEEKS
    total_sprints: int = Field(default=3, ge=1)
    enable_sprint_planning: bool = True
    enable_visual_design: bool = True
    create_linear_project: bool = False
    linear_team_id: Optional[str] = None
    session_id: Optional[str] = None


class FeedbackEntry(CamelModel):
    feedback: str
    decision: FeedbackDecision
    applied: bool = False
    received_at: datetime = Field(default_factory=_utcnow)


class ConversationalContext(CamelModel):
    """Hints for the caller about what can be done next."""
    available_actions: list[str] = Field(default_factory=list)
    can_iterate_on: list[TargetStep] = Field(default_factory=list)
    next_step_suggestions: list[str] = Field(default_factory=list)


class WorkflowSession(CamelModel):
    """One workflow run and every artifact it has produced so far."""
    session_id: str
    current_step: WorkflowStep = WorkflowStep.IDLE
    status: SessionStatus = SessionStatus.RUNNING
    quality_metrics: QualityMetrics = Field(default_factory=QualityMetrics)
    request: WorkflowRequest

    # Artifacts
    idea_analysis: Optional[IdeaAnalysis] = None
    user_story_analysis: Optional[UserStoryAnalysis] = None
    prd_analysis: Optional[PRDAnalysis] = None
    sprint_analysis: Optional[SprintPlan] = None
    visual_analysis: Optional[VisualAnalysis] = None

    error: Optional[StepError] = None

    # Feedback loop
    pending_decision: Optional[FeedbackDecision] = None
    feedback_history: list[FeedbackEntry] = Field(default_factory=list)
    iteration_count: int = 0
    conversational_context: ConversationalContext = Field(default_factory=ConversationalContext)

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    def step_status(self, step: WorkflowStep) -> StepStatus:
        return self.quality_metrics.per_step_status.get(step, StepStatus.PENDING)

    def set_step_status(self, step: WorkflowStep, status: StepStatus) -> None:
        """Record a step transition and recompute progress."""
        self.quality_metrics.per_step_status[step] = status
        self.quality_metrics.recompute()
        self.updated_at = _utcnow()

    def snapshot(self) -> dict[str, Any]:
        """Compact view of the session for the feedback router prompt."""
        snapshot: dict[str, Any] = {
            "sessionId": self.session_id,
            "currentStep": self.current_step.value,
            "status": self.status.value,
            "stepStatus": {
                step.value: status.value
                for step, status in self.quality_metrics.per_step_status.items()
            },
            "iterationCount": self.iteration_count,
        }
        if self.idea_analysis:
            idea = self.idea_analysis.refined_idea
            snapshot["productIdea"] = {
                "title": idea.title,
                "problemStatement": idea.problem_statement,
                "features": [f.name for f in idea.features],
            }
        if self.user_story_analysis:
            snapshot["userStories"] = [
                {"id": s.id, "title": s.title, "priority": s.priority.value}
                for s in self.user_story_analysis.user_stories
            ]
        if self.prd_analysis:
            snapshot["prd"] = {
                "title": self.prd_analysis.prd.title,
                "published": self.prd_analysis.published,
            }
        if self.sprint_analysis:
            snapshot["sprints"] = [
                {"number": s.number, "stories": s.user_stories}
                for s in self.sprint_analysis.sprints
            ]
        if self.visual_analysis:
            snapshot["visualBoard"] = self.visual_analysis.board.view_link
        return snapshot
