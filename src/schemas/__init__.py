"""Artifact schemas for Product Maestro."""
from src.schemas.base import CamelModel
from src.schemas.product import (
    FeaturePriority,
    StoryPriority,
    Feature,
    RefinedIdea,
    UserPersona,
    MarketValidation,
    IdeaAnalysis,
    UserStory,
    Epic,
    StoryEstimate,
    UserStoryDraft,
    UserStoryAnalysis,
)
from src.schemas.prd import GoalMetric, PRDDocument, PRDAnalysis
from src.schemas.sprint import (
    SprintLength,
    SprintTask,
    Sprint,
    SprintSummary,
    SprintInsight,
    SprintInsights,
    LinearCycleRef,
    LinearIssueRef,
    LinearIntegration,
    SprintPlan,
)
from src.schemas.visual import (
    ElementType,
    ElementCount,
    ElementFailure,
    VisualBoard,
    JourneyStage,
    ProcessNode,
    DesignInsights,
    VisualDesignDraft,
    VisualAnalysis,
)
from src.schemas.feedback import TargetStep, RoutingPayload, FeedbackDecision
from src.schemas.session import (
    WorkflowStep,
    STEP_ORDER,
    OPTIONAL_STEPS,
    SessionStatus,
    StepStatus,
    QualityMetrics,
    StepError,
    WorkflowRequest,
    FeedbackEntry,
    ConversationalContext,
    WorkflowSession,
)

__all__ = [
    "CamelModel",
    # Idea and stories
    "FeaturePriority",
    "StoryPriority",
    "Feature",
    "RefinedIdea",
    "UserPersona",
    "MarketValidation",
    "IdeaAnalysis",
    "UserStory",
    "Epic",
    "StoryEstimate",
    "UserStoryDraft",
    "UserStoryAnalysis",
    # PRD
    "GoalMetric",
    "PRDDocument",
    "PRDAnalysis",
    # Sprint
    "SprintLength",
    "SprintTask",
    "Sprint",
    "SprintSummary",
    "SprintInsight",
    "SprintInsights",
    "LinearCycleRef",
    "LinearIssueRef",
    "LinearIntegration",
    "SprintPlan",
    # Visual
    "ElementType",
    "ElementCount",
    "ElementFailure",
    "VisualBoard",
    "JourneyStage",
    "ProcessNode",
    "DesignInsights",
    "VisualDesignDraft",
    "VisualAnalysis",
    # Feedback
    "TargetStep",
    "RoutingPayload",
    "FeedbackDecision",
    # Session
    "WorkflowStep",
    "STEP_ORDER",
    "OPTIONAL_STEPS",
    "SessionStatus",
    "StepStatus",
    "QualityMetrics",
    "StepError",
    "WorkflowRequest",
    "FeedbackEntry",
    "ConversationalContext",
    "WorkflowSession",
]
