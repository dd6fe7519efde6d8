"""The five workflow steps."""

from src.steps.base import AgentStep, StepRun
from src.steps.idea import IdeaGenerationStep, IdeaInput
from src.steps.prd import PRDGenerationStep, PRDInput
from src.steps.sprint_planning import (
    SprintPlanningInput,
    SprintPlanningStep,
    allocate_sprints,
)
from src.steps.user_stories import UserStoryGenerationStep, UserStoryInput
from src.steps.visual_design import VisualDesignInput, VisualDesignStep

__all__ = [
    "AgentStep",
    "StepRun",
    "IdeaGenerationStep",
    "IdeaInput",
    "UserStoryGenerationStep",
    "UserStoryInput",
    "PRDGenerationStep",
    "PRDInput",
    "SprintPlanningStep",
    "SprintPlanningInput",
    "allocate_sprints",
    "VisualDesignStep",
    "VisualDesignInput",
]
