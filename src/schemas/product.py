"""Idea and user-story artifacts."""
import math
from enum import Enum
from typing import Optional

from pydantic import Field

from src.errors import DataIntegrityError
from src.schemas.base import CamelModel


class FeaturePriority(str, Enum):
    """Priority of a product feature."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class StoryPriority(str, Enum):
    """Priority of a user story."""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Higher rank is scheduled first."""
        return {"critical": 4, "high": 3, "medium": 2, "low": 1}[self.value]


# =============================================================================
# Idea generation
# =============================================================================


class Feature(CamelModel):
    """A product feature with acceptance criteria."""
    name: str = Field(min_length=1)
    description: str = ""
    acceptance_criteria: list[str] = Field(default_factory=list)
    priority: FeaturePriority = FeaturePriority.MEDIUM


class RefinedIdea(CamelModel):
    """Structured product concept derived from a raw idea."""
    title: str = Field(min_length=1, description="Short, catchy product name")
    description: str = ""
    problem_statement: str = Field(min_length=1)
    target_audience: str = Field(min_length=1)
    features: list[Feature] = Field(min_length=1)
    business_model: Optional[str] = None
    market_category: str = ""


class UserPersona(CamelModel):
    """Target user archetype."""
    name: str = Field(min_length=1)
    role: str = ""
    demographics: str = ""
    needs: list[str] = Field(default_factory=list)
    goals: list[str] = Field(default_factory=list)
    pain_points: list[str] = Field(default_factory=list)


class MarketValidation(CamelModel):
    similar_products: list[str] = Field(default_factory=list)
    unique_value_proposition: str = ""
    market_size: str = ""
    competitive_advantage: str = ""


class IdeaAnalysis(CamelModel):
    """Output of the idea generation step."""
    refined_idea: RefinedIdea
    user_personas: list[UserPersona] = Field(min_length=1)
    clarifying_questions: list[str] = Field(default_factory=list)
    market_validation: MarketValidation = Field(default_factory=MarketValidation)
    next_steps: list[str] = Field(default_factory=list)


# =============================================================================
# User stories
# =============================================================================


class UserStory(CamelModel):
    """As a <persona>, I want to <user_action> so that <benefit>."""
    id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    persona: str = ""
    user_action: str = ""
    benefit: str = ""
    acceptance_criteria: list[str] = Field(default_factory=list)
    priority: StoryPriority = StoryPriority.MEDIUM
    story_points: int = Field(ge=1, le=13)  # Fibonacci scale


class Epic(CamelModel):
    name: str
    description: str = ""
    stories: list[str] = Field(default_factory=list)  # Story ids


class StoryEstimate(CamelModel):
    story_points: int = 0
    estimated_sprints: int = 0


class UserStoryDraft(CamelModel):
    """User-story payload as produced by the model."""
    epics: list[Epic] = Field(default_factory=list)
    user_stories: list[UserStory] = Field(min_length=1)
    implementation_order: list[str] = Field(default_factory=list)
    mvp_stories: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)


class UserStoryAnalysis(UserStoryDraft):
    """Output of the user-story step, with computed estimate and readiness."""
    total_estimate: StoryEstimate = Field(default_factory=StoryEstimate)
    ready_for_next_step: bool = False

    @classmethod
    def from_draft(cls, draft: UserStoryDraft) -> "UserStoryAnalysis":
        """Build the analysis, recomputing totals from the stories themselves."""
        points = sum(story.story_points for story in draft.user_stories)
        analysis = cls(
            **draft.model_dump(),
            total_estimate=StoryEstimate(
                story_points=points,
                estimated_sprints=math.ceil(points / 20),
            ),
            ready_for_next_step=len(draft.user_stories) >= 5 and len(draft.mvp_stories) >= 3,
        )
        analysis.assert_references()
        return analysis

    def story_ids(self) -> set[str]:
        return {story.id for story in self.user_stories}

    def get_story(self, story_id: str) -> Optional[UserStory]:
        for story in self.user_stories:
            if story.id == story_id:
                return story
        return None

    def assert_references(self) -> None:
        """Check story ids are unique and every reference points at one.

        Raises:
            DataIntegrityError: Duplicate ids or unknown references.
        """
        seen: set[str] = set()
        duplicates = []
        for story in self.user_stories:
            if story.id in seen:
                duplicates.append(story.id)
            seen.add(story.id)
        if duplicates:
            raise DataIntegrityError("Duplicate user story ids", unknown_ids=duplicates)

        referenced = [sid for epic in self.epics for sid in epic.stories]
        referenced += self.implementation_order + self.mvp_stories
        unknown = sorted({sid for sid in referenced if sid not in seen})
        if unknown:
            raise DataIntegrityError(
                "User story analysis references unknown story ids",
                unknown_ids=unknown,
            )
