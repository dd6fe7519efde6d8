"""Tests for artifact schemas and session state."""

import pytest

from src.errors import DataIntegrityError
from src.schemas.product import IdeaAnalysis, StoryPriority, UserStory
from src.schemas.session import (
    QualityMetrics,
    StepStatus,
    WorkflowRequest,
    WorkflowSession,
    WorkflowStep,
)
from src.schemas.sprint import Sprint, SprintLength, SprintPlan
from src.schemas.feedback import TargetStep
from tests.fakes import story


class TestCamelModel:
    """Tests for camelCase aliases."""

    def test_reads_both_spellings(self):
        camel = UserStory.model_validate(story("US-1", 3))
        snake = UserStory(id="US-1", title="Story US-1", story_points=3)

        assert camel.story_points == snake.story_points == 3

    def test_dumps_camel_case(self, idea_payload):
        data = IdeaAnalysis.model_validate(idea_payload).to_json_dict()

        assert data["refinedIdea"]["problemStatement"] == "Knowledge workers lose track of scattered notes"
        assert data["userPersonas"][0]["painPoints"] == ["Cannot find old notes"]

    def test_story_points_bounds(self):
        with pytest.raises(ValueError):
            UserStory.model_validate(story("US-1", 21))


class TestEnums:
    """Tests for enum helpers."""

    def test_story_priority_rank(self):
        ranks = [p.rank for p in (StoryPriority.CRITICAL, StoryPriority.HIGH, StoryPriority.MEDIUM, StoryPriority.LOW)]

        assert ranks == [4, 3, 2, 1]

    def test_sprint_length_weeks(self):
        assert [length.weeks for length in SprintLength] == [1, 2, 3, 4]

    def test_workflow_step_from_target(self):
        assert WorkflowStep.from_target(TargetStep.SPRINT_PLANNER) == WorkflowStep.SPRINT_PLANNING


class TestQualityMetrics:
    """Tests for QualityMetrics.recompute."""

    def test_skipped_steps_not_counted(self):
        metrics = QualityMetrics(per_step_status={
            WorkflowStep.IDEA: StepStatus.COMPLETED,
            WorkflowStep.USER_STORIES: StepStatus.COMPLETED,
            WorkflowStep.PRD: StepStatus.PENDING,
            WorkflowStep.SPRINT_PLANNING: StepStatus.SKIPPED,
            WorkflowStep.VISUAL_DESIGN: StepStatus.SKIPPED,
        })

        metrics.recompute()

        assert metrics.completion_percentage == pytest.approx(66.67)
        assert metrics.artifacts_generated == 2

    def test_all_skipped(self):
        metrics = QualityMetrics(per_step_status={WorkflowStep.VISUAL_DESIGN: StepStatus.SKIPPED})

        metrics.recompute()

        assert metrics.completion_percentage == 0.0


class TestSprintPlan:
    """Tests for SprintPlan.assert_references."""

    def test_unknown_story(self):
        plan = SprintPlan(sprints=[
            Sprint(id="sprint-1", number=1, name="Sprint 1", duration_weeks=2, user_stories=["US-1", "US-9"])
        ])

        with pytest.raises(DataIntegrityError) as exc_info:
            plan.assert_references({"US-1"})

        assert exc_info.value.unknown_ids == ["US-9"]

    def test_known_stories(self):
        plan = SprintPlan(sprints=[
            Sprint(id="sprint-1", number=1, name="Sprint 1", duration_weeks=2, user_stories=["US-1"])
        ])

        plan.assert_references({"US-1", "US-2"})


class TestWorkflowSession:
    """Tests for WorkflowSession."""

    def test_set_step_status_recomputes(self):
        session = WorkflowSession(session_id="s1", request=WorkflowRequest(raw_idea="Notes"))
        session.quality_metrics.per_step_status = {step: StepStatus.PENDING for step in (
            WorkflowStep.IDEA, WorkflowStep.USER_STORIES,
        )}

        session.set_step_status(WorkflowStep.IDEA, StepStatus.COMPLETED)

        assert session.quality_metrics.completion_percentage == 50.0
        assert session.step_status(WorkflowStep.PRD) == StepStatus.PENDING

    def test_snapshot(self, idea_payload):
        session = WorkflowSession(
            session_id="s1",
            request=WorkflowRequest(raw_idea="Notes"),
            idea_analysis=IdeaAnalysis.model_validate(idea_payload),
        )

        snapshot = session.snapshot()

        assert snapshot["sessionId"] == "s1"
        assert snapshot["productIdea"]["features"] == ["Smart tagging", "Semantic search"]
        assert "userStories" not in snapshot

    def test_request_defaults(self):
        request = WorkflowRequest.model_validate({"rawIdea": "Notes"})

        assert request.team_size == 4
        assert request.sprint_length == SprintLength.TWO_WEEKS
        assert request.total_sprints == 3
        assert request.enable_sprint_planning is True
        assert request.create_linear_project is False
