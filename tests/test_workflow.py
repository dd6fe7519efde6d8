"""Tests for the conversational workflow."""

import pytest
import pytest_asyncio

from src.errors import TransportError, ValidationError
from src.schemas.feedback import TargetStep
from src.schemas.session import (
    SessionStatus,
    StepStatus,
    WorkflowRequest,
    WorkflowStep,
)
from src.workflow.conversational import ConversationalWorkflow, merge_context
from src.workflow.session_store import SessionStore
from tests.fakes import FakeLLM, story


class RecordingLLM(FakeLLM):
    """Records the session's completion percentage before every model call."""

    def __init__(self, store: SessionStore, session_id: str):
        super().__init__()
        self.store = store
        self.session_id = session_id
        self.percentages: list[float] = []

    async def invoke(self, messages):
        session = self.store.get(self.session_id)
        if session is not None:
            self.percentages.append(session.quality_metrics.completion_percentage)
        return await super().invoke(messages)


@pytest.fixture
def store() -> SessionStore:
    return SessionStore()


@pytest.fixture
def workflow(services, store) -> ConversationalWorkflow:
    return ConversationalWorkflow(services, store)


@pytest.fixture
def core_request() -> WorkflowRequest:
    """Only the three core steps."""
    return WorkflowRequest(
        raw_idea="A note-taking app with AI features",
        enable_sprint_planning=False,
        enable_visual_design=False,
    )


@pytest.fixture
def queue_core(fake_llm, idea_payload, story_payload, prd_payload):
    def _queue():
        fake_llm.queue(idea_payload, story_payload, prd_payload)
    return _queue


class TestMergeContext:
    """Tests for merge_context."""

    def test_joins_non_empty_parts(self):
        assert merge_context("a", None, " ", "b ") == "a\n\nb"

    def test_all_empty(self):
        assert merge_context(None, "") is None


class TestWorkflowRun:
    """Tests for ConversationalWorkflow.run."""

    @pytest.mark.asyncio
    async def test_core_steps_only(self, workflow, store, core_request, queue_core):
        queue_core()

        session = await workflow.run(core_request)

        assert session.status == SessionStatus.COMPLETED
        assert session.current_step == WorkflowStep.DONE
        statuses = session.quality_metrics.per_step_status
        assert statuses[WorkflowStep.IDEA] == StepStatus.COMPLETED
        assert statuses[WorkflowStep.USER_STORIES] == StepStatus.COMPLETED
        assert statuses[WorkflowStep.PRD] == StepStatus.COMPLETED
        assert statuses[WorkflowStep.SPRINT_PLANNING] == StepStatus.SKIPPED
        assert statuses[WorkflowStep.VISUAL_DESIGN] == StepStatus.SKIPPED
        assert session.quality_metrics.completion_percentage == 100.0
        assert session.quality_metrics.artifacts_generated == 3
        assert session.prd_analysis.published is False
        assert session.sprint_analysis is None
        assert store.get(session.session_id) is session

    @pytest.mark.asyncio
    async def test_empty_idea_rejected(self, workflow, store):
        with pytest.raises(ValidationError) as exc_info:
            await workflow.run(WorkflowRequest(raw_idea="  "))

        assert exc_info.value.field == "rawIdea"
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_all_steps_with_miro(
        self,
        workflow,
        services,
        mock_miro,
        queue_core,
        fake_llm,
        sprint_insights_payload,
        visual_payload,
    ):
        services.miro = mock_miro
        queue_core()
        fake_llm.queue(sprint_insights_payload, visual_payload)

        session = await workflow.run(WorkflowRequest(raw_idea="A note-taking app"))

        assert session.status == SessionStatus.COMPLETED
        assert session.quality_metrics.completion_percentage == 100.0
        assert session.quality_metrics.artifacts_generated == 5
        assert session.sprint_analysis.sprints[0].goal == "Users can sign up and write notes"
        assert session.visual_analysis.board.board_id == "board-1"
        assert session.quality_metrics.integrations_used == ["miro"]
        assert TargetStep.VISUAL_DESIGN in session.conversational_context.can_iterate_on
        assert session.conversational_context.next_step_suggestions[0] == (
            "Review all generated artifacts with your team"
        )

    @pytest.mark.asyncio
    async def test_visual_skipped_without_miro(
        self, workflow, queue_core, fake_llm, sprint_insights_payload
    ):
        queue_core()
        fake_llm.queue(sprint_insights_payload)

        session = await workflow.run(WorkflowRequest(raw_idea="A note-taking app"))

        assert session.status == SessionStatus.COMPLETED
        assert session.step_status(WorkflowStep.VISUAL_DESIGN) == StepStatus.SKIPPED
        assert session.step_status(WorkflowStep.SPRINT_PLANNING) == StepStatus.COMPLETED
        assert session.quality_metrics.completion_percentage == 100.0
        assert session.visual_analysis is None

    @pytest.mark.asyncio
    async def test_failure_keeps_earlier_artifacts(
        self, workflow, core_request, fake_llm, idea_payload, story_payload
    ):
        fake_llm.queue(idea_payload, story_payload, TransportError("gemini", "connection reset"))

        session = await workflow.run(core_request)

        assert session.status == SessionStatus.FAILED
        assert session.current_step == WorkflowStep.PRD
        assert session.error.step == WorkflowStep.PRD
        assert session.error.code == "TRANSPORT_ERROR"
        assert "connection reset" in session.error.message
        assert session.idea_analysis is not None
        assert session.user_story_analysis is not None
        assert session.prd_analysis is None
        assert session.step_status(WorkflowStep.PRD) == StepStatus.FAILED
        assert session.quality_metrics.completion_percentage == pytest.approx(66.67)

    @pytest.mark.asyncio
    async def test_unexpected_error_recorded(self, workflow, core_request, fake_llm):
        fake_llm.queue(RuntimeError("boom"))

        session = await workflow.run(core_request)

        assert session.status == SessionStatus.FAILED
        assert session.error.code == "INTERNAL_ERROR"
        assert session.error.message == "boom"

    @pytest.mark.asyncio
    async def test_completion_never_decreases(
        self, services, store, idea_payload, story_payload, prd_payload, sprint_insights_payload
    ):
        llm = RecordingLLM(store, "session-progress")
        llm.queue(idea_payload, story_payload, prd_payload, sprint_insights_payload)
        services.llm = llm
        workflow = ConversationalWorkflow(services, store)

        session = await workflow.run(
            WorkflowRequest(raw_idea="A note-taking app", session_id="session-progress")
        )

        progress = llm.percentages + [session.quality_metrics.completion_percentage]
        assert progress == sorted(progress)
        assert progress[0] == 0.0
        assert progress[-1] == 100.0

    @pytest.mark.asyncio
    async def test_duplicate_session_id_rejected(
        self, workflow, store, core_request, queue_core, fake_llm
    ):
        queue_core()
        first = await workflow.run(core_request.model_copy(update={"session_id": "session-dup"}))
        calls_before = len(fake_llm.calls)

        with pytest.raises(ValidationError) as exc_info:
            await workflow.run(WorkflowRequest(raw_idea="Another idea", session_id="session-dup"))

        assert exc_info.value.field == "sessionId"
        assert store.get("session-dup") is first
        assert len(fake_llm.calls) == calls_before


class TestFeedback:
    """Tests for feedback routing and re-runs."""

    @pytest_asyncio.fixture
    async def completed_session(self, workflow, core_request, queue_core):
        queue_core()
        return await workflow.run(core_request)

    @pytest.mark.asyncio
    async def test_approval_required_holds_decision(
        self, workflow, fake_llm, completed_session, routing_payload
    ):
        fake_llm.queue(routing_payload)

        entry = await workflow.submit_feedback(completed_session, "Add social sharing features")

        assert entry.applied is False
        assert entry.decision.target_step == TargetStep.IDEA_GENERATION
        assert entry.decision.confidence == 0.85
        assert completed_session.pending_decision == entry.decision
        assert completed_session.status == SessionStatus.WAITING_FOR_FEEDBACK
        assert completed_session.iteration_count == 0
        assert len(completed_session.feedback_history) == 1
        assert "NoteMind" in fake_llm.last_prompt

    @pytest.mark.asyncio
    async def test_confirm_reruns_from_target(
        self, workflow, fake_llm, completed_session, routing_payload, queue_core
    ):
        fake_llm.queue(routing_payload)
        await workflow.submit_feedback(completed_session, "Add social sharing features")
        queue_core()

        session = await workflow.confirm_pending(completed_session)

        assert session.pending_decision is None
        assert session.status == SessionStatus.COMPLETED
        assert session.iteration_count == 1
        assert session.feedback_history[0].applied is True
        # Feedback is passed to the idea step only
        idea_prompt = fake_llm.calls[-3][-1].content
        assert "Add social sharing features" in idea_prompt

    @pytest.mark.asyncio
    async def test_confirm_without_pending(self, workflow, completed_session):
        with pytest.raises(ValidationError) as exc_info:
            await workflow.confirm_pending(completed_session)

        assert exc_info.value.field == "pendingDecision"

    @pytest.mark.asyncio
    async def test_immediate_rerun(self, workflow, fake_llm, completed_session, prd_payload):
        prd_payload["title"] = "NoteMind PRD v2"
        fake_llm.queue(
            {"targetAgent": "prd", "confidence": 0.9, "requiresApproval": False},
            prd_payload,
        )

        entry = await workflow.submit_feedback(completed_session, "Add a pricing section")

        assert entry.applied is True
        assert completed_session.prd_analysis.prd.title == "NoteMind PRD v2"
        assert completed_session.iteration_count == 1
        assert completed_session.status == SessionStatus.COMPLETED
        assert "Add a pricing section" in fake_llm.last_prompt

    @pytest.mark.asyncio
    async def test_rerun_enables_skipped_step(
        self, workflow, fake_llm, completed_session, sprint_insights_payload
    ):
        fake_llm.queue(
            {"targetAgent": "sprint_planning", "confidence": 0.8, "requiresApproval": False},
            sprint_insights_payload,
        )

        entry = await workflow.submit_feedback(completed_session, "Plan the sprints please")

        assert entry.decision.target_step == TargetStep.SPRINT_PLANNER
        assert completed_session.request.enable_sprint_planning is True
        assert completed_session.sprint_analysis is not None
        assert completed_session.step_status(WorkflowStep.SPRINT_PLANNING) == StepStatus.COMPLETED
        assert completed_session.quality_metrics.completion_percentage == 100.0

    @pytest.mark.asyncio
    async def test_unknown_target_is_noop(self, workflow, fake_llm, completed_session):
        fake_llm.queue({"targetAgent": "marketing-agent", "confidence": 0.6, "requiresApproval": False})
        calls_before = len(fake_llm.calls)

        entry = await workflow.submit_feedback(completed_session, "Make a launch video")

        assert entry.decision.target_step is None
        assert entry.decision.raw_target == "marketing-agent"
        assert "marketing-agent" in entry.decision.notice
        assert entry.applied is False
        assert completed_session.pending_decision is None
        assert completed_session.status == SessionStatus.COMPLETED
        assert completed_session.iteration_count == 0
        assert len(fake_llm.calls) == calls_before + 1

    @pytest.mark.asyncio
    async def test_feedback_recovers_failed_session(
        self, workflow, core_request, fake_llm, idea_payload, story_payload, prd_payload
    ):
        fake_llm.queue(idea_payload, story_payload, RuntimeError("model unavailable"))
        session = await workflow.run(core_request)
        fake_llm.queue(
            {"targetAgent": "prd", "confidence": 0.9, "requiresApproval": False},
            prd_payload,
        )

        await workflow.submit_feedback(session, "Try the PRD again")

        assert session.status == SessionStatus.COMPLETED
        assert session.error is None
        assert session.prd_analysis is not None
        assert session.quality_metrics.completion_percentage == 100.0

    @pytest.mark.asyncio
    async def test_rerun_from(self, workflow, fake_llm, completed_session, story_payload, prd_payload):
        fake_llm.queue(story_payload, prd_payload)

        session = await workflow.rerun_from(completed_session, TargetStep.USER_STORY, "Focus on mobile")

        assert session.iteration_count == 1
        assert "Focus on mobile" in fake_llm.calls[-2][-1].content
        assert "Focus on mobile" not in fake_llm.calls[-1][-1].content


class TestRerunResetsLaterSteps:
    """Re-running a step never leaves artifacts built from replaced ids."""

    @pytest_asyncio.fixture
    async def planned_session(
        self, workflow, fake_llm, idea_payload, story_payload, prd_payload, sprint_insights_payload
    ):
        fake_llm.queue(idea_payload, story_payload, prd_payload, sprint_insights_payload)
        return await workflow.run(WorkflowRequest(raw_idea="A note-taking app with AI features"))

    @pytest.mark.asyncio
    async def test_failed_rerun_drops_stale_sprint_plan(self, workflow, fake_llm, planned_session):
        assert planned_session.step_status(WorkflowStep.SPRINT_PLANNING) == StepStatus.COMPLETED
        fake_llm.queue(
            {"userStories": [story("NEW-1", 3, "high"), story("NEW-2", 2)]},
            "not a prd",
            "still not a prd",
        )

        session = await workflow.rerun_from(planned_session, TargetStep.USER_STORY)

        assert session.status == SessionStatus.FAILED
        assert session.error.step == WorkflowStep.PRD
        assert session.error.details["raw_text"] == "still not a prd"
        assert session.user_story_analysis.story_ids() == {"NEW-1", "NEW-2"}
        assert session.prd_analysis is None
        assert session.sprint_analysis is None
        assert session.step_status(WorkflowStep.USER_STORIES) == StepStatus.COMPLETED
        assert session.step_status(WorkflowStep.PRD) == StepStatus.FAILED
        assert session.step_status(WorkflowStep.SPRINT_PLANNING) == StepStatus.PENDING
        assert session.step_status(WorkflowStep.VISUAL_DESIGN) == StepStatus.SKIPPED
        assert session.quality_metrics.completion_percentage == 50.0

    @pytest.mark.asyncio
    async def test_sprint_plan_references_current_stories(
        self, workflow, fake_llm, planned_session, prd_payload, sprint_insights_payload
    ):
        fake_llm.queue(
            {"userStories": [story("NEW-1", 3, "high"), story("NEW-2", 2)]},
            prd_payload,
            sprint_insights_payload,
        )

        session = await workflow.rerun_from(planned_session, TargetStep.USER_STORY)

        assert session.status == SessionStatus.COMPLETED
        referenced = {
            story_id for sprint in session.sprint_analysis.sprints for story_id in sprint.user_stories
        }
        assert referenced == {"NEW-1", "NEW-2"}
        assert session.quality_metrics.completion_percentage == 100.0

    @pytest.mark.asyncio
    async def test_rerun_keeps_earlier_artifacts(self, workflow, fake_llm, planned_session):
        idea = planned_session.idea_analysis
        stories = planned_session.user_story_analysis
        fake_llm.queue(RuntimeError("model unavailable"))

        session = await workflow.rerun_from(planned_session, TargetStep.SPRINT_PLANNER)

        assert session.idea_analysis is idea
        assert session.user_story_analysis is stories
        assert session.prd_analysis is not None
        assert session.step_status(WorkflowStep.SPRINT_PLANNING) == StepStatus.FAILED
        assert session.quality_metrics.completion_percentage == 75.0
