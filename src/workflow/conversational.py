"""Conversational product workflow.

Runs idea -> user stories -> PRD -> (sprint planning) -> (visual design)
over one session and lets feedback send the session back to any step.

Flow:
1. ``run`` creates a session, marks disabled optional steps as skipped and
   executes the remaining steps strictly in order.
2. A step that raises stops the run; the error is recorded on the session
   and earlier artifacts are kept.
3. ``submit_feedback`` routes feedback to a step. Decisions that need
   approval wait in ``pending_decision`` until ``confirm_pending``;
   the rest re-run immediately.
"""
from typing import Optional

import structlog

from src.errors import ValidationError
from src.schemas.feedback import TargetStep
from src.schemas.session import (
    STEP_ORDER,
    ConversationalContext,
    FeedbackEntry,
    SessionStatus,
    StepError,
    StepStatus,
    WorkflowRequest,
    WorkflowSession,
    WorkflowStep,
)
from src.steps.idea import IdeaInput
from src.steps.prd import PRDInput
from src.steps.sprint_planning import SprintPlanningInput
from src.steps.user_stories import UserStoryInput
from src.steps.visual_design import VisualDesignInput
from src.workflow.services import Services
from src.workflow.session_store import SessionStore, new_session_id

logger = structlog.get_logger()

STEP_ARTIFACTS = {
    WorkflowStep.IDEA: "idea_analysis",
    WorkflowStep.USER_STORIES: "user_story_analysis",
    WorkflowStep.PRD: "prd_analysis",
    WorkflowStep.SPRINT_PLANNING: "sprint_analysis",
    WorkflowStep.VISUAL_DESIGN: "visual_analysis",
}

STEP_TARGETS = {
    WorkflowStep.IDEA: TargetStep.IDEA_GENERATION,
    WorkflowStep.USER_STORIES: TargetStep.USER_STORY,
    WorkflowStep.PRD: TargetStep.PRD,
    WorkflowStep.SPRINT_PLANNING: TargetStep.SPRINT_PLANNER,
    WorkflowStep.VISUAL_DESIGN: TargetStep.VISUAL_DESIGN,
}


def merge_context(*parts: Optional[str]) -> Optional[str]:
    joined = "\n\n".join(p.strip() for p in parts if p and p.strip())
    return joined or None


class ConversationalWorkflow:
    """Drives workflow sessions stored in a ``SessionStore``."""

    def __init__(self, services: Services, store: SessionStore):
        self.services = services
        self.store = store

    # -------------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------------

    def start_session(self, request: WorkflowRequest) -> WorkflowSession:
        """Create and store a new session with initial step statuses.

        Raises:
            ValidationError: A session with the requested id already exists.
        """
        if request.session_id and request.session_id in self.store:
            raise ValidationError("sessionId", f"Session {request.session_id} already exists")
        session = WorkflowSession(
            session_id=request.session_id or new_session_id(),
            request=request,
        )
        for step in STEP_ORDER:
            status = StepStatus.SKIPPED if not self._enabled(session, step) else StepStatus.PENDING
            session.quality_metrics.per_step_status[step] = status
        session.quality_metrics.recompute()
        self.store.save(session)
        logger.info("session_started", session_id=session.session_id)
        return session

    async def run(self, request: WorkflowRequest) -> WorkflowSession:
        """Start a session and run every enabled step.

        Raises:
            ValidationError: The raw idea is empty or the session id is taken.
        """
        if not request.raw_idea.strip():
            raise ValidationError("rawIdea")
        session = self.start_session(request)
        async with self.store.lock(session.session_id):
            await self._execute(session, WorkflowStep.IDEA)
        return session

    async def submit_feedback(self, session: WorkflowSession, feedback: str) -> FeedbackEntry:
        """Route feedback and either re-run the target or hold it for approval.

        Unknown targets leave the session untouched apart from the history
        entry, whose decision carries the notice.
        """
        async with self.store.lock(session.session_id):
            decision, _ = await self.services.feedback_router().route(feedback, session.snapshot())
            entry = FeedbackEntry(feedback=feedback.strip(), decision=decision)
            session.feedback_history.append(entry)

            if not decision.is_actionable:
                logger.info("feedback_not_actionable", session_id=session.session_id)
            elif decision.requires_approval:
                session.pending_decision = decision
                session.status = SessionStatus.WAITING_FOR_FEEDBACK
                logger.info(
                    "feedback_awaiting_approval",
                    session_id=session.session_id,
                    target=decision.target_step.value,
                )
            else:
                entry.applied = True
                session.pending_decision = None
                await self._rerun(session, decision.target_step, feedback)
            self.store.save(session)
            return entry

    async def confirm_pending(self, session: WorkflowSession) -> WorkflowSession:
        """Apply the decision waiting for approval.

        Raises:
            ValidationError: Nothing is pending.
        """
        async with self.store.lock(session.session_id):
            decision = session.pending_decision
            if decision is None or decision.target_step is None:
                raise ValidationError("pendingDecision", "No feedback decision is awaiting approval")

            feedback = None
            for entry in reversed(session.feedback_history):
                if not entry.applied and entry.decision == decision:
                    entry.applied = True
                    feedback = entry.feedback
                    break

            session.pending_decision = None
            await self._rerun(session, decision.target_step, feedback)
            self.store.save(session)
            return session

    async def rerun_from(
        self,
        session: WorkflowSession,
        target: TargetStep,
        additional_context: Optional[str] = None,
    ) -> WorkflowSession:
        """Re-run ``target`` with extra context and every step after it."""
        async with self.store.lock(session.session_id):
            await self._rerun(session, target, additional_context)
            self.store.save(session)
            return session

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    async def _rerun(
        self,
        session: WorkflowSession,
        target: TargetStep,
        additional_context: Optional[str],
    ) -> None:
        step = WorkflowStep.from_target(target)
        if step == WorkflowStep.SPRINT_PLANNING:
            session.request.enable_sprint_planning = True
        elif step == WorkflowStep.VISUAL_DESIGN:
            session.request.enable_visual_design = True

        session.iteration_count += 1
        session.error = None
        logger.info(
            "session_rerun",
            session_id=session.session_id,
            target=target.value,
            iteration=session.iteration_count,
        )
        self._reset_from(session, step)
        await self._execute(session, step, feedback_context=additional_context)

    async def _execute(
        self,
        session: WorkflowSession,
        start: WorkflowStep,
        feedback_context: Optional[str] = None,
    ) -> None:
        session.status = SessionStatus.RUNNING
        for step in STEP_ORDER[STEP_ORDER.index(start):]:
            if not self._enabled(session, step):
                session.set_step_status(step, StepStatus.SKIPPED)
                continue

            session.current_step = step
            context = session.request.additional_context
            if step == start:
                context = merge_context(context, feedback_context)

            try:
                await self._run_step(session, step, context)
            except Exception as e:
                session.error = StepError(
                    step=step,
                    code=getattr(e, "code", "INTERNAL_ERROR"),
                    message=getattr(e, "message", None) or str(e),
                    details=getattr(e, "details", {}),
                )
                session.status = SessionStatus.FAILED
                session.set_step_status(step, StepStatus.FAILED)
                self._update_context(session)
                logger.error(
                    "step_failed",
                    session_id=session.session_id,
                    step=step.value,
                    error_code=session.error.code,
                    error=session.error.message,
                )
                return

            session.set_step_status(step, StepStatus.COMPLETED)

        session.current_step = WorkflowStep.DONE
        session.status = SessionStatus.COMPLETED
        self._update_context(session)
        logger.info(
            "session_completed",
            session_id=session.session_id,
            completion=session.quality_metrics.completion_percentage,
        )

    async def _run_step(
        self, session: WorkflowSession, step: WorkflowStep, context: Optional[str]
    ) -> None:
        request = session.request
        idea = session.idea_analysis
        refined = idea.refined_idea if idea else None
        personas = idea.user_personas if idea else []
        stories = session.user_story_analysis.user_stories if session.user_story_analysis else []

        if step == WorkflowStep.IDEA:
            run = await self.services.idea_step().run(
                IdeaInput(raw_idea=request.raw_idea, additional_context=context)
            )
            session.idea_analysis = run.output
            if self.services.knowledge is not None:
                self._used(session, "pinecone")

        elif step == WorkflowStep.USER_STORIES:
            run = await self.services.user_story_step().run(
                UserStoryInput(refined_idea=refined, user_personas=personas, additional_context=context)
            )
            session.user_story_analysis = run.output

        elif step == WorkflowStep.PRD:
            run = await self.services.prd_step().run(
                PRDInput(
                    refined_idea=refined,
                    user_personas=personas,
                    user_stories=stories,
                    additional_context=context,
                )
            )
            session.prd_analysis = run.output
            if run.output.published:
                self._used(session, "notion")

        elif step == WorkflowStep.SPRINT_PLANNING:
            run = await self.services.sprint_step().run(
                SprintPlanningInput(
                    product_title=refined.title if refined else "",
                    features=refined.features if refined else [],
                    user_stories=stories,
                    team_size=request.team_size,
                    sprint_length=request.sprint_length,
                    total_sprints=request.total_sprints,
                    create_linear_project=request.create_linear_project,
                    linear_team_id=request.linear_team_id,
                    additional_context=context,
                )
            )
            session.sprint_analysis = run.output
            if run.output.linear_integration.enabled:
                self._used(session, "linear")

        elif step == WorkflowStep.VISUAL_DESIGN:
            run = await self.services.visual_step().run(
                VisualDesignInput(
                    product_title=refined.title if refined else "",
                    features=refined.features if refined else [],
                    user_personas=personas,
                    user_stories=stories,
                    additional_context=context,
                )
            )
            session.visual_analysis = run.output
            self._used(session, "miro")

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _reset_from(self, session: WorkflowSession, step: WorkflowStep) -> None:
        """Reset ``step`` and every later step; artifacts after ``step`` are discarded."""
        index = STEP_ORDER.index(step)
        for later in STEP_ORDER[index + 1:]:
            setattr(session, STEP_ARTIFACTS[later], None)
        for later in STEP_ORDER[index:]:
            status = StepStatus.PENDING if self._enabled(session, later) else StepStatus.SKIPPED
            session.quality_metrics.per_step_status[later] = status
        session.quality_metrics.recompute()

    def _enabled(self, session: WorkflowSession, step: WorkflowStep) -> bool:
        request = session.request
        if step == WorkflowStep.SPRINT_PLANNING:
            return request.enable_sprint_planning
        if step == WorkflowStep.VISUAL_DESIGN:
            # Without a board to draw on the step is skipped, not failed
            return request.enable_visual_design and self.services.miro is not None
        return True

    @staticmethod
    def _used(session: WorkflowSession, integration: str) -> None:
        if integration not in session.quality_metrics.integrations_used:
            session.quality_metrics.integrations_used.append(integration)

    def _update_context(self, session: WorkflowSession) -> None:
        completed = [
            step for step in STEP_ORDER if session.step_status(step) == StepStatus.COMPLETED
        ]
        enabled = [step for step in STEP_ORDER if self._enabled(session, step)]

        actions = ["refine_idea", "modify_user_stories", "update_prd"]
        if session.request.enable_sprint_planning:
            actions.append("adjust_sprints")
        if session.request.enable_visual_design:
            actions.append("update_visuals")
        actions += ["restart_workflow", "export_artifacts"]

        if session.status == SessionStatus.FAILED:
            suggestions = [
                f"Fix the {session.error.step.value} error and resubmit feedback to retry",
                "Provide clarifying details to improve output quality",
            ]
        elif WorkflowStep.VISUAL_DESIGN in completed:
            suggestions = [
                "Review all generated artifacts with your team",
                "Begin development with Sprint 1 tasks",
                "Share the Miro board with stakeholders for feedback",
            ]
        elif WorkflowStep.SPRINT_PLANNING in completed:
            suggestions = [
                "Review sprint plan with development team",
                "Begin Sprint 1 with a team kickoff meeting",
            ]
        elif WorkflowStep.PRD in completed:
            suggestions = [
                "Review the PRD with stakeholders",
                "Enable sprint planning to build a development timeline",
            ]
        else:
            suggestions = [
                "Continue with the next step in the workflow",
                "Provide feedback to refine current results",
            ]

        session.conversational_context = ConversationalContext(
            available_actions=actions,
            can_iterate_on=[STEP_TARGETS[step] for step in completed if step in enabled],
            next_step_suggestions=suggestions,
        )
