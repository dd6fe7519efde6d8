"""Route free-text feedback to the step that should handle it."""
import json
from typing import Any

import structlog

from src.errors import UnknownRoutingTarget, ValidationError
from src.llm.structured import ChatModel, StructuredResult, generate_structured
from src.schemas.feedback import FeedbackDecision, RoutingPayload, TargetStep

logger = structlog.get_logger()

ROUTER_SYSTEM = """You are the workflow navigator for a product development assistant.
Users give feedback on artifacts produced by five specialised steps:

- idea-generation: product concept, features, personas, market validation
- user-story: user stories, epics, acceptance criteria, estimates, MVP scope
- prd: the product requirements document and its sections
- sprint-planner: sprint allocation, timeline, team capacity, Linear tracking
- visual-design: user journeys, process flows, the Miro board

Pick the single step whose artifact the feedback is about. Set requiresApproval
to false only when the feedback is an unambiguous, low-risk request; anything
that rewrites the product concept or discards work needs approval."""

ROUTER_TEMPLATE = """Feedback from the user:
"{feedback}"

Current session:
{snapshot}

Decide which step should handle this feedback, how confident you are (0 to 1),
why, and what the step should do differently."""


class FeedbackRouter:
    """One model call that turns feedback into a ``FeedbackDecision``."""

    def __init__(self, llm: ChatModel, structured_output_retries: int = 1):
        self.llm = llm
        self.structured_output_retries = structured_output_retries

    async def route(
        self, feedback: str, snapshot: dict[str, Any]
    ) -> tuple[FeedbackDecision, StructuredResult[RoutingPayload]]:
        """Classify feedback against the session snapshot.

        An unrecognised target never raises; it yields a decision with no
        target step that needs approval and carries a notice.

        Raises:
            ValidationError: Feedback is empty.
            MalformedAgentResponse: The model never produced a valid payload.
        """
        if not feedback or not feedback.strip():
            raise ValidationError("message")

        prompt = ROUTER_TEMPLATE.format(
            feedback=feedback.strip(),
            snapshot=json.dumps(snapshot, indent=2, default=str),
        )
        structured = await generate_structured(
            self.llm,
            RoutingPayload,
            prompt,
            system_message=ROUTER_SYSTEM,
            max_retries=self.structured_output_retries,
        )
        decision = to_decision(structured.payload)
        logger.info(
            "feedback_routed",
            target=decision.target_step.value if decision.target_step else None,
            raw_target=decision.raw_target,
            confidence=decision.confidence,
            requires_approval=decision.requires_approval,
        )
        return decision, structured


def to_decision(payload: RoutingPayload) -> FeedbackDecision:
    """Normalise the model's target name; unknown names become a no-op."""
    target = TargetStep.normalize(payload.target_agent)
    if target is None:
        notice = UnknownRoutingTarget(payload.target_agent).message
        logger.warning("unknown_routing_target", raw_target=payload.target_agent)
        return FeedbackDecision(
            target_step=None,
            confidence=payload.confidence,
            reasoning=payload.reasoning,
            suggested_action=payload.suggested_action,
            requires_approval=True,
            raw_target=payload.target_agent,
            notice=notice,
        )
    return FeedbackDecision(
        target_step=target,
        confidence=payload.confidence,
        reasoning=payload.reasoning,
        suggested_action=payload.suggested_action,
        requires_approval=payload.requires_approval,
        raw_target=payload.target_agent,
    )
