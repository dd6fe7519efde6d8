"""Single-step agent routes: /api/agents/*.

Each route runs one step in isolation on the artifacts supplied in the
request body. The primary field of each route must be non-empty.
"""
from typing import Any, Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from src.api.dependencies import get_services, get_sessions, handle, require
from src.api.envelope import confidence_from_attempts, success_response
from src.errors import ValidationError
from src.schemas.feedback import TargetStep
from src.schemas.product import IdeaAnalysis, RefinedIdea, UserPersona, UserStory
from src.schemas.sprint import SprintLength
from src.steps.base import StepRun
from src.steps.idea import IdeaInput
from src.steps.prd import PRDInput
from src.steps.sprint_planning import SprintPlanningInput
from src.steps.user_stories import UserStoryInput
from src.steps.visual_design import VisualDesignInput

router = APIRouter(prefix="/api/agents", tags=["agents"])

DEFAULT_TEAM_SIZE = 4
DEFAULT_TOTAL_SPRINTS = 3


# =============================================================================
# Body helpers
# =============================================================================


def parse_product_idea(body: dict[str, Any]) -> tuple[RefinedIdea, list[UserPersona]]:
    """Accept either a refined idea or a full idea analysis as ``productIdea``."""
    raw = require(body, "productIdea")
    if isinstance(raw, dict) and "refinedIdea" in raw:
        analysis = IdeaAnalysis.model_validate(raw)
        return analysis.refined_idea, analysis.user_personas
    return RefinedIdea.model_validate(raw), []


def parse_personas(body: dict[str, Any], fallback: list[UserPersona]) -> list[UserPersona]:
    raw = body.get("userPersonas")
    if not raw:
        return fallback
    return [UserPersona.model_validate(p) for p in raw]


def parse_stories(raw: Optional[list[Any]]) -> list[UserStory]:
    return [UserStory.model_validate(s) for s in raw or []]


def parse_sprint_length(value: Any) -> SprintLength:
    if not value:
        return SprintLength.TWO_WEEKS
    try:
        return SprintLength(value)
    except ValueError:
        allowed = ", ".join(length.value for length in SprintLength)
        raise ValidationError("sprintLength", f"sprintLength must be one of: {allowed}")


def context_of(body: dict[str, Any]) -> Optional[str]:
    """``context`` or ``additionalContext``, when it is text."""
    value = body.get("additionalContext") or body.get("context")
    return value if isinstance(value, str) else None


def respond(agent_type: TargetStep, run: StepRun, started: float, session_id: str) -> JSONResponse:
    return success_response(
        agent_type.value,
        run.output,
        started,
        session_id,
        confidence=confidence_from_attempts(run.attempts),
        usage=run.usage,
        tool_calls=run.tool_calls or None,
    )


# =============================================================================
# Routes
# =============================================================================


@router.post("/idea-generation")
async def idea_generation(request: Request) -> JSONResponse:
    """Refine a raw idea: ``{message, context?, sessionId?}``."""
    services = get_services(request)

    async def run(body: dict[str, Any], started: float, session_id: str) -> JSONResponse:
        message = require(body, "message")
        result = await services.idea_step().run(
            IdeaInput(raw_idea=str(message), additional_context=context_of(body))
        )
        return respond(TargetStep.IDEA_GENERATION, result, started, session_id)

    return await handle(TargetStep.IDEA_GENERATION.value, request, run)


@router.post("/user-story")
async def user_story(request: Request) -> JSONResponse:
    """Stories for an idea: ``{productIdea, userPersonas?, focusAreas?, context?}``."""
    services = get_services(request)

    async def run(body: dict[str, Any], started: float, session_id: str) -> JSONResponse:
        idea, personas = parse_product_idea(body)
        result = await services.user_story_step().run(
            UserStoryInput(
                refined_idea=idea,
                user_personas=parse_personas(body, personas),
                additional_context=context_of(body),
                focus_areas=body.get("focusAreas") or [],
            )
        )
        return respond(TargetStep.USER_STORY, result, started, session_id)

    return await handle(TargetStep.USER_STORY.value, request, run)


@router.post("/prd")
async def prd(request: Request) -> JSONResponse:
    """PRD for an idea and its stories: ``{productIdea, userStories, ...}``."""
    services = get_services(request)

    async def run(body: dict[str, Any], started: float, session_id: str) -> JSONResponse:
        idea, personas = parse_product_idea(body)
        stories = parse_stories(require(body, "userStories"))
        result = await services.prd_step().run(
            PRDInput(
                refined_idea=idea,
                user_personas=parse_personas(body, personas),
                user_stories=stories,
                additional_context=context_of(body),
                notion_database_id=body.get("notionDatabaseId"),
                publish=body.get("publish", True),
            )
        )
        return respond(TargetStep.PRD, result, started, session_id)

    return await handle(TargetStep.PRD.value, request, run)


@router.post("/sprint-planner")
async def sprint_planner(request: Request) -> JSONResponse:
    """Sprint plan for stories: ``{userStories, teamSize?, sprintLength?, ...}``."""
    services = get_services(request)

    async def run(body: dict[str, Any], started: float, session_id: str) -> JSONResponse:
        stories = parse_stories(require(body, "userStories"))
        title, features = "", []
        if body.get("productIdea"):
            idea, _ = parse_product_idea(body)
            title, features = idea.title, idea.features
        result = await services.sprint_step().run(
            SprintPlanningInput(
                product_title=body.get("productTitle") or title,
                features=features,
                user_stories=stories,
                team_size=body.get("teamSize", DEFAULT_TEAM_SIZE),
                sprint_length=parse_sprint_length(body.get("sprintLength")),
                total_sprints=body.get("totalSprints", DEFAULT_TOTAL_SPRINTS),
                create_linear_project=bool(body.get("createLinearProject", False)),
                linear_team_id=body.get("linearTeamId"),
                additional_context=context_of(body),
            )
        )
        return respond(TargetStep.SPRINT_PLANNER, result, started, session_id)

    return await handle(TargetStep.SPRINT_PLANNER.value, request, run)


@router.post("/visual-design")
async def visual_design(request: Request) -> JSONResponse:
    """Miro board for an idea: ``{productIdea, userPersonas?, userStories?}``."""
    services = get_services(request)

    async def run(body: dict[str, Any], started: float, session_id: str) -> JSONResponse:
        idea, personas = parse_product_idea(body)
        result = await services.visual_step().run(
            VisualDesignInput(
                product_title=idea.title,
                features=idea.features,
                user_personas=parse_personas(body, personas),
                user_stories=parse_stories(body.get("userStories")),
                additional_context=context_of(body),
            )
        )
        return respond(TargetStep.VISUAL_DESIGN, result, started, session_id)

    return await handle(TargetStep.VISUAL_DESIGN.value, request, run)


@router.post("/feedback")
async def feedback(request: Request) -> JSONResponse:
    """Route feedback: ``{message, sessionId?, context?}``.

    The snapshot comes from the stored session when ``sessionId`` names one,
    otherwise from ``context`` when it is an object.
    """
    services = get_services(request)
    sessions = get_sessions(request)

    async def run(body: dict[str, Any], started: float, session_id: str) -> JSONResponse:
        message = require(body, "message")
        session = sessions.get(session_id)
        if session is not None:
            snapshot = session.snapshot()
        else:
            snapshot = body.get("context") if isinstance(body.get("context"), dict) else {}

        decision, structured = await services.feedback_router().route(str(message), snapshot)
        return success_response(
            "feedback",
            decision,
            started,
            session_id,
            confidence=decision.confidence,
            usage=structured.usage,
            tool_calls=structured.tool_calls or None,
        )

    return await handle("feedback", request, run)
