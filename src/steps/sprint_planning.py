"""Sprint planning step with optional Linear cycles and issues.

Story allocation is deterministic: capacity per sprint is
team_size * 8 points per two weeks, stories are taken by priority (highest
first) then size (smallest first) and packed greedily. The model only
writes goals, deliverables and risks for sprints that already exist.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import structlog
from pydantic import Field

from src.errors import ConfigurationError
from src.integrations.batch import run_batch
from src.integrations.linear import PRIORITY_MAP, LinearClient
from src.llm.structured import ChatModel, StructuredResult
from src.schemas.base import CamelModel
from src.schemas.feedback import TargetStep
from src.schemas.product import Feature, FeaturePriority, UserStory
from src.schemas.sprint import (
    LinearCycleRef,
    LinearIntegration,
    LinearIssueRef,
    Sprint,
    SprintInsights,
    SprintLength,
    SprintPlan,
    SprintSummary,
    SprintTask,
)
from src.steps.base import AgentStep
from src.steps.prompts import SPRINT_SYSTEM, SPRINT_TEMPLATE, render_context

logger = structlog.get_logger()

POINTS_PER_DEVELOPER = 8  # per two-week sprint
HOURS_PER_POINT = 6

DEFAULT_GOALS = {
    1: "Establish core foundation and implement critical user flows",
    2: "Build primary features and user experience",
}
DEFAULT_LATER_GOAL = "Polish, optimize, and prepare for launch"


class SprintPlanningInput(CamelModel):
    product_title: str = ""
    features: list[Feature] = Field(default_factory=list)
    user_stories: list[UserStory] = Field(default_factory=list)
    team_size: Optional[int] = Field(default=None, ge=1)
    sprint_length: Optional[SprintLength] = None
    total_sprints: Optional[int] = Field(default=None, ge=1)
    create_linear_project: bool = False
    linear_team_id: Optional[str] = None
    additional_context: Optional[str] = None


def sprint_capacity(team_size: int, sprint_length: SprintLength) -> int:
    return round(team_size * POINTS_PER_DEVELOPER * sprint_length.weeks / 2)


def order_stories(stories: list[UserStory]) -> list[UserStory]:
    """Priority descending, then story points ascending."""
    return sorted(stories, key=lambda s: (-s.priority.rank, s.story_points))


def allocate_sprints(
    stories: list[UserStory],
    team_size: int,
    sprint_length: SprintLength,
    total_sprints: int,
    features: Optional[list[Feature]] = None,
) -> list[Sprint]:
    """Pack stories into at most ``total_sprints`` sprints.

    Filling stops at the first story that does not fit, so a sprint never
    jumps the priority order. Planning stops once every story is placed or
    a sprint would come out empty.
    """
    capacity = sprint_capacity(team_size, sprint_length)
    queue = order_stories(stories)
    high_features = [f for f in (features or []) if f.priority == FeaturePriority.HIGH]
    sprints: list[Sprint] = []
    index = 0

    for number in range(1, total_sprints + 1):
        assigned: list[UserStory] = []
        points = 0
        while index < len(queue) and points + queue[index].story_points <= capacity:
            assigned.append(queue[index])
            points += queue[index].story_points
            index += 1
        if not assigned:
            break

        tasks = [
            SprintTask(
                title=f"Implement: {story.title}",
                description=_task_description(story),
                estimated_hours=story.story_points * HOURS_PER_POINT,
                assignee=f"Developer {(i % team_size) + 1}",
                dependencies=[f"Sprint {number - 1} completion"] if number > 1 else [],
                story_id=story.id,
            )
            for i, story in enumerate(assigned)
        ]
        if number <= 2:
            tasks += [
                SprintTask(
                    title=f"Architecture: {feature.name}",
                    description=f"Technical implementation planning for {feature.description}",
                    estimated_hours=8,
                    assignee="Tech Lead",
                )
                for feature in high_features
            ]

        sprints.append(
            Sprint(
                id=f"sprint-{number}",
                number=number,
                name=f"Sprint {number}",
                goal=DEFAULT_GOALS.get(number, DEFAULT_LATER_GOAL),
                duration_weeks=sprint_length.weeks,
                user_stories=[story.id for story in assigned],
                tasks=tasks,
                velocity=points,
            )
        )
        if index >= len(queue):
            break

    return sprints


def _task_description(story: UserStory) -> str:
    criteria = "\n".join(f"- {c}" for c in story.acceptance_criteria)
    return f"{story.user_action} - {story.benefit}\n\nAcceptance Criteria:\n{criteria}"


def summarize(
    sprints: list[Sprint],
    stories: list[UserStory],
    team_size: int,
    sprint_length: SprintLength,
    features: list[Feature],
) -> SprintSummary:
    capacity = sprint_capacity(team_size, sprint_length)
    allocated_ids = {sid for sprint in sprints for sid in sprint.user_stories}
    total = sum(s.story_points for s in stories)
    allocated = sum(s.velocity for s in sprints)
    unallocated = [s.id for s in order_stories(stories) if s.id not in allocated_ids]

    risks = []
    if unallocated:
        risks.append("Some user stories may not fit in planned sprints")
    if team_size < 3:
        risks.append("Small team size may limit parallel development")
    if sprint_length == SprintLength.ONE_WEEK:
        risks.append("Short sprints may limit feature delivery")
    if len([f for f in features if f.priority == FeaturePriority.HIGH]) > 5:
        risks.append("High number of priority features may cause scope creep")

    recommendations = [
        f"Maintain sprint velocity of {capacity} story points",
        "Plan for 20% buffer time in each sprint",
    ]
    if unallocated:
        recommendations.append("Consider adding additional sprints or reducing scope")

    return SprintSummary(
        total_story_points=total,
        allocated_story_points=allocated,
        unallocated_stories=unallocated,
        sprint_capacity=capacity,
        estimated_duration=f"{len(sprints)} sprints ({len(sprints) * sprint_length.weeks} weeks)",
        risk_factors=risks,
        recommendations=recommendations,
    )


def apply_insights(plan: SprintPlan, insights: SprintInsights) -> None:
    """Copy model-written narrative onto sprints that exist in the plan."""
    by_number = {sprint.number: sprint for sprint in plan.sprints}
    for insight in insights.sprints:
        sprint = by_number.get(insight.sprint_number)
        if sprint is None:
            logger.warning("sprint_insight_ignored", sprint_number=insight.sprint_number)
            continue
        if insight.goal.strip():
            sprint.goal = insight.goal
        sprint.deliverables = insight.deliverables
        sprint.risks = insight.risks
    plan.summary.risk_factors += insights.risk_factors
    plan.summary.recommendations += insights.recommendations


@dataclass
class _IssueJob:
    sprint: Sprint
    story: UserStory


class SprintPlanningStep(AgentStep[SprintPlanningInput, SprintPlan]):
    """Allocate stories to sprints and optionally mirror the plan in Linear."""

    name = TargetStep.SPRINT_PLANNER
    required_fields = ("user_stories", "team_size", "sprint_length", "total_sprints")
    system_prompt = SPRINT_SYSTEM

    def __init__(
        self,
        llm: ChatModel,
        linear: Optional[LinearClient] = None,
        default_team_id: Optional[str] = None,
        batch_concurrency: int = 1,
        structured_output_retries: int = 1,
    ):
        super().__init__(llm, structured_output_retries)
        self.linear = linear
        self.default_team_id = default_team_id
        self.batch_concurrency = batch_concurrency

    def build_prompt(self, data: SprintPlanningInput, plan: SprintPlan) -> str:
        stories = {s.id: s for s in data.user_stories}
        lines = []
        for sprint in plan.sprints:
            lines.append(f"Sprint {sprint.number} ({sprint.velocity} points):")
            for sid in sprint.user_stories:
                story = stories[sid]
                lines.append(f"  - {sid} [{story.priority.value}, {story.story_points} pts] {story.title}")
        unallocated = ""
        if plan.summary.unallocated_stories:
            unallocated = f"\nNot allocated: {', '.join(plan.summary.unallocated_stories)}\n"
        return SPRINT_TEMPLATE.format(
            title=data.product_title or "Untitled product",
            team_size=data.team_size,
            sprint_length=data.sprint_length.value,
            capacity=plan.summary.sprint_capacity,
            sprints="\n".join(lines) or "(no sprints)",
            unallocated=unallocated,
            additional_context=render_context(data.additional_context),
        )

    async def execute(
        self, data: SprintPlanningInput
    ) -> tuple[SprintPlan, StructuredResult[SprintInsights]]:
        team_id = data.linear_team_id or self.default_team_id
        if data.create_linear_project and (self.linear is None or not team_id):
            raise ConfigurationError(
                "Linear integration requested but LINEAR_API_KEY or team id is missing",
                details={"linear_configured": self.linear is not None, "team_id": team_id},
            )

        sprints = allocate_sprints(
            data.user_stories, data.team_size, data.sprint_length, data.total_sprints, data.features
        )
        plan = SprintPlan(
            sprints=sprints,
            summary=summarize(
                sprints, data.user_stories, data.team_size, data.sprint_length, data.features
            ),
        )

        structured = await self.generate(SprintInsights, self.build_prompt(data, plan))
        apply_insights(plan, structured.payload)

        if data.create_linear_project:
            plan.linear_integration = await self.sync_to_linear(plan, data, team_id)

        plan.assert_references({s.id for s in data.user_stories})
        return plan, structured

    async def sync_to_linear(
        self, plan: SprintPlan, data: SprintPlanningInput, team_id: str
    ) -> LinearIntegration:
        """Create one cycle per sprint and one issue per assigned story.

        Both batches are best-effort; failures land in ``errors``.
        """
        integration = LinearIntegration(enabled=True, team_id=team_id)
        title = data.product_title or "Product"
        weeks = data.sprint_length.weeks
        start = datetime.now(timezone.utc)

        async def create_cycle(sprint: Sprint) -> LinearCycleRef:
            starts_at = start + timedelta(weeks=weeks * (sprint.number - 1))
            cycle = (await self.linear.create_cycle(
                team_id=team_id,
                name=f"{title} - Sprint {sprint.number}",
                starts_at=starts_at.isoformat(),
                ends_at=(starts_at + timedelta(weeks=weeks)).isoformat(),
                description=f"{sprint.goal}\n\nDeliverables: {', '.join(sprint.deliverables)}",
            )).unwrap()
            return LinearCycleRef(
                cycle_id=cycle["id"], cycle_name=cycle.get("name") or sprint.name, sprint_number=sprint.number
            )

        cycles = await run_batch(plan.sprints, create_cycle, self.batch_concurrency)
        for ref in cycles.succeeded:
            integration.cycles_created.append(ref)
            for sprint in plan.sprints:
                if sprint.number == ref.sprint_number:
                    sprint.cycle = ref
        for failure in cycles.failed:
            integration.errors.append(f"Sprint {failure.item.number} cycle: {failure.message}")

        stories = {s.id: s for s in data.user_stories}
        jobs = [
            _IssueJob(sprint=sprint, story=stories[sid])
            for sprint in plan.sprints
            for sid in sprint.user_stories
        ]

        async def create_issue(job: _IssueJob) -> LinearIssueRef:
            cycle_id = job.sprint.cycle.cycle_id if job.sprint.cycle else None
            issue = (await self.linear.create_issue(
                team_id=team_id,
                title=job.story.title,
                description=_task_description(job.story),
                cycle_id=cycle_id,
                estimate=job.story.story_points,
                priority=PRIORITY_MAP[job.story.priority],
            )).unwrap()
            return LinearIssueRef(
                issue_id=issue["id"],
                issue_identifier=issue.get("identifier", ""),
                title=issue.get("title") or job.story.title,
                story_id=job.story.id,
                cycle_id=cycle_id,
                url=issue.get("url"),
            )

        issues = await run_batch(jobs, create_issue, self.batch_concurrency)
        integration.issues_created = list(issues.succeeded)
        for failure in issues.failed:
            integration.errors.append(f"Issue for {failure.item.story.id}: {failure.message}")

        logger.info(
            "linear_sync_completed",
            cycles=len(integration.cycles_created),
            issues=len(integration.issues_created),
            errors=len(integration.errors),
        )
        return integration
