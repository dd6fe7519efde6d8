"""PRD generation step with optional publishing to Notion."""
from datetime import date
from typing import Any, Optional

import structlog
from pydantic import Field

from src.integrations import notion as blocks
from src.integrations.notion import MAX_BLOCKS_PER_REQUEST, NotionClient, page_url
from src.llm.structured import ChatModel, StructuredResult
from src.schemas.base import CamelModel
from src.schemas.feedback import TargetStep
from src.schemas.prd import PRDAnalysis, PRDDocument
from src.schemas.product import RefinedIdea, UserPersona, UserStory
from src.steps.base import AgentStep
from src.steps.prompts import (
    PRD_SYSTEM,
    PRD_TEMPLATE,
    render_context,
    render_features,
    render_personas,
    render_stories,
)

logger = structlog.get_logger()

NOT_CONFIGURED_MESSAGE = (
    "PRD generated but not published: set NOTION_API_KEY and "
    "NOTION_PRD_DATABASE_ID to publish it to Notion."
)


class PRDInput(CamelModel):
    refined_idea: Optional[RefinedIdea] = None
    user_personas: list[UserPersona] = Field(default_factory=list)
    user_stories: list[UserStory] = Field(default_factory=list)
    additional_context: Optional[str] = None
    notion_database_id: Optional[str] = None
    publish: bool = True


def build_prd_blocks(prd: PRDDocument) -> list[dict[str, Any]]:
    """Lay a PRD out as Notion blocks."""
    out: list[dict[str, Any]] = [
        blocks.callout(f"Version {prd.version}", "📋"),
        blocks.heading("Executive Summary"),
        blocks.paragraph(prd.executive_summary),
    ]
    if prd.problem_statement:
        out += [blocks.heading("Problem Statement"), blocks.paragraph(prd.problem_statement)]
    if prd.solution_overview:
        out += [blocks.heading("Solution Overview"), blocks.paragraph(prd.solution_overview)]

    if prd.features:
        out.append(blocks.heading("Features"))
        for feature in prd.features:
            out.append(blocks.heading(f"{feature.name} ({feature.priority.value})", level=3))
            if feature.description:
                out.append(blocks.paragraph(feature.description))
            out += blocks.bulleted_list(feature.acceptance_criteria)

    if prd.user_personas:
        out.append(blocks.heading("User Personas"))
        for persona in prd.user_personas:
            out.append(blocks.heading(f"{persona.name} - {persona.role}", level=3))
            out += blocks.bulleted_list(
                [f"Goal: {g}" for g in persona.goals]
                + [f"Pain point: {p}" for p in persona.pain_points]
            )

    if prd.goals_and_metrics:
        out.append(blocks.heading("Goals and Metrics"))
        out += blocks.bulleted_list(
            [f"{g.goal}: {g.metric} (target {g.target})" for g in prd.goals_and_metrics]
        )

    for title, items in (
        ("Assumptions", prd.assumptions),
        ("Constraints", prd.constraints),
        ("Dependencies", prd.dependencies),
        ("Open Questions", prd.open_questions),
        ("Future Considerations", prd.future_considerations),
    ):
        if items:
            out += [blocks.heading(title), *blocks.bulleted_list(items)]

    if prd.technical_overview:
        out += [blocks.heading("Technical Overview"), blocks.paragraph(prd.technical_overview)]
    if prd.ui_ux_notes:
        out += [blocks.heading("UI/UX Notes"), blocks.paragraph(prd.ui_ux_notes)]

    out.append(blocks.divider())
    return out


class PRDGenerationStep(AgentStep[PRDInput, PRDAnalysis]):
    """Write the PRD and publish it when Notion is configured.

    Page creation failure fails the step; a failed append of the remaining
    blocks leaves a partially written page and is reported in the message.
    """

    name = TargetStep.PRD
    required_fields = ("refined_idea", "user_stories")
    system_prompt = PRD_SYSTEM

    def __init__(
        self,
        llm: ChatModel,
        notion: Optional[NotionClient] = None,
        database_id: Optional[str] = None,
        structured_output_retries: int = 1,
    ):
        super().__init__(llm, structured_output_retries)
        self.notion = notion
        self.database_id = database_id

    def build_prompt(self, data: PRDInput) -> str:
        idea = data.refined_idea
        return PRD_TEMPLATE.format(
            title=idea.title,
            description=idea.description,
            problem_statement=idea.problem_statement,
            target_audience=idea.target_audience,
            features=render_features(idea.features),
            personas=render_personas(data.user_personas),
            stories=render_stories(data.user_stories),
            additional_context=render_context(data.additional_context),
        )

    async def execute(
        self, data: PRDInput
    ) -> tuple[PRDAnalysis, StructuredResult[PRDDocument]]:
        structured = await self.generate(PRDDocument, self.build_prompt(data))
        prd = structured.payload
        analysis = PRDAnalysis(
            prd=prd,
            last_updated=date.today().isoformat(),
            recommendations=[
                "Review the open questions with stakeholders",
                "Validate goals and metrics with the team before sprint planning",
            ],
        )

        database_id = data.notion_database_id or self.database_id
        if not data.publish:
            analysis.message = "PRD generated; publishing was not requested."
        elif self.notion is None or not database_id:
            analysis.message = NOT_CONFIGURED_MESSAGE
        else:
            await self.publish(analysis, database_id)
        return analysis, structured

    async def publish(self, analysis: PRDAnalysis, database_id: str) -> None:
        """Create the Notion page and append the remaining blocks.

        Raises:
            VendorAPIError: Page creation failed.
        """
        all_blocks = build_prd_blocks(analysis.prd)
        head, tail = all_blocks[:MAX_BLOCKS_PER_REQUEST], all_blocks[MAX_BLOCKS_PER_REQUEST:]

        page = (await self.notion.create_page(database_id, analysis.prd.title, children=head)).unwrap()
        page_id = page["id"]
        analysis.published = True
        analysis.notion_page_id = page_id
        analysis.notion_page_url = page.get("url") or page_url(page_id)
        analysis.blocks_written = len(head)
        analysis.message = f"PRD published to Notion: {analysis.notion_page_url}"

        if tail:
            response = await self.notion.append_blocks(page_id, tail)
            if response.success:
                analysis.blocks_written += response.data["appended"]
            else:
                logger.warning("prd_append_failed", page_id=page_id, error=response.message)
                analysis.message = (
                    f"PRD page created at {analysis.notion_page_url} but only "
                    f"{analysis.blocks_written} of {len(all_blocks)} blocks were written: "
                    f"{response.message}"
                )
        logger.info("prd_published", page_id=page_id, blocks=analysis.blocks_written)
