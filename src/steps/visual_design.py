"""Visual design step: journey map and process flow on a Miro board."""
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Optional

import structlog
from pydantic import Field

from src.errors import ConfigurationError
from src.integrations.batch import run_batch
from src.integrations.miro import MiroClient
from src.llm.structured import ChatModel, StructuredResult
from src.schemas.base import CamelModel
from src.schemas.feedback import TargetStep
from src.schemas.product import Feature, UserPersona, UserStory
from src.schemas.visual import (
    ElementCount,
    ElementFailure,
    ElementType,
    VisualAnalysis,
    VisualBoard,
    VisualDesignDraft,
)
from src.steps.base import AgentStep
from src.steps.prompts import (
    VISUAL_SYSTEM,
    VISUAL_TEMPLATE,
    render_context,
    render_features,
    render_personas,
    render_stories,
)

logger = structlog.get_logger()

# Row offsets on the board, one row per element kind
TITLE_Y = -700
PERSONA_Y = -400
JOURNEY_Y = -100
PAIN_POINT_Y = 200
PROCESS_Y = 500
COLUMN_WIDTH = 320

MAX_PROMPT_STORIES = 10


class VisualDesignInput(CamelModel):
    product_title: str = ""
    features: list[Feature] = Field(default_factory=list)
    user_personas: list[UserPersona] = Field(default_factory=list)
    user_stories: list[UserStory] = Field(default_factory=list)
    additional_context: Optional[str] = None


@dataclass
class ElementSpec:
    """One item to place on the board."""
    type: ElementType
    label: str
    method: str
    kwargs: dict[str, Any] = field(default_factory=dict)


def _column(index: int, total: int) -> float:
    return (index - (total - 1) / 2) * COLUMN_WIDTH


def build_element_specs(
    title: str, personas: list[UserPersona], draft: VisualDesignDraft
) -> list[ElementSpec]:
    """Lay out title, personas, journey, pain points and process as rows."""
    specs = [
        ElementSpec(
            ElementType.TITLE,
            title,
            "create_text",
            {"content": f"<b>{title}</b>", "x": 0, "y": TITLE_Y, "width": 800, "font_size": 48},
        )
    ]

    for i, persona in enumerate(personas):
        specs.append(ElementSpec(
            ElementType.PERSONA_CARD,
            persona.name,
            "create_card",
            {
                "title": f"{persona.name} ({persona.role})",
                "description": "; ".join(persona.goals + persona.pain_points),
                "x": _column(i, len(personas)),
                "y": PERSONA_Y,
            },
        ))

    stages = draft.journey_stages
    for i, stage in enumerate(stages):
        x = _column(i, len(stages))
        content = f"<b>{stage.name}</b>"
        if stage.description:
            content += f"<br>{stage.description}"
        specs.append(ElementSpec(
            ElementType.JOURNEY_STAGE,
            stage.name,
            "create_shape",
            {"content": content, "x": x, "y": JOURNEY_Y, "width": 280, "height": 160,
             "fill_color": "#e8f0fe"},
        ))
        for j, pain in enumerate(stage.pain_points):
            specs.append(ElementSpec(
                ElementType.PAIN_POINT,
                pain,
                "create_sticky_note",
                {"content": pain, "x": x, "y": PAIN_POINT_Y + j * 60, "color": "red"},
            ))

    nodes = draft.process_flow
    for i, node in enumerate(nodes):
        specs.append(ElementSpec(
            ElementType.PROCESS_STEP,
            node.label,
            "create_shape",
            {"content": f"{i + 1}. {node.label}", "x": _column(i, len(nodes)),
             "y": PROCESS_Y, "shape": "round_rectangle", "fill_color": "#e6f4ea",
             "border_color": "#34a853"},
        ))
    return specs


class VisualDesignStep(AgentStep[VisualDesignInput, VisualAnalysis]):
    """Generate journey and process content and draw it on a new board.

    Board creation failure fails the step. Individual elements are drawn
    best-effort; failures are listed in ``failed_elements``.
    """

    name = TargetStep.VISUAL_DESIGN
    required_fields = ("product_title", "features")
    system_prompt = VISUAL_SYSTEM

    def __init__(
        self,
        llm: ChatModel,
        miro: Optional[MiroClient] = None,
        batch_concurrency: int = 1,
        structured_output_retries: int = 1,
    ):
        super().__init__(llm, structured_output_retries)
        self.miro = miro
        self.batch_concurrency = batch_concurrency

    @property
    def available(self) -> bool:
        return self.miro is not None

    def build_prompt(self, data: VisualDesignInput) -> str:
        return VISUAL_TEMPLATE.format(
            title=data.product_title,
            features=render_features(data.features),
            personas=render_personas(data.user_personas),
            stories=render_stories(data.user_stories[:MAX_PROMPT_STORIES]),
            additional_context=render_context(data.additional_context),
        )

    async def execute(
        self, data: VisualDesignInput
    ) -> tuple[VisualAnalysis, StructuredResult[VisualDesignDraft]]:
        if self.miro is None:
            raise ConfigurationError("Visual design requires MIRO_API_KEY or a completed Miro OAuth flow")

        structured = await self.generate(VisualDesignDraft, self.build_prompt(data))
        draft = structured.payload

        board_name = f"{data.product_title} - Product Design"
        board = (await self.miro.create_board(
            board_name, description=f"User journey and process flow for {data.product_title}"
        )).unwrap()
        board_id = board["id"]

        specs = build_element_specs(data.product_title, data.user_personas, draft)

        async def draw(spec: ElementSpec) -> ElementType:
            (await getattr(self.miro, spec.method)(board_id, **spec.kwargs)).unwrap()
            return spec.type

        result = await run_batch(specs, draw, self.batch_concurrency)
        counts = Counter(result.succeeded)
        manifest = [ElementCount(type=t, count=counts[t]) for t in ElementType if counts[t]]
        failures = [
            ElementFailure(type=f.item.type, label=f.item.label, error=f.message)
            for f in result.failed
        ]

        visual_board = VisualBoard(
            board_id=board_id,
            name=board.get("name") or board_name,
            view_link=board.get("viewLink") or f"https://miro.com/app/board/{board_id}/",
            manifest=manifest,
        )
        message = f"Created {visual_board.items_created} items on Miro board {visual_board.view_link}"
        if failures:
            message += f"; {len(failures)} of {len(specs)} items failed"
            logger.warning("visual_elements_failed", board_id=board_id, failed=len(failures))

        analysis = VisualAnalysis(
            board=visual_board,
            journey_stages=draft.journey_stages,
            process_flow=draft.process_flow,
            insights=draft.insights,
            failed_elements=failures,
            message=message,
        )
        return analysis, structured
