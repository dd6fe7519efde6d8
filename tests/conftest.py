"""
Pytest configuration and fixtures.

A scripted chat model stands in for the LLM providers so tests run
without credentials; vendor clients are replaced with mocks.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.config.settings import Settings
from src.workflow.services import Services
from tests.fakes import FakeLLM, ok, story


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the environment and any .env file."""
    return Settings(
        _env_file=None,
        google_api_key="test-google-key",
        linear_api_key="",
        miro_api_key="",
        notion_api_key="",
        pinecone_api_key="",
    )


@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def services(settings: Settings, fake_llm: FakeLLM) -> Services:
    """Services with the fake model and no vendor integrations."""
    return Services(settings=settings, llm=fake_llm)


# =============================================================================
# Sample payloads (as the model would produce them)
# =============================================================================


@pytest.fixture
def idea_payload() -> dict:
    return {
        "refinedIdea": {
            "title": "NoteMind",
            "description": "A note-taking app that organises notes with AI",
            "problemStatement": "Knowledge workers lose track of scattered notes",
            "targetAudience": "Students and knowledge workers",
            "features": [
                {
                    "name": "Smart tagging",
                    "description": "Tags notes automatically",
                    "acceptanceCriteria": ["Tags appear within 2 seconds"],
                    "priority": "high",
                },
                {
                    "name": "Semantic search",
                    "description": "Find notes by meaning",
                    "acceptanceCriteria": ["Relevant notes in top 5"],
                    "priority": "medium",
                },
            ],
            "marketCategory": "Productivity",
        },
        "userPersonas": [
            {
                "name": "Sam",
                "role": "Graduate student",
                "goals": ["Keep research notes organised"],
                "painPoints": ["Cannot find old notes"],
            }
        ],
        "clarifyingQuestions": ["Which platforms first?"],
        "marketValidation": {"similarProducts": ["Notion", "Evernote"]},
        "nextSteps": ["Write user stories"],
    }


@pytest.fixture
def story_payload() -> dict:
    stories = [
        story("US-001", 3, "critical", "Sign up"),
        story("US-002", 5, "high", "Create note"),
        story("US-003", 8, "high", "Auto tag note"),
        story("US-004", 2, "medium", "Search notes"),
        story("US-005", 1, "low", "Dark mode"),
    ]
    return {
        "epics": [
            {"name": "Onboarding", "stories": ["US-001"]},
            {"name": "Notes", "stories": ["US-002", "US-003", "US-004"]},
        ],
        "userStories": stories,
        "implementationOrder": ["US-001", "US-002", "US-003", "US-004", "US-005"],
        "mvpStories": ["US-001", "US-002", "US-003"],
        "recommendations": ["Start with onboarding"],
    }


@pytest.fixture
def prd_payload() -> dict:
    return {
        "title": "NoteMind PRD",
        "executiveSummary": "AI-organised notes for knowledge workers",
        "problemStatement": "Notes are scattered",
        "solutionOverview": "Automatic tagging and semantic search",
        "features": [{"name": "Smart tagging", "priority": "high"}],
        "goalsAndMetrics": [{"goal": "Retention", "metric": "W4 retention", "target": "40%"}],
        "assumptions": ["Users accept cloud sync"],
        "openQuestions": ["Offline support?"],
    }


@pytest.fixture
def sprint_insights_payload() -> dict:
    return {
        "sprints": [
            {
                "sprintNumber": 1,
                "goal": "Users can sign up and write notes",
                "deliverables": ["Sign-up flow", "Note editor"],
                "risks": ["Auth provider delays"],
            }
        ],
        "riskFactors": ["New team"],
        "recommendations": ["Demo every sprint"],
    }


@pytest.fixture
def visual_payload() -> dict:
    return {
        "journeyStages": [
            {"name": "Discover", "painPoints": ["Too many apps"]},
            {"name": "Capture", "description": "Write first note"},
        ],
        "processFlow": [{"label": "Write note"}, {"label": "Auto tag"}],
        "insights": {"userExperienceGaps": ["No onboarding tour"]},
    }


@pytest.fixture
def routing_payload() -> dict:
    return {
        "targetAgent": "idea-generation",
        "confidence": 0.85,
        "reasoning": "Social features change the product concept",
        "suggestedAction": "Add social sharing to the feature list",
        "requiresApproval": True,
    }


@pytest.fixture
def mock_miro():
    client = MagicMock()
    client.create_board = AsyncMock(
        return_value=ok({"id": "board-1", "name": "NoteMind", "viewLink": "https://miro.com/app/board/board-1/"})
    )
    for method in ("create_text", "create_card", "create_shape", "create_sticky_note"):
        setattr(client, method, AsyncMock(return_value=ok({"id": "item"})))
    client.close = AsyncMock()
    return client
