"""Service container owned by the process entry point.

Everything that holds a connection or a credential is created here from
``Settings`` and handed to the steps explicitly. Integrations whose keys
are absent are left as None.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from langchain_google_genai import GoogleGenerativeAIEmbeddings

from src.config.settings import Settings
from src.integrations.linear import LinearClient
from src.integrations.miro import MiroClient
from src.integrations.miro_oauth import JsonFileTokenStore, MiroOAuthFlow, OAuthToken
from src.integrations.notion import NotionClient
from src.integrations.pinecone import PineconeClient
from src.knowledge.retriever import KnowledgeBase
from src.llm.client import UnifiedChatClient
from src.llm.structured import ChatModel
from src.steps.idea import IdeaGenerationStep
from src.steps.prd import PRDGenerationStep
from src.steps.sprint_planning import SprintPlanningStep
from src.steps.user_stories import UserStoryGenerationStep
from src.steps.visual_design import VisualDesignStep
from src.workflow.feedback_router import FeedbackRouter

logger = logging.getLogger(__name__)

EMBEDDING_MODEL = "models/text-embedding-004"


@dataclass
class Services:
    settings: Settings
    llm: ChatModel
    linear: Optional[LinearClient] = None
    miro: Optional[MiroClient] = None
    notion: Optional[NotionClient] = None
    pinecone: Optional[PineconeClient] = None
    knowledge: Optional[KnowledgeBase] = None
    miro_oauth: Optional[MiroOAuthFlow] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "Services":
        """Build every configured client.

        Raises:
            ConfigurationError: No API key for the configured LLM provider.
        """
        timeout = settings.http_timeout_seconds
        services = cls(settings=settings, llm=UnifiedChatClient.from_settings(settings))

        if settings.linear_enabled:
            services.linear = LinearClient(
                settings.linear_api_key, base_url=settings.linear_api_url, timeout_seconds=timeout
            )

        if settings.miro_client_id and settings.miro_client_secret:
            services.miro_oauth = MiroOAuthFlow(
                settings.miro_client_id,
                settings.miro_client_secret,
                settings.miro_redirect_uri,
                JsonFileTokenStore(settings.miro_token_path),
                timeout_seconds=timeout,
            )
        if settings.miro_enabled:
            services.miro = MiroClient(
                settings.miro_api_key, base_url=settings.miro_api_url, timeout_seconds=timeout
            )
        elif services.miro_oauth:
            token = services.miro_oauth.token_store.load()
            if token:
                services.miro = services._miro_client(token.access_token)

        if settings.notion_enabled:
            services.notion = NotionClient(
                settings.notion_api_key,
                base_url=settings.notion_api_url,
                notion_version=settings.notion_version,
                timeout_seconds=timeout,
            )

        if settings.pinecone_enabled:
            services.pinecone = PineconeClient(
                settings.pinecone_api_key,
                host=settings.pinecone_host,
                control_url=settings.pinecone_control_url,
                timeout_seconds=timeout,
            )
            if settings.google_api_key:
                services.knowledge = KnowledgeBase(
                    services.pinecone,
                    GoogleGenerativeAIEmbeddings(
                        model=EMBEDDING_MODEL, google_api_key=settings.google_api_key
                    ),
                    top_k=settings.knowledge_top_k,
                )

        logger.info(
            "Services initialized",
            extra={"integrations": services.integrations_enabled()},
        )
        return services

    def _miro_client(self, api_key: str) -> MiroClient:
        return MiroClient(
            api_key,
            base_url=self.settings.miro_api_url,
            timeout_seconds=self.settings.http_timeout_seconds,
        )

    async def use_miro_token(self, token: OAuthToken) -> None:
        """Switch the Miro client to an OAuth access token, closing the old one."""
        previous, self.miro = self.miro, self._miro_client(token.access_token)
        if previous is not None:
            await previous.close()

    def integrations_enabled(self) -> list[str]:
        names = {
            "linear": self.linear,
            "miro": self.miro,
            "notion": self.notion,
            "pinecone": self.knowledge,
        }
        return [name for name, client in names.items() if client is not None]

    # Steps are built per call so they pick up clients swapped in later
    # (a Miro token from the OAuth callback).

    def idea_step(self) -> IdeaGenerationStep:
        return IdeaGenerationStep(
            self.llm, knowledge=self.knowledge,
            structured_output_retries=self.settings.structured_output_retries,
        )

    def user_story_step(self) -> UserStoryGenerationStep:
        return UserStoryGenerationStep(
            self.llm, structured_output_retries=self.settings.structured_output_retries
        )

    def prd_step(self) -> PRDGenerationStep:
        return PRDGenerationStep(
            self.llm,
            notion=self.notion,
            database_id=self.settings.notion_prd_database_id,
            structured_output_retries=self.settings.structured_output_retries,
        )

    def sprint_step(self) -> SprintPlanningStep:
        return SprintPlanningStep(
            self.llm,
            linear=self.linear,
            default_team_id=self.settings.linear_team_id,
            batch_concurrency=self.settings.batch_concurrency,
            structured_output_retries=self.settings.structured_output_retries,
        )

    def visual_step(self) -> VisualDesignStep:
        return VisualDesignStep(
            self.llm,
            miro=self.miro,
            batch_concurrency=self.settings.batch_concurrency,
            structured_output_retries=self.settings.structured_output_retries,
        )

    def feedback_router(self) -> FeedbackRouter:
        return FeedbackRouter(
            self.llm, structured_output_retries=self.settings.structured_output_retries
        )

    async def aclose(self) -> None:
        """Close vendor HTTP sessions."""
        for client in (self.linear, self.miro, self.notion, self.pinecone):
            if client is not None:
                await client.close()
