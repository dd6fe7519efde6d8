"""
Application Settings - Pydantic-based configuration management.

Loads settings from environment variables with validation and type coercion.
Vendor integrations are switched on by the presence of their API key.
"""

from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # LLM Providers
    # -------------------------------------------------------------------------
    google_api_key: str = Field(
        default="",
        validation_alias=AliasChoices(
            "google_api_key",
            "GOOGLE_GENERATIVE_AI_API_KEY",
            "GOOGLE_API_KEY",
        ),
        description="Google Generative AI API key",
    )
    openai_api_key: str = Field(default="", description="OpenAI API key")
    anthropic_api_key: str = Field(default="", description="Anthropic API key")
    default_llm_model: str = Field(default="gemini-2.0-flash", description="Default LLM model")
    llm_temperature: float = Field(default=0.4, ge=0.0, le=1.0, description="Sampling temperature")
    llm_timeout_seconds: float = Field(default=60.0, gt=0, description="Per-call model timeout")
    structured_output_retries: int = Field(
        default=1,
        ge=0,
        le=3,
        description="Re-prompts allowed when a model payload fails schema validation",
    )

    # -------------------------------------------------------------------------
    # Linear
    # -------------------------------------------------------------------------
    linear_api_key: str = Field(default="", description="Linear API key (sent without Bearer prefix)")
    linear_team_id: str = Field(default="", description="Default Linear team ID")
    linear_api_url: str = Field(default="https://api.linear.app/graphql", description="Linear GraphQL endpoint")

    # -------------------------------------------------------------------------
    # Miro
    # -------------------------------------------------------------------------
    miro_api_key: str = Field(default="", description="Miro access token")
    miro_client_id: str = Field(default="", description="Miro OAuth2 client ID")
    miro_client_secret: str = Field(default="", description="Miro OAuth2 client secret")
    miro_redirect_uri: str = Field(
        default="http://localhost:8000/api/integrations/miro/callback",
        description="Miro OAuth2 redirect URI",
    )
    miro_token_path: str = Field(default=".miro_token.json", description="Where OAuth tokens are stored")
    miro_api_url: str = Field(default="https://api.miro.com/v2", description="Miro REST base URL")

    # -------------------------------------------------------------------------
    # Notion
    # -------------------------------------------------------------------------
    notion_api_key: str = Field(default="", description="Notion integration token")
    notion_prd_database_id: str = Field(default="", description="Notion database for PRD pages")
    notion_version: str = Field(default="2022-06-28", description="Notion-Version header")
    notion_api_url: str = Field(default="https://api.notion.com/v1", description="Notion REST base URL")

    # -------------------------------------------------------------------------
    # Pinecone
    # -------------------------------------------------------------------------
    pinecone_api_key: str = Field(default="", description="Pinecone API key")
    pinecone_host: str = Field(default="", description="Pinecone index host (data plane)")
    pinecone_index_name: str = Field(default="product-maestro-knowledge", description="Pinecone index name")
    pinecone_control_url: str = Field(default="https://api.pinecone.io", description="Pinecone control plane")
    knowledge_top_k: int = Field(default=3, ge=1, le=20, description="Snippets retrieved per prompt")

    # -------------------------------------------------------------------------
    # HTTP / batching
    # -------------------------------------------------------------------------
    http_timeout_seconds: float = Field(default=30.0, gt=0, description="Per-call vendor timeout")
    batch_concurrency: int = Field(
        default=1,
        ge=1,
        le=16,
        description="Concurrent vendor calls in best-effort batches",
    )

    # -------------------------------------------------------------------------
    # Server
    # -------------------------------------------------------------------------
    environment: str = Field(default="development", description="Environment (development/production)")
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, ge=1, le=65535, description="Server port")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    @property
    def linear_enabled(self) -> bool:
        return bool(self.linear_api_key)

    @property
    def miro_enabled(self) -> bool:
        return bool(self.miro_api_key)

    @property
    def notion_enabled(self) -> bool:
        return bool(self.notion_api_key)

    @property
    def pinecone_enabled(self) -> bool:
        return bool(self.pinecone_api_key and self.pinecone_host)


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Only the process entry point should call this; everything else
    receives Settings explicitly.

    Returns:
        Singleton Settings instance.
    """
    return Settings()
