"""Configuration for the IssueCrush server.

Configuration is loaded from:
- environment variables
- and a local `.env` file (if present)

The server starts without OAuth credentials or a Redis URL. Missing OAuth
credentials are reported when a token exchange is attempted; a missing Redis URL
selects the in-memory session store.
"""

from __future__ import annotations

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SESSION_TTL_SECONDS = 24 * 60 * 60


class Settings(BaseSettings):
    """Settings for the REST API, session store and AI summaries.

    Notes:
        Pydantic-settings supports overriding the env file in tests via:
        `Settings(_env_file=path_to_env)`.
    """

    github_client_id: str = Field(
        default="",
        validation_alias=AliasChoices("GITHUB_CLIENT_ID", "EXPO_PUBLIC_GITHUB_CLIENT_ID"),
        description="OAuth app client id",
    )
    github_client_secret: str = Field(
        default="",
        validation_alias="GITHUB_CLIENT_SECRET",
        description="OAuth app client secret",
    )
    github_base_url: str = Field(
        default="https://api.github.com",
        validation_alias="GITHUB_BASE_URL",
        description="GitHub API base URL (useful for GitHub Enterprise)",
    )
    github_oauth_url: str = Field(
        default="https://github.com/login/oauth/access_token",
        validation_alias="GITHUB_OAUTH_URL",
        description="OAuth access token endpoint",
    )
    issues_page_size: int = Field(
        default=100,
        validation_alias="ISSUECRUSH_ISSUES_PAGE_SIZE",
        description="Page size for issue listing. Only one page is ever fetched.",
        ge=1,
        le=100,
    )

    redis_url: str = Field(
        default="",
        validation_alias="ISSUECRUSH_REDIS_URL",
        description="Redis URL for durable sessions. Empty selects the in-memory store.",
    )
    redis_key_prefix: str = Field(
        default="issuecrush:session:",
        validation_alias="ISSUECRUSH_REDIS_KEY_PREFIX",
    )
    session_ttl_seconds: int = Field(
        default=DEFAULT_SESSION_TTL_SECONDS,
        validation_alias="ISSUECRUSH_SESSION_TTL_SECONDS",
        gt=0,
    )
    store_retry_after_seconds: float = Field(
        default=1.0,
        validation_alias="ISSUECRUSH_STORE_RETRY_AFTER_SECONDS",
        description="Backoff before the single retry of a rate-limited session write.",
        ge=0.0,
    )

    ai_enabled: bool = Field(
        default=True,
        validation_alias="ISSUECRUSH_AI_ENABLED",
        description="If false, summaries always use the local fallback template.",
    )
    ai_base_url: str = Field(
        default="https://models.github.ai/inference",
        validation_alias="ISSUECRUSH_AI_BASE_URL",
        description="OpenAI-compatible endpoint used for issue summaries.",
    )
    ai_model: str = Field(default="openai/gpt-4.1", validation_alias="ISSUECRUSH_AI_MODEL")
    ai_api_key: str = Field(
        default="",
        validation_alias="ISSUECRUSH_AI_API_KEY",
        description="API key for the AI endpoint. Empty means the session's GitHub token is used.",
    )
    ai_timeout_seconds: float = Field(
        default=30.0,
        validation_alias="ISSUECRUSH_AI_TIMEOUT_SECONDS",
        gt=0,
    )

    api_prefix: str = Field(default="/api", validation_alias="ISSUECRUSH_API_PREFIX")
    cors_origins: str = Field(
        default="*",
        validation_alias="ISSUECRUSH_CORS_ORIGINS",
        description="Comma-separated list of allowed CORS origins.",
    )
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    host: str = Field(default="0.0.0.0", validation_alias="HOST")
    port: int = Field(default=3000, validation_alias="PORT")

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    def parsed_cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def oauth_configured(self) -> bool:
        return bool(self.github_client_id.strip() and self.github_client_secret.strip())

    @property
    def normalized_api_prefix(self) -> str:
        prefix = self.api_prefix.strip().rstrip("/")
        if prefix and not prefix.startswith("/"):
            prefix = "/" + prefix
        return prefix
