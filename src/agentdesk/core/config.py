"""Configuration loaders for the chat service.

Leverages pydantic-settings to hydrate runtime configuration from environment
variables, an optional ``.env`` file, or default values. Nested settings classes
mirror infrastructure concerns (datastore, rate limiting, LLM providers).
"""

from __future__ import annotations

from enum import Enum
from functools import cached_property
from typing import Any

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _prefixed(prefix: str) -> SettingsConfigDict:
    return SettingsConfigDict(
        env_prefix=prefix,
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


class BaseAppSettings(BaseSettings):
    """Base settings that looks at environment variables and an optional .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


class PostgresSettings(BaseAppSettings):
    """Postgres connection details."""

    model_config = _prefixed("postgres_")

    host: str = "localhost"
    port: int = Field(default=5432, ge=1, le=65535)
    database: str = Field(
        default="agentdesk",
        validation_alias=AliasChoices("database", "db"),
    )
    user: str = "agentdesk"
    password: str = "changeme"
    sslmode: str = "prefer"
    url: str | None = None
    pool_size: int = Field(default=5, ge=1)
    max_overflow: int = Field(default=10, ge=0)

    @cached_property
    def dsn(self) -> str:
        """Return a SQLAlchemy compatible DSN string; ``POSTGRES_URL`` wins."""

        if self.url:
            return self.url
        return (
            f"postgresql+psycopg://{self.user}:{self.password}@{self.host}:{self.port}/"
            f"{self.database}?sslmode={self.sslmode}"
        )


class RedisSettings(BaseAppSettings):
    """Redis URL used by the widget rate limiter."""

    model_config = _prefixed("redis_")

    url: str = "redis://localhost:6379/0"


class LLMProvider(str, Enum):
    """Supported LLM provider identifiers."""

    OPENAI = "openai"
    OPENROUTER = "openrouter"


class OpenAISettings(BaseAppSettings):
    """Configuration specific to OpenAI models."""

    model_config = _prefixed("openai_")

    api_key: str | None = None
    base_url: str | None = None


class OpenRouterSettings(BaseAppSettings):
    """Configuration specific to OpenRouter-hosted models."""

    model_config = _prefixed("openrouter_")

    api_key: str | None = None
    base_url: str = "https://openrouter.ai/api/v1"


class LLMSettings(BaseAppSettings):
    """Aggregate configuration for the active LLM provider."""

    model_config = _prefixed("llm_")

    provider: LLMProvider = LLMProvider.OPENAI
    timeout_seconds: float = Field(default=60.0, ge=0.1)
    retry_attempts: int = Field(default=2, ge=1, le=10)
    retry_base_delay: float = Field(default=0.5, ge=0.0)

    def resolve_credentials(
        self,
        openai: OpenAISettings,
        openrouter: OpenRouterSettings,
    ) -> dict[str, Any]:
        """Return the client keyword arguments for the configured provider."""

        if self.provider is LLMProvider.OPENAI:
            return {"api_key": openai.api_key, "base_url": openai.base_url}

        return {"api_key": openrouter.api_key, "base_url": openrouter.base_url}


class GuardrailSettings(BaseAppSettings):
    """Defaults used when compiling agent guardrails."""

    model_config = _prefixed("guardrails_")

    fallback_company_name: str = "this company"
    recommended_models: list[str] = Field(
        default_factory=lambda: [
            "claude-3-5-sonnet-20241022",
            "claude-3-opus-20240229",
        ]
    )


class WidgetSettings(BaseAppSettings):
    """Limits applied to embeddable widget traffic and allow-lists."""

    model_config = _prefixed("widget_")

    max_allowed_domains: int = Field(default=20, ge=1)
    max_domain_length: int = Field(default=100, ge=4)
    max_message_length: int = Field(default=2000, ge=1)
    requests_per_minute: int = Field(default=30, ge=1)


class TelemetrySettings(BaseAppSettings):
    """Shared telemetry configuration."""

    model_config = _prefixed("otel_")

    exporter_endpoint: str | None = None
    exporter_headers: str | None = None


class AppSettings(BaseAppSettings):
    """Top level settings object used by services."""

    app_version: str = "0.1.0"
    postgres: PostgresSettings = Field(default_factory=PostgresSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    openai: OpenAISettings = Field(default_factory=OpenAISettings)
    openrouter: OpenRouterSettings = Field(default_factory=OpenRouterSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    guardrails: GuardrailSettings = Field(default_factory=GuardrailSettings)
    widget: WidgetSettings = Field(default_factory=WidgetSettings)
    telemetry: TelemetrySettings = Field(default_factory=TelemetrySettings)

    @classmethod
    def load(cls, **kwargs: Any) -> AppSettings:
        """Helper factory that mirrors BaseSettings semantics."""

        return cls(**kwargs)
