from __future__ import annotations

from pathlib import Path

import pytest

from agentdesk.core.config import (
    AppSettings,
    LLMProvider,
    OpenAISettings,
    OpenRouterSettings,
    PostgresSettings,
)

pytestmark = pytest.mark.unit


def test_postgres_settings_env_precedence(tmp_path: Path, monkeypatch) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text(
        "\n".join(
            [
                "POSTGRES_HOST=from_env_file",
                "POSTGRES_DB=support_desk",
                "POSTGRES_USER=file_user",
            ]
        ),
        encoding="utf-8",
    )

    monkeypatch.setenv("POSTGRES_HOST", "from_environment")
    settings = PostgresSettings(_env_file=env_file)

    assert settings.host == "from_environment"
    assert settings.database == "support_desk"
    assert settings.user == "file_user"
    assert settings.dsn.startswith("postgresql+psycopg://file_user:")


def test_app_settings_composes_sub_settings(monkeypatch) -> None:
    monkeypatch.setenv("REDIS_URL", "redis://example:6379/1")
    monkeypatch.setenv("LLM_PROVIDER", "openrouter")
    monkeypatch.setenv("WIDGET_MAX_ALLOWED_DOMAINS", "5")
    monkeypatch.setenv("GUARDRAILS_FALLBACK_COMPANY_NAME", "our team")

    settings = AppSettings()

    assert settings.redis.url == "redis://example:6379/1"
    assert settings.llm.provider is LLMProvider.OPENROUTER
    assert settings.widget.max_allowed_domains == 5
    assert settings.widget.max_message_length == 2000
    assert settings.guardrails.fallback_company_name == "our team"


def test_llm_settings_resolve_credentials(monkeypatch) -> None:
    monkeypatch.delenv("LLM_PROVIDER", raising=False)
    openai = OpenAISettings(api_key="sk-openai")
    openrouter = OpenRouterSettings(api_key="sk-or")

    settings = AppSettings()

    assert settings.llm.resolve_credentials(openai, openrouter) == {
        "api_key": "sk-openai",
        "base_url": None,
    }
