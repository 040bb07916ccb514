"""Core utilities and domain building blocks for the chat service."""

from agentdesk import utils

from . import config, domain, errors, http, logging
from .config import (
    AppSettings,
    GuardrailSettings,
    LLMProvider,
    LLMSettings,
    PostgresSettings,
    RedisSettings,
    WidgetSettings,
)
from .domain import (
    AntiHallucinationTemplate,
    ChatReply,
    ContextLimitations,
    Intensity,
    ProviderReply,
    ProviderRequest,
    ResponsePatterns,
)
from .logging import configure_logging, get_logger

__all__ = [
    "config",
    "domain",
    "errors",
    "http",
    "logging",
    "utils",
    "configure_logging",
    "get_logger",
    "AppSettings",
    "PostgresSettings",
    "RedisSettings",
    "LLMSettings",
    "LLMProvider",
    "GuardrailSettings",
    "WidgetSettings",
    "AntiHallucinationTemplate",
    "ContextLimitations",
    "ResponsePatterns",
    "Intensity",
    "ProviderRequest",
    "ProviderReply",
    "ChatReply",
]
