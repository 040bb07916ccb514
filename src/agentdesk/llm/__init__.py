"""LLM provider contract and the OpenAI-compatible implementation."""

from .provider import OpenAIProviderClient, ProviderClient, build_messages

__all__ = ["ProviderClient", "OpenAIProviderClient", "build_messages"]
