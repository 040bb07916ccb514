"""Database models and helpers for the chat service."""

from . import models, session
from .models import Agent, Conversation, ConversationStatus, Message, metadata
from .session import create_engine_from_settings, init_db

__all__ = [
    "models",
    "session",
    "Agent",
    "Conversation",
    "ConversationStatus",
    "Message",
    "metadata",
    "create_engine_from_settings",
    "init_db",
]
