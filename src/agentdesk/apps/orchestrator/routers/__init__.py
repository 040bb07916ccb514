"""HTTP routers for the orchestrator service."""

from . import agents, chat, conversations

__all__ = ["agents", "chat", "conversations"]
