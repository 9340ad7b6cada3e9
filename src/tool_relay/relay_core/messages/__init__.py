"""Expose chat message models and the transcript record type."""

from .models import (
    BaseMessage,
    UserMessage,
    AssistantMessage,
    SystemMessage,
    SessionRecord,
    history_from_records,
)

__all__ = [
    "BaseMessage",
    "UserMessage",
    "AssistantMessage",
    "SystemMessage",
    "SessionRecord",
    "history_from_records",
]
