"""Provider-agnostic chat messages and the persistence record derived from them."""

from abc import ABC
from typing import Any, Dict, List

from pydantic import BaseModel


class BaseMessage(ABC, BaseModel):
    """Base model for messages exchanged with a model and stored in the transcript.

    Attributes:
        role: Role associated with the message.
        content: Text payload of the message.
    """

    role: str
    content: str

    def to_provider(self) -> Dict[str, Any]:
        return {"role": self.role, "content": self.content}


class SystemMessage(BaseMessage):
    """Message authored by the system to steer behavior."""

    role: str = "system"


class UserMessage(BaseMessage):
    """Message authored by an end user."""

    role: str = "user"


class AssistantMessage(BaseMessage):
    """Message authored by the assistant."""

    role: str = "assistant"


class SessionRecord(BaseModel):
    """Append-only transcript record ``{role, content}``."""

    role: str
    content: str


def history_from_records(records: List[SessionRecord]) -> List[BaseMessage]:
    """Rebuild chat history from stored records, skipping empty ones and unknown roles."""
    history: List[BaseMessage] = []
    for record in records:
        if not record.content or not record.content.strip():
            continue
        if record.role == "user":
            history.append(UserMessage(content=record.content))
        elif record.role == "assistant":
            history.append(AssistantMessage(content=record.content))
        elif record.role == "system":
            history.append(SystemMessage(content=record.content))
    return history
