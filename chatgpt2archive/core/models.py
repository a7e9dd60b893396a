"""Data models for exported ChatGPT conversations."""

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(frozen=True)
class ConversationSummary:
    """conversation identity as listed on an index page."""

    id: str
    title: Optional[str] = None

    @classmethod
    def from_item(cls, item: dict[str, Any]) -> "ConversationSummary":
        """builds a summary from one item of a /conversations page."""
        return cls(id=str(item.get("id", "")), title=item.get("title"))


@dataclass(frozen=True)
class TranscriptMessage:
    """one visible message of a conversation transcript."""

    id: Optional[str]
    role: Optional[str]  # "user", "assistant", "tool"
    content: str
    create_time: Optional[float] = None

    def to_dict(self) -> dict[str, Any]:
        """returns the archive representation of the message."""
        return {
            "id": self.id,
            "role": self.role,
            "content": self.content,
            "create_time": self.create_time,
        }


@dataclass(frozen=True)
class ConversationRecord:
    """a fully fetched conversation, as written to the archive."""

    id: str
    title: str
    create_time: Optional[float] = None
    update_time: Optional[float] = None
    model: Optional[str] = None
    messages: tuple[TranscriptMessage, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        """returns the archive representation of the conversation."""
        return {
            "id": self.id,
            "title": self.title,
            "create_time": self.create_time,
            "update_time": self.update_time,
            "model": self.model,
            "messages": [message.to_dict() for message in self.messages],
        }


@dataclass(frozen=True)
class FailedConversation:
    """a conversation that could not be exported, listed in the archive's errors."""

    id: str
    title: str
    error: str

    def to_dict(self) -> dict[str, Any]:
        """returns the archive representation of the failure."""
        return {"id": self.id, "title": self.title, "error": self.error}
