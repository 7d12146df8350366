"""
Canonical data shapes, shared truth for typing/validation between layers.

Typical contents:
- Role / Feedback enums.
- Message and ChatSession (immutable; updates go through dataclasses.replace).
- LLMSettings (model, temperature, top_p, max_tokens, response_format).

Serialization helpers produce the persisted/shared dict layout
(camelCase `createdAt`, feedback as "up" / "down" / null).

Testing: Trivial; mostly types. from_dict rejects malformed shapes with ValueError.
"""

from __future__ import annotations
import time
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Optional


DEFAULT_TITLE = "New Health Chat"
FALLBACK_TITLE = "Health Chat"
SHARED_TITLE = "Shared Chat"
GENERIC_TITLES = frozenset({DEFAULT_TITLE, FALLBACK_TITLE})


def now_ms() -> int:
    return int(time.time() * 1000)


def new_id() -> str:
    return str(uuid.uuid4())


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class Feedback(str, Enum):
    UP = "up"
    DOWN = "down"
    NONE = "none"

    def toggled(self, requested: "Feedback") -> "Feedback":
        """Same value clears, a different value replaces."""
        return Feedback.NONE if requested == self else requested

    def to_json(self) -> Optional[str]:
        return None if self is Feedback.NONE else self.value

    @classmethod
    def from_json(cls, value: Any) -> "Feedback":
        if value is None or value == "":
            return cls.NONE
        return cls(value)


@dataclass(frozen=True)
class Message:
    id: str
    role: Role
    content: str
    timestamp: int = field(default_factory=now_ms)
    feedback: Feedback = Feedback.NONE

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(id=new_id(), role=Role.USER, content=content)

    @classmethod
    def assistant_placeholder(cls) -> "Message":
        return cls(id=new_id(), role=Role.ASSISTANT, content="")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "role": self.role.value,
            "content": self.content,
            "timestamp": self.timestamp,
            "feedback": self.feedback.to_json(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Message":
        if not isinstance(data, dict):
            raise ValueError(f"Message must be an object, got {type(data).__name__}")
        msg_id = data.get("id")
        content = data.get("content")
        timestamp = data.get("timestamp")
        if not isinstance(msg_id, str) or not msg_id:
            raise ValueError("Message id must be a non-empty string.")
        if not isinstance(content, str):
            raise ValueError("Message content must be a string.")
        if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
            raise ValueError("Message timestamp must be a number.")
        return cls(
            id=msg_id,
            role=Role(data.get("role")),
            content=content,
            timestamp=int(timestamp),
            feedback=Feedback.from_json(data.get("feedback")),
        )


@dataclass(frozen=True)
class ChatSession:
    id: str
    title: str = DEFAULT_TITLE
    messages: tuple[Message, ...] = ()
    created_at: int = field(default_factory=now_ms)

    @classmethod
    def new(cls, title: str = DEFAULT_TITLE) -> "ChatSession":
        return cls(id=new_id(), title=title)

    @property
    def has_generic_title(self) -> bool:
        return self.title in GENERIC_TITLES

    def find_message(self, message_id: str) -> Optional[Message]:
        return next((m for m in self.messages if m.id == message_id), None)

    def replace_message(self, message_id: str, **changes: Any) -> "ChatSession":
        """Copy-on-write update of a single message; other messages are shared."""
        messages = tuple(
            replace(m, **changes) if m.id == message_id else m for m in self.messages
        )
        return replace(self, messages=messages)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "messages": [m.to_dict() for m in self.messages],
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ChatSession":
        if not isinstance(data, dict):
            raise ValueError(f"Session must be an object, got {type(data).__name__}")
        session_id = data.get("id")
        if not isinstance(session_id, str) or not session_id:
            raise ValueError("Session id must be a non-empty string.")
        raw_messages = data.get("messages") or []
        if not isinstance(raw_messages, list):
            raise ValueError("Session messages must be a list.")
        created_at = data.get("createdAt", 0)
        if isinstance(created_at, bool) or not isinstance(created_at, (int, float)):
            raise ValueError("Session createdAt must be a number.")
        return cls(
            id=session_id,
            title=str(data.get("title") or DEFAULT_TITLE),
            messages=tuple(Message.from_dict(m) for m in raw_messages),
            created_at=int(created_at),
        )


@dataclass
class LLMSettings:
    model: str
    temperature: float = 0.7
    top_p: float = 1.0
    max_tokens: int = 1024
    response_format: Optional[dict] = None
