"""Chat message and append-only transcript models."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterator, Literal, Optional


def _utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""

    return datetime.now(timezone.utc)


ChatRole = Literal["user", "assistant"]


@dataclass(frozen=True, slots=True)
class ChatMessage:
    """A single transcript row."""

    role: ChatRole
    content: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: datetime = field(default_factory=_utcnow)
    is_error: bool = False
    insertable: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the message for display layers and logs."""

        payload: Dict[str, Any] = {
            "id": self.id,
            "role": self.role,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
            "is_error": self.is_error,
        }
        if self.insertable is not None:
            payload["insertable"] = self.insertable
        return payload


class Transcript:
    """Ordered, append-only list of :class:`ChatMessage`.

    Display order is append order. Timestamps never decrease: a message whose
    clock reading is older than the last entry is stamped with the last
    entry's time instead.
    """

    def __init__(self, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._messages: list[ChatMessage] = []
        self._clock = clock

    def append(
        self,
        role: ChatRole,
        content: str,
        *,
        is_error: bool = False,
        insertable: str | None = None,
    ) -> ChatMessage:
        timestamp = self._clock()
        if self._messages and timestamp < self._messages[-1].timestamp:
            timestamp = self._messages[-1].timestamp
        message = ChatMessage(
            role=role,
            content=content,
            timestamp=timestamp,
            is_error=is_error,
            insertable=insertable,
        )
        self._messages.append(message)
        return message

    def get(self, message_id: str) -> ChatMessage:
        for message in self._messages:
            if message.id == message_id:
                return message
        raise KeyError(message_id)

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        return tuple(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[ChatMessage]:
        return iter(tuple(self._messages))


__all__ = ["ChatMessage", "ChatRole", "Transcript"]
