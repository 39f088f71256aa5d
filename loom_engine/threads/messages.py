"""Chat message records."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any

from ..utils import now_ms

ROLES = ("user", "assistant")
INHERITED_TEXT = "Inherited from parent node"


@dataclass(frozen=True)
class ChatMessage:
    id: str
    role: str
    text: str | None = None
    image_url: str | None = None
    video_url: str | None = None
    timestamp: int = 0
    inherited: bool = False

    def __post_init__(self) -> None:
        if self.role not in ROLES:
            raise ValueError(f"Unknown message role: {self.role!r}")
        if self.image_url and self.video_url:
            raise ValueError("A message references either an image or a video, not both.")

    @property
    def has_media(self) -> bool:
        return bool(self.image_url or self.video_url)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"id": self.id, "role": self.role, "timestamp": self.timestamp}
        if self.text is not None:
            payload["text"] = self.text
        if self.image_url:
            payload["imageUrl"] = self.image_url
        if self.video_url:
            payload["videoUrl"] = self.video_url
        if self.inherited:
            payload["inherited"] = True
        return payload


def _message_id(suffix: str) -> str:
    return f"{now_ms()}-{uuid.uuid4().hex[:6]}-{suffix}"


def user_message(text: str) -> ChatMessage:
    return ChatMessage(id=_message_id("u"), role="user", text=text, timestamp=now_ms())


def assistant_media_message(*, image_url: str | None = None, video_url: str | None = None) -> ChatMessage:
    return ChatMessage(
        id=_message_id("a"),
        role="assistant",
        image_url=image_url,
        video_url=video_url,
        timestamp=now_ms(),
    )


def assistant_error_message(error: str) -> ChatMessage:
    return ChatMessage(id=_message_id("a-err"), role="assistant", text=f"Error: {error}", timestamp=now_ms())


def inherited_message(source: ChatMessage) -> ChatMessage:
    return ChatMessage(
        id=_message_id("inherited"),
        role="assistant",
        text=INHERITED_TEXT,
        image_url=source.image_url,
        video_url=source.video_url,
        timestamp=now_ms(),
        inherited=True,
    )
