"""Thread creation, forking and deletion."""

from __future__ import annotations

from ..runs.events import EventWriter
from ..utils import random_thread_id
from .messages import inherited_message
from .store import DEFAULT_THREAD_ID, Thread, ThreadStore


class BranchManager:
    def __init__(self, store: ThreadStore, events: EventWriter | None = None) -> None:
        self.store = store
        self.events = events

    def _emit(self, event_type: str, **payload) -> None:
        if self.events is not None:
            self.events.emit(event_type, **payload)

    def create_thread(self, session_id: str, thread_id: str | None = None) -> str:
        new_id = thread_id or random_thread_id()
        created = self.store.add_thread_if_absent(session_id, new_id)
        if created:
            self._emit("thread_created", session_id=session_id, thread_id=new_id)
        return new_id

    def clone_thread(
        self,
        session_id: str,
        source_thread_id: str = DEFAULT_THREAD_ID,
        new_thread_id: str | None = None,
    ) -> str:
        """Fork ``source_thread_id`` into a new, fully independent thread.

        The clone gets a copy of the source's message log and an independent
        copy of its artifact bytes. When the source has any image or video
        message, one extra assistant message marked ``inherited`` and pointing
        at the latest such artifact is appended after the copied log.
        """
        new_id = new_thread_id or random_thread_id()
        source = self.store.get_or_create_thread(session_id, source_thread_id)
        with source.lock:
            messages = list(source.messages)
            artifact = source.last_artifact.copy() if source.last_artifact is not None else None

        latest_media = next((message for message in reversed(messages) if message.has_media), None)
        if latest_media is not None:
            messages.append(inherited_message(latest_media))

        clone = Thread(
            thread_id=new_id,
            messages=messages,
            last_artifact=artifact,
            parent_id=source_thread_id,
        )
        self.store.put_thread(session_id, clone)
        self._emit(
            "thread_cloned",
            session_id=session_id,
            source_thread_id=source_thread_id,
            thread_id=new_id,
            message_count=len(messages),
            has_artifact=artifact is not None,
            inherited=latest_media is not None,
        )
        return new_id

    def delete_thread(self, session_id: str, thread_id: str) -> bool:
        removed = self.store.remove_thread(session_id, thread_id)
        self._emit("thread_deleted", session_id=session_id, thread_id=thread_id, existed=removed)
        return removed
