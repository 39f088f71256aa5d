"""In-memory session/thread registry.

Sessions map thread ids to threads. Locks are taken in one direction only
(store -> session -> thread) and a thread lock is never held while waiting
on the network.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

from ..providers.base import Artifact
from ..utils import now_utc_iso
from .messages import ChatMessage

DEFAULT_THREAD_ID = "default"


@dataclass
class Thread:
    thread_id: str
    messages: list[ChatMessage] = field(default_factory=list)
    last_artifact: Artifact | None = None
    parent_id: str | None = None
    created_at: str = field(default_factory=now_utc_iso)
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)


@dataclass(frozen=True)
class ThreadSnapshot:
    thread_id: str
    messages: tuple[ChatMessage, ...]
    last_artifact: Artifact | None
    parent_id: str | None

    @property
    def has_artifact(self) -> bool:
        return self.last_artifact is not None


@dataclass
class _Session:
    session_id: str
    threads: dict[str, Thread] = field(default_factory=dict)
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)


class ThreadStore:
    def __init__(self) -> None:
        self._sessions: dict[str, _Session] = {}
        self._lock = threading.Lock()

    def _session(self, session_id: str) -> _Session:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                session = _Session(session_id)
                self._sessions[session_id] = session
            return session

    def session_count(self) -> int:
        with self._lock:
            return len(self._sessions)

    def get_or_create_thread(self, session_id: str, thread_id: str = DEFAULT_THREAD_ID) -> Thread:
        session = self._session(session_id)
        with session.lock:
            thread = session.threads.get(thread_id)
            if thread is None:
                thread = Thread(thread_id=thread_id)
                session.threads[thread_id] = thread
            return thread

    def has_thread(self, session_id: str, thread_id: str) -> bool:
        session = self._session(session_id)
        with session.lock:
            return thread_id in session.threads

    def list_threads(self, session_id: str) -> list[str]:
        session = self._session(session_id)
        with session.lock:
            return list(session.threads.keys())

    def append_message(self, session_id: str, thread_id: str, message: ChatMessage) -> None:
        thread = self.get_or_create_thread(session_id, thread_id)
        with thread.lock:
            thread.messages.append(message)

    def set_last_artifact(self, session_id: str, thread_id: str, data: bytes, mime_type: str) -> None:
        thread = self.get_or_create_thread(session_id, thread_id)
        artifact = Artifact(data=bytes(data), mime_type=mime_type)
        with thread.lock:
            thread.last_artifact = artifact

    def record_image(self, session_id: str, thread_id: str, message: ChatMessage, data: bytes, mime_type: str) -> None:
        thread = self.get_or_create_thread(session_id, thread_id)
        artifact = Artifact(data=bytes(data), mime_type=mime_type)
        with thread.lock:
            thread.last_artifact = artifact
            thread.messages.append(message)

    def get_last_artifact(self, session_id: str, thread_id: str) -> Artifact | None:
        thread = self.get_or_create_thread(session_id, thread_id)
        with thread.lock:
            artifact = thread.last_artifact
        return artifact.copy() if artifact is not None else None

    def get_messages(self, session_id: str, thread_id: str) -> list[ChatMessage]:
        thread = self.get_or_create_thread(session_id, thread_id)
        with thread.lock:
            return list(thread.messages)

    def snapshot(self, session_id: str, thread_id: str) -> ThreadSnapshot:
        thread = self.get_or_create_thread(session_id, thread_id)
        with thread.lock:
            messages = tuple(thread.messages)
            artifact = thread.last_artifact
            parent_id = thread.parent_id
        return ThreadSnapshot(
            thread_id=thread_id,
            messages=messages,
            last_artifact=artifact.copy() if artifact is not None else None,
            parent_id=parent_id,
        )

    def put_thread(self, session_id: str, thread: Thread) -> None:
        session = self._session(session_id)
        with session.lock:
            session.threads[thread.thread_id] = thread

    def add_thread_if_absent(self, session_id: str, thread_id: str) -> bool:
        session = self._session(session_id)
        with session.lock:
            if thread_id in session.threads:
                return False
            session.threads[thread_id] = Thread(thread_id=thread_id)
            return True

    def remove_thread(self, session_id: str, thread_id: str) -> bool:
        session = self._session(session_id)
        with session.lock:
            thread = session.threads.pop(thread_id, None)
            if thread is None:
                return False
            # Wait out any in-flight append/clone on this thread before reporting removal.
            with thread.lock:
                return True
