from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from loom_engine.threads.messages import ChatMessage, assistant_media_message, user_message
from loom_engine.threads.sessions import (
    SESSION_COOKIE_NAME,
    SESSION_MAX_AGE_S,
    get_or_create_session_id,
    is_valid_session_id,
    new_session_id,
)
from loom_engine.threads.store import DEFAULT_THREAD_ID, ThreadStore


def test_get_or_create_is_idempotent_under_concurrency() -> None:
    store = ThreadStore()
    barrier = threading.Barrier(16)

    def worker(_: int):
        barrier.wait()
        return store.get_or_create_thread("sess", "shared")

    with ThreadPoolExecutor(max_workers=16) as pool:
        threads = list(pool.map(worker, range(16)))

    assert all(thread is threads[0] for thread in threads)
    assert store.list_threads("sess") == ["shared"]
    assert store.session_count() == 1


def test_concurrent_appends_are_all_kept() -> None:
    store = ThreadStore()

    def worker(index: int) -> None:
        store.append_message("sess", DEFAULT_THREAD_ID, user_message(f"prompt {index}"))

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(worker, range(200)))

    messages = store.get_messages("sess", DEFAULT_THREAD_ID)
    assert len(messages) == 200
    assert {message.text for message in messages} == {f"prompt {index}" for index in range(200)}


def test_sessions_are_isolated() -> None:
    store = ThreadStore()
    store.append_message("a", DEFAULT_THREAD_ID, user_message("hello"))
    store.set_last_artifact("a", DEFAULT_THREAD_ID, b"png", "image/png")

    assert store.get_messages("b", DEFAULT_THREAD_ID) == []
    assert store.get_last_artifact("b", DEFAULT_THREAD_ID) is None
    assert store.session_count() == 2


def test_last_artifact_is_returned_as_a_copy() -> None:
    store = ThreadStore()
    source = bytearray(b"original")
    store.set_last_artifact("sess", "t", source, "image/png")
    source[:] = b"mutated!"

    artifact = store.get_last_artifact("sess", "t")
    assert artifact is not None
    assert artifact.data == b"original"
    assert artifact.mime_type == "image/png"


def test_messages_returned_are_a_snapshot() -> None:
    store = ThreadStore()
    store.append_message("sess", "t", user_message("one"))
    messages = store.get_messages("sess", "t")
    store.append_message("sess", "t", assistant_media_message(image_url="/outputs/sess/1.png"))
    assert len(messages) == 1
    snapshot = store.snapshot("sess", "t")
    assert len(snapshot.messages) == 2
    assert not snapshot.has_artifact


def test_remove_thread_reports_existence() -> None:
    store = ThreadStore()
    store.get_or_create_thread("sess", "t")
    assert store.remove_thread("sess", "t") is True
    assert store.remove_thread("sess", "t") is False
    assert not store.has_thread("sess", "t")


def test_message_rejects_image_and_video_together() -> None:
    with pytest.raises(ValueError):
        ChatMessage(id="1", role="assistant", image_url="/a.png", video_url="/a.mp4")


def test_message_to_dict_uses_wire_names() -> None:
    message = assistant_media_message(video_url="/outputs/s/v.mp4")
    payload = message.to_dict()
    assert payload["role"] == "assistant"
    assert payload["videoUrl"] == "/outputs/s/v.mp4"
    assert "imageUrl" not in payload
    assert "inherited" not in payload


def test_session_ids() -> None:
    sid = new_session_id()
    assert len(sid) == 32
    assert is_valid_session_id(sid)
    assert get_or_create_session_id(sid) == sid
    assert not is_valid_session_id("../etc")
    assert not is_valid_session_id("")
    assert get_or_create_session_id("../etc") != "../etc"
    assert SESSION_COOKIE_NAME == "lc_session"
    assert SESSION_MAX_AGE_S == 7 * 24 * 60 * 60


def test_record_image_publishes_message_and_artifact_together() -> None:
    store = ThreadStore()
    message = assistant_media_message(image_url="/outputs/sess/1.png")
    store.record_image("sess", "t", message, b"png", "image/png")

    snapshot = store.snapshot("sess", "t")
    assert snapshot.messages == (message,)
    assert snapshot.last_artifact is not None
    assert snapshot.last_artifact.data == b"png"
