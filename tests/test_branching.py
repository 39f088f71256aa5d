from __future__ import annotations

import json
from pathlib import Path

from loom_engine.runs.events import EventWriter
from loom_engine.threads.branches import BranchManager
from loom_engine.threads.messages import INHERITED_TEXT, assistant_media_message, user_message
from loom_engine.threads.store import DEFAULT_THREAD_ID, ThreadStore


def _seed(store: ThreadStore, session: str = "sess") -> None:
    store.append_message(session, DEFAULT_THREAD_ID, user_message("a cat logo"))
    store.append_message(session, DEFAULT_THREAD_ID, assistant_media_message(image_url="/outputs/sess/1.png"))
    store.append_message(session, DEFAULT_THREAD_ID, user_message("make it blue"))
    store.append_message(session, DEFAULT_THREAD_ID, assistant_media_message(image_url="/outputs/sess/2.png"))
    store.set_last_artifact(session, DEFAULT_THREAD_ID, b"png-2", "image/png")


def test_clone_copies_log_and_appends_inherited_message() -> None:
    store = ThreadStore()
    _seed(store)
    branches = BranchManager(store)

    new_id = branches.clone_thread("sess", DEFAULT_THREAD_ID, "fork-1")

    assert new_id == "fork-1"
    source = store.get_messages("sess", DEFAULT_THREAD_ID)
    clone = store.get_messages("sess", "fork-1")
    assert len(source) == 4
    assert len(clone) == 5
    assert clone[:4] == source
    inherited = clone[-1]
    assert inherited.inherited is True
    assert inherited.role == "assistant"
    assert inherited.text == INHERITED_TEXT
    assert inherited.image_url == "/outputs/sess/2.png"
    assert store.snapshot("sess", "fork-1").parent_id == DEFAULT_THREAD_ID


def test_clone_without_media_adds_no_inherited_message() -> None:
    store = ThreadStore()
    store.append_message("sess", DEFAULT_THREAD_ID, user_message("hello"))
    new_id = BranchManager(store).clone_thread("sess")
    assert new_id.startswith("t-")
    assert len(store.get_messages("sess", new_id)) == 1
    assert store.get_last_artifact("sess", new_id) is None


def test_clone_artifact_is_independent() -> None:
    store = ThreadStore()
    _seed(store)
    BranchManager(store).clone_thread("sess", DEFAULT_THREAD_ID, "fork-1")

    store.set_last_artifact("sess", "fork-1", b"fork-png", "image/png")
    source = store.get_last_artifact("sess", DEFAULT_THREAD_ID)
    clone = store.get_last_artifact("sess", "fork-1")
    assert source is not None and source.data == b"png-2"
    assert clone is not None and clone.data == b"fork-png"


def test_clone_then_append_does_not_touch_source() -> None:
    store = ThreadStore()
    _seed(store)
    BranchManager(store).clone_thread("sess", DEFAULT_THREAD_ID, "fork-1")
    store.append_message("sess", "fork-1", user_message("only on the fork"))
    assert len(store.get_messages("sess", DEFAULT_THREAD_ID)) == 4
    assert len(store.get_messages("sess", "fork-1")) == 6


def test_delete_source_leaves_clone_intact() -> None:
    store = ThreadStore()
    _seed(store)
    branches = BranchManager(store)
    branches.clone_thread("sess", DEFAULT_THREAD_ID, "fork-1")

    assert branches.delete_thread("sess", DEFAULT_THREAD_ID) is True
    assert not store.has_thread("sess", DEFAULT_THREAD_ID)
    assert len(store.get_messages("sess", "fork-1")) == 5
    artifact = store.get_last_artifact("sess", "fork-1")
    assert artifact is not None and artifact.data == b"png-2"


def test_create_thread_is_idempotent_and_emits_once(tmp_path: Path) -> None:
    events_path = tmp_path / "events.jsonl"
    store = ThreadStore()
    branches = BranchManager(store, EventWriter(events_path, "run-1"))

    assert branches.create_thread("sess", "named") == "named"
    store.append_message("sess", "named", user_message("keep me"))
    assert branches.create_thread("sess", "named") == "named"
    assert len(store.get_messages("sess", "named")) == 1

    branches.clone_thread("sess", "named", "copy")
    branches.delete_thread("sess", "missing")

    events = [json.loads(line) for line in events_path.read_text(encoding="utf-8").splitlines()]
    types = [event["type"] for event in events]
    assert types == ["thread_created", "thread_cloned", "thread_deleted"]
    assert events[1]["source_thread_id"] == "named"
    assert events[2]["existed"] is False
