from __future__ import annotations

import json
from pathlib import Path

from loom_engine.runs.events import EventWriter


def test_event_writer(tmp_path: Path) -> None:
    path = tmp_path / "events.jsonl"
    writer = EventWriter(path, "run-123")
    writer.emit("engine_started", providers=["dryrun", "gemini"])
    lines = path.read_text(encoding="utf-8").strip().splitlines()
    assert len(lines) == 1
    payload = json.loads(lines[0])
    assert payload["type"] == "engine_started"
    assert payload["run_id"] == "run-123"
    assert "ts" in payload
    assert payload["providers"] == ["dryrun", "gemini"]


def test_event_writer_omits_binary_payloads(tmp_path: Path) -> None:
    path = tmp_path / "events.jsonl"
    writer = EventWriter(path, "run-123")
    writer.emit("base_selected", data="aGVsbG8=", raw=b"\x89PNG", nested={"key": "secret", "size": 3})
    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["data"] == "<omitted>"
    assert payload["raw"] == "<bytes:4>"
    assert payload["nested"] == {"key": "<omitted>", "size": 3}


def test_event_writer_without_path_returns_event() -> None:
    writer = EventWriter(None, "run-123")
    event = writer.emit("thread_created", thread_id="default")
    assert event["type"] == "thread_created"
    assert event["thread_id"] == "default"
