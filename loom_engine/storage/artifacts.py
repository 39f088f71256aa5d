"""Artifact serving store: persist bytes, hand back a dereferenceable URL path."""

from __future__ import annotations

import mimetypes
import uuid
from pathlib import Path
from typing import Protocol

from ..threads.sessions import is_valid_session_id
from ..utils import ensure_dir, now_ms

_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/webp": "webp",
    "video/mp4": "mp4",
    "video/webm": "webm",
}


class ArtifactStore(Protocol):
    def persist(self, session_id: str, data: bytes, mime_type: str) -> str:
        ...


def extension_for_mime(mime_type: str) -> str:
    lowered = str(mime_type or "").strip().lower()
    if lowered in _EXTENSIONS:
        return _EXTENSIONS[lowered]
    guessed = mimetypes.guess_extension(lowered) if lowered else None
    if guessed:
        return guessed.lstrip(".")
    return "bin"


class FileArtifactStore:
    def __init__(self, root: Path, url_prefix: str = "/outputs") -> None:
        self.root = Path(root)
        self.url_prefix = "/" + url_prefix.strip("/")

    def persist(self, session_id: str, data: bytes, mime_type: str) -> str:
        if not is_valid_session_id(session_id):
            raise ValueError(f"Refusing to persist under session id {session_id!r}")
        directory = self.root / session_id
        ensure_dir(directory)
        filename = f"{now_ms()}-{uuid.uuid4().hex[:8]}.{extension_for_mime(mime_type)}"
        path = directory / filename
        # Write then rename so a reader never sees a half-written artifact.
        tmp_path = directory / f".{filename}.tmp"
        tmp_path.write_bytes(data)
        tmp_path.replace(path)
        return f"{self.url_prefix}/{session_id}/{filename}"

    def resolve(self, locator: str) -> Path | None:
        prefix = f"{self.url_prefix}/"
        if not locator.startswith(prefix):
            return None
        relative = locator[len(prefix):]
        parts = relative.split("/")
        if len(parts) != 2 or not is_valid_session_id(parts[0]) or parts[1] in {"", ".", ".."}:
            return None
        return self.root / parts[0] / parts[1]
