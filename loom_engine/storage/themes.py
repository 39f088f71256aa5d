"""Theme images read from a static directory."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

THEME_SUFFIXES = (".png", ".jpg", ".jpeg", ".webp")


class ThemeStore(Protocol):
    def load(self, name: str) -> bytes | None:
        ...

    def list(self) -> list[str]:
        ...


class FileThemeStore:
    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def load(self, name: str) -> bytes | None:
        safe_name = Path(str(name or "").strip()).name
        if not safe_name or safe_name in {".", ".."}:
            return None
        path = self.root / safe_name
        try:
            if not path.is_file():
                return None
            return path.read_bytes()
        except OSError:
            return None

    def list(self) -> list[str]:
        try:
            entries = list(self.root.iterdir())
        except OSError:
            return []
        names = [entry.name for entry in entries if entry.is_file() and entry.suffix.lower() in THEME_SUFFIXES]
        return sorted(names)

    def url_for(self, name: str) -> str:
        return f"/themes/{Path(name).name}"
