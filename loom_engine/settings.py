"""Process-wide configuration resolved from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from .errors import ConfigurationError
from .utils import getenv_float, getenv_int

DEFAULT_API_BASE = "https://generativelanguage.googleapis.com"
DEFAULT_IMAGE_MODEL = "gemini-2.5-flash-image-preview"
DEFAULT_VIDEO_MODEL = "veo-3"
DEFAULT_POLL_INTERVAL_S = 5.0
DEFAULT_POLL_ATTEMPTS = 40
DEFAULT_REQUEST_TIMEOUT_S = 120.0


@dataclass(frozen=True)
class LoomSettings:
    api_base: str = DEFAULT_API_BASE
    image_model: str = DEFAULT_IMAGE_MODEL
    video_model: str = DEFAULT_VIDEO_MODEL
    output_dir: Path = Path("public") / "outputs"
    themes_dir: Path = Path("public") / "themes"
    poll_interval_s: float = DEFAULT_POLL_INTERVAL_S
    poll_attempts: int = DEFAULT_POLL_ATTEMPTS
    request_timeout_s: float = DEFAULT_REQUEST_TIMEOUT_S
    api_key: str | None = None

    @classmethod
    def from_env(cls) -> "LoomSettings":
        return cls(
            api_base=(os.getenv("GOOGLE_API_BASE") or DEFAULT_API_BASE).rstrip("/"),
            image_model=os.getenv("GEMINI_IMAGE_MODEL") or DEFAULT_IMAGE_MODEL,
            video_model=os.getenv("VEO_3_MODEL") or DEFAULT_VIDEO_MODEL,
            output_dir=Path(os.getenv("LOOM_OUTPUT_DIR") or cls.output_dir),
            themes_dir=Path(os.getenv("LOOM_THEMES_DIR") or cls.themes_dir),
            poll_interval_s=getenv_float("LOOM_VIDEO_POLL_INTERVAL", DEFAULT_POLL_INTERVAL_S),
            poll_attempts=max(1, getenv_int("LOOM_VIDEO_POLL_ATTEMPTS", DEFAULT_POLL_ATTEMPTS)),
            request_timeout_s=getenv_float("LOOM_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT_S),
        )

    def require_api_key(self) -> str:
        # The key is looked up at first use so a missing credential never blocks startup.
        api_key = self.api_key or os.getenv("GOOGLE_API_KEY")
        if not api_key:
            raise ConfigurationError("Missing GOOGLE_API_KEY in environment")
        return api_key
