from __future__ import annotations

import os
from pathlib import Path

import pytest

from loom_engine.errors import ConfigurationError
from loom_engine.settings import LoomSettings
from loom_engine.utils import load_dotenv


def test_settings_defaults(monkeypatch) -> None:
    for key in (
        "GOOGLE_API_BASE",
        "GEMINI_IMAGE_MODEL",
        "VEO_3_MODEL",
        "LOOM_OUTPUT_DIR",
        "LOOM_THEMES_DIR",
        "LOOM_VIDEO_POLL_INTERVAL",
        "LOOM_VIDEO_POLL_ATTEMPTS",
        "LOOM_REQUEST_TIMEOUT",
    ):
        monkeypatch.delenv(key, raising=False)
    settings = LoomSettings.from_env()
    assert settings.api_base == "https://generativelanguage.googleapis.com"
    assert settings.image_model == "gemini-2.5-flash-image-preview"
    assert settings.video_model == "veo-3"
    assert settings.output_dir == Path("public") / "outputs"
    assert settings.poll_interval_s == 5.0
    assert settings.poll_attempts == 40


def test_settings_env_overrides(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("GOOGLE_API_BASE", "https://proxy.example.test/")
    monkeypatch.setenv("VEO_3_MODEL", "veo-3.0-generate-preview")
    monkeypatch.setenv("LOOM_OUTPUT_DIR", str(tmp_path))
    monkeypatch.setenv("LOOM_VIDEO_POLL_INTERVAL", "0.5")
    monkeypatch.setenv("LOOM_VIDEO_POLL_ATTEMPTS", "not-a-number")
    settings = LoomSettings.from_env()
    assert settings.api_base == "https://proxy.example.test"
    assert settings.video_model == "veo-3.0-generate-preview"
    assert settings.output_dir == tmp_path
    assert settings.poll_interval_s == 0.5
    assert settings.poll_attempts == 40


def test_require_api_key(monkeypatch) -> None:
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    with pytest.raises(ConfigurationError, match="Missing GOOGLE_API_KEY"):
        LoomSettings().require_api_key()
    monkeypatch.setenv("GOOGLE_API_KEY", "from-env")
    assert LoomSettings().require_api_key() == "from-env"
    assert LoomSettings(api_key="explicit").require_api_key() == "explicit"


def test_load_dotenv_respects_existing_values(monkeypatch, tmp_path: Path) -> None:
    env_path = tmp_path / ".env"
    env_path.write_text(
        "# comment\nexport GOOGLE_API_KEY='dotenv-key'\nGEMINI_IMAGE_MODEL=gemini-custom\n",
        encoding="utf-8",
    )
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    monkeypatch.setenv("GEMINI_IMAGE_MODEL", "already-set")

    assert load_dotenv(env_path) is True
    assert os.environ["GOOGLE_API_KEY"] == "dotenv-key"
    assert os.environ["GEMINI_IMAGE_MODEL"] == "already-set"
    assert load_dotenv(tmp_path / "missing.env") is False
