from __future__ import annotations

import base64
import io
import json
from urllib.error import HTTPError

import pytest

from loom_engine.errors import ConfigurationError, NoArtifactFoundError, UpstreamHttpError
from loom_engine.providers.base import Artifact, GenerationRequest
from loom_engine.providers.gemini import GeminiImageProvider, build_request_body, extract_image
from loom_engine.providers.templates import IMAGE_SYSTEM_PROMPT, VIDEO_SYSTEM_PROMPT, resolve_template
from loom_engine.settings import LoomSettings


class DummyResponse:
    def __init__(self, payload: dict, status: int = 200) -> None:
        self._payload = payload
        self.status = status

    def read(self) -> bytes:
        return json.dumps(self._payload).encode("utf-8")

    def __enter__(self) -> "DummyResponse":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        return False


def _inline_payload(data: bytes, key: str = "inline_data") -> dict:
    return {
        "candidates": [
            {
                "content": {
                    "parts": [
                        {"text": "Here is your logo"},
                        {key: {"mime_type": "image/png", "data": base64.b64encode(data).decode("ascii")}},
                    ]
                }
            }
        ]
    }


def _settings() -> LoomSettings:
    return LoomSettings(api_base="https://api.example.test", api_key="test-key")


def test_request_body_shape_with_base() -> None:
    body = build_request_body(prompt="add a hat", base=Artifact(b"base-png", "image/png"), instruction="sys")
    assert body["system_instruction"] == {"role": "system", "parts": [{"text": "sys"}]}
    assert body["contents"][0]["role"] == "user"
    parts = body["contents"][0]["parts"]
    assert parts[0]["inline_data"]["mime_type"] == "image/png"
    assert base64.b64decode(parts[0]["inline_data"]["data"]) == b"base-png"
    assert parts[1] == {"text": "add a hat"}


def test_request_body_without_base_has_only_text() -> None:
    body = build_request_body(prompt="a cat logo", base=None, instruction="sys")
    assert body["contents"][0]["parts"] == [{"text": "a cat logo"}]


def test_provider_posts_to_generate_content(monkeypatch) -> None:
    captured: dict[str, object] = {}

    def fake_urlopen(req, timeout=0):
        captured["url"] = req.full_url
        captured["method"] = req.get_method()
        captured["body"] = json.loads(req.data.decode("utf-8"))
        captured["timeout"] = timeout
        return DummyResponse(_inline_payload(b"generated-png"))

    monkeypatch.setattr("loom_engine.providers.google_http.urlopen", fake_urlopen)

    provider = GeminiImageProvider(_settings())
    media = provider.generate(GenerationRequest(prompt="a cat logo", model="gemini-2.5-flash-image-preview"))

    assert media.data == b"generated-png"
    assert media.mime_type == "image/png"
    assert media.metadata["source"] == "inline_data"
    assert captured["method"] == "POST"
    assert captured["url"] == (
        "https://api.example.test/v1beta/models/gemini-2.5-flash-image-preview:generateContent?key=test-key"
    )
    body = captured["body"]
    assert isinstance(body, dict)
    assert body["system_instruction"]["parts"][0]["text"] == IMAGE_SYSTEM_PROMPT
    assert body["contents"][0]["parts"] == [{"text": "a cat logo"}]


def test_provider_uses_default_model_for_non_gemini_ids(monkeypatch) -> None:
    urls: list[str] = []

    def fake_urlopen(req, timeout=0):
        urls.append(req.full_url)
        return DummyResponse(_inline_payload(b"png"))

    monkeypatch.setattr("loom_engine.providers.google_http.urlopen", fake_urlopen)
    provider = GeminiImageProvider(_settings())
    provider.generate(GenerationRequest(prompt="x", model="dall-e-3"))
    assert "/models/gemini-2.5-flash-image-preview:generateContent" in urls[0]


def test_provider_template_selects_instruction(monkeypatch) -> None:
    bodies: list[dict] = []

    def fake_urlopen(req, timeout=0):
        bodies.append(json.loads(req.data.decode("utf-8")))
        return DummyResponse(_inline_payload(b"png"))

    monkeypatch.setattr("loom_engine.providers.google_http.urlopen", fake_urlopen)
    provider = GeminiImageProvider(_settings())
    provider.generate(GenerationRequest(prompt="x", template="product"))
    provider.generate(GenerationRequest(prompt="x", template="no-such-template"))
    provider.generate(GenerationRequest(prompt="x", model="veo-3"))

    instructions = [body["system_instruction"]["parts"][0]["text"] for body in bodies]
    assert instructions[0] == resolve_template("product").instruction
    assert instructions[1] == IMAGE_SYSTEM_PROMPT
    assert instructions[2] == VIDEO_SYSTEM_PROMPT


def test_extract_image_accepts_camel_case_inline_data() -> None:
    data, mime, source = extract_image(_inline_payload(b"camel", key="inlineData"))
    assert (data, mime, source) == (b"camel", "image/png", "inline_data")


def test_extract_image_accepts_data_uri_text_part() -> None:
    encoded = base64.b64encode(b"uri-bytes").decode("ascii")
    payload = {"candidates": [{"content": {"parts": [{"text": f"data:image/jpeg;base64,{encoded}"}]}}]}
    assert extract_image(payload) == (b"uri-bytes", "image/jpeg", "data_uri")


def test_extract_image_accepts_top_level_images() -> None:
    encoded = base64.b64encode(b"legacy").decode("ascii")
    payload = {"images": [{"data": encoded, "mime_type": "image/webp"}]}
    assert extract_image(payload) == (b"legacy", "image/webp", "images")


def test_extract_image_text_only_response_raises() -> None:
    payload = {"candidates": [{"content": {"parts": [{"text": "I cannot draw that."}]}}]}
    with pytest.raises(NoArtifactFoundError):
        extract_image(payload)


def test_http_error_carries_status_and_body(monkeypatch) -> None:
    def fake_urlopen(req, timeout=0):
        body = io.BytesIO(b'{"error": {"message": "quota exhausted"}}')
        raise HTTPError(req.full_url, 429, "Too Many Requests", {}, body)

    monkeypatch.setattr("loom_engine.providers.google_http.urlopen", fake_urlopen)
    provider = GeminiImageProvider(_settings())
    with pytest.raises(UpstreamHttpError) as excinfo:
        provider.generate(GenerationRequest(prompt="x"))
    assert excinfo.value.status == 429
    assert "quota exhausted" in excinfo.value.body
    assert str(excinfo.value).startswith("Gemini API error 429")


def test_missing_api_key_raises_before_network(monkeypatch) -> None:
    def fake_urlopen(req, timeout=0):
        raise AssertionError("network should not be reached")

    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    monkeypatch.setattr("loom_engine.providers.google_http.urlopen", fake_urlopen)
    provider = GeminiImageProvider(LoomSettings())
    with pytest.raises(ConfigurationError, match="GOOGLE_API_KEY"):
        provider.generate(GenerationRequest(prompt="x"))
