"""Gemini image provider (generateContent over REST)."""

from __future__ import annotations

import base64
import binascii
import re
from typing import Any, Mapping, Sequence

from ..errors import NoArtifactFoundError
from ..models.registry import IMAGE_MODEL_PATTERN
from ..settings import DEFAULT_VIDEO_MODEL, LoomSettings
from .base import Artifact, GeneratedMedia, GenerationRequest
from .google_http import model_url, post_json
from .templates import system_instruction

DEFAULT_IMAGE_MIME = "image/png"
_DATA_URI_RE = re.compile(r"^data:(image/[a-zA-Z0-9.+-]+);base64,(.*)$", re.DOTALL)


class GeminiImageProvider:
    name = "gemini"

    def __init__(self, settings: LoomSettings | None = None) -> None:
        self.settings = settings or LoomSettings.from_env()
        self._api_key: str | None = None

    def _resolve_api_key(self) -> str:
        if self._api_key is None:
            self._api_key = self.settings.require_api_key()
        return self._api_key

    def resolve_model(self, requested: str | None) -> str:
        if requested and IMAGE_MODEL_PATTERN.search(requested):
            return requested
        return self.settings.image_model

    def generate(self, request: GenerationRequest) -> GeneratedMedia:
        api_key = self._resolve_api_key()
        model = self.resolve_model(request.model)
        video = _is_video_model_id(request.model, self.settings)
        body = build_request_body(
            prompt=request.prompt,
            base=request.base,
            instruction=system_instruction(request.template, video=video),
        )
        payload = post_json(
            model_url(self.settings.api_base, model, "generateContent", api_key),
            body,
            label="Gemini",
            timeout_s=self.settings.request_timeout_s,
        )
        data, mime_type, source = extract_image(payload)
        return GeneratedMedia(
            data=data,
            mime_type=mime_type,
            model=model,
            metadata={"source": source, "candidates": len(payload.get("candidates") or [])},
        )


def _is_video_model_id(model: str | None, settings: LoomSettings) -> bool:
    if not model:
        return False
    return model in {settings.video_model, DEFAULT_VIDEO_MODEL}


def build_request_body(*, prompt: str, base: Artifact | None, instruction: str) -> dict[str, Any]:
    user_parts: list[dict[str, Any]] = []
    if base is not None and base.data:
        user_parts.append(
            {
                "inline_data": {
                    "mime_type": base.mime_type or DEFAULT_IMAGE_MIME,
                    "data": base64.b64encode(base.data).decode("ascii"),
                }
            }
        )
    user_parts.append({"text": prompt})
    return {
        "system_instruction": {
            "role": "system",
            "parts": [{"text": instruction}],
        },
        "contents": [
            {
                "role": "user",
                "parts": user_parts,
            }
        ],
    }


def extract_image(payload: Mapping[str, Any]) -> tuple[bytes, str, str]:
    """Find the first image in a generateContent response.

    Returns ``(bytes, mime_type, source)`` where source names the branch that
    matched: ``inline_data``, ``data_uri`` or ``images``.
    """
    for part in _iter_candidate_parts(payload.get("candidates")):
        inline = _first_mapping(part, ("inline_data", "inlineData", "file_data", "fileData"))
        if inline is not None and isinstance(inline.get("data"), str):
            mime = inline.get("mime_type") or inline.get("mimeType") or DEFAULT_IMAGE_MIME
            return _b64decode(inline["data"]), str(mime), "inline_data"
        text = part.get("text")
        if isinstance(text, str) and text.startswith("data:image/"):
            match = _DATA_URI_RE.match(text)
            if match:
                return _b64decode(match.group(2)), match.group(1), "data_uri"

    images = payload.get("images")
    if isinstance(images, Sequence) and not isinstance(images, (str, bytes)) and images:
        first = images[0]
        if isinstance(first, Mapping) and isinstance(first.get("data"), str):
            mime = first.get("mime_type") if isinstance(first.get("mime_type"), str) else DEFAULT_IMAGE_MIME
            return _b64decode(first["data"]), str(mime), "images"

    raise NoArtifactFoundError("Gemini did not return an image payload")


def _iter_candidate_parts(candidates: Any):
    if not isinstance(candidates, Sequence) or isinstance(candidates, (str, bytes)):
        return
    for candidate in candidates:
        if not isinstance(candidate, Mapping):
            continue
        content = candidate.get("content")
        if not isinstance(content, Mapping):
            continue
        parts = content.get("parts")
        if not isinstance(parts, Sequence) or isinstance(parts, (str, bytes)):
            continue
        for part in parts:
            if isinstance(part, Mapping):
                yield part


def _first_mapping(part: Mapping[str, Any], keys: Sequence[str]) -> Mapping[str, Any] | None:
    for key in keys:
        value = part.get(key)
        if value is not None:
            return value if isinstance(value, Mapping) else None
    return None


def _b64decode(value: str) -> bytes:
    try:
        return base64.b64decode(value)
    except (binascii.Error, ValueError) as exc:
        raise NoArtifactFoundError(f"Gemini returned malformed base64 image data: {exc}") from exc
