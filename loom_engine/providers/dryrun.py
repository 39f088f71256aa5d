"""Dry-run provider (offline)."""

from __future__ import annotations

import hashlib
import io
from typing import Any, Callable

from PIL import Image, ImageDraw, ImageFont

from .base import CancelToken, GeneratedMedia, GenerationRequest

DRYRUN_SIZE = (1536, 1024)


class DryRunProvider:
    name = "dryrun"

    def __init__(self, size: tuple[int, int] = DRYRUN_SIZE) -> None:
        self.size = size
        self._font = None

    def generate(
        self,
        request: GenerationRequest,
        cancel: CancelToken | None = None,
        on_poll: Callable[[int, Any], None] | None = None,
    ) -> GeneratedMedia:
        model = request.model or "dryrun-image-1"
        if model.startswith("dryrun-video"):
            return GeneratedMedia(
                data=_placeholder_video(request.prompt),
                mime_type="video/mp4",
                model=model,
                metadata={"dryrun": True},
            )
        image = Image.new("RGB", self.size, _color_from_prompt(request.prompt, request.base is not None))
        draw = ImageDraw.Draw(image)
        font = self._font or ImageFont.load_default()
        draw.text((20, 20), f"dryrun\n{request.prompt[:60]}", fill=(255, 255, 255), font=font)
        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
        metadata: dict[str, Any] = {"dryrun": True, "edited": request.base is not None}
        return GeneratedMedia(data=buffer.getvalue(), mime_type="image/png", model=model, metadata=metadata)


def _color_from_prompt(prompt: str, edited: bool) -> tuple[int, int, int]:
    digest = hashlib.sha256(f"{prompt}:{int(edited)}".encode("utf-8")).digest()
    return digest[0], digest[1], digest[2]


def _placeholder_video(prompt: str) -> bytes:
    # Minimal ftyp box followed by the prompt digest; enough for a file extension sniff.
    digest = hashlib.sha256(prompt.encode("utf-8")).digest()
    return b"\x00\x00\x00\x18ftypmp42\x00\x00\x00\x00mp42isom" + digest
