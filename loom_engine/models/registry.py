"""Model registry for Loom."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Mapping

from ..settings import DEFAULT_IMAGE_MODEL, DEFAULT_VIDEO_MODEL

IMAGE_MODEL_PATTERN = re.compile(r"gemini", re.IGNORECASE)


@dataclass(frozen=True)
class ModelSpec:
    name: str
    provider: str
    capabilities: tuple[str, ...]
    label: str | None = None

    def supports(self, capability: str) -> bool:
        return capability in self.capabilities


def default_models(
    image_model: str = DEFAULT_IMAGE_MODEL,
    video_model: str = DEFAULT_VIDEO_MODEL,
) -> dict[str, ModelSpec]:
    models = [
        ModelSpec(name=image_model, provider="gemini", capabilities=("image", "edit"), label="Gemini Image"),
        ModelSpec(name=video_model, provider="veo", capabilities=("video",), label="Veo 3"),
        ModelSpec(name="dryrun-image-1", provider="dryrun", capabilities=("image", "edit"), label="Dry run image"),
        ModelSpec(name="dryrun-video-1", provider="dryrun", capabilities=("video",), label="Dry run video"),
    ]
    if video_model != DEFAULT_VIDEO_MODEL:
        # Callers may keep sending the public "veo-3" id while the env pins another video model.
        models.append(ModelSpec(name=DEFAULT_VIDEO_MODEL, provider="veo", capabilities=("video",), label="Veo 3"))
    return {model.name: model for model in models}


class ModelRegistry:
    def __init__(self, models: Mapping[str, ModelSpec] | None = None) -> None:
        self._models = dict(models) if models else default_models()

    def get(self, name: str) -> ModelSpec | None:
        return self._models.get(name)

    def list(self) -> Iterable[ModelSpec]:
        return self._models.values()

    def by_capability(self, capability: str) -> list[ModelSpec]:
        return [model for model in self._models.values() if model.supports(capability)]

    def ensure(self, name: str, capability: str) -> ModelSpec | None:
        model = self.get(name)
        if model and model.supports(capability):
            return model
        return None
