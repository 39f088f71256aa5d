"""Model selection and fallback logic."""

from __future__ import annotations

from dataclasses import dataclass

from .registry import IMAGE_MODEL_PATTERN, ModelRegistry, ModelSpec


@dataclass(frozen=True)
class ModelSelection:
    model: ModelSpec
    requested: str | None
    fallback_reason: str | None = None

    @property
    def is_video(self) -> bool:
        return self.model.supports("video")


class ModelSelector:
    def __init__(self, registry: ModelRegistry | None = None) -> None:
        self.registry = registry or ModelRegistry()

    def is_video_model(self, requested: str | None) -> bool:
        if not requested:
            return False
        return self.registry.ensure(requested.strip(), "video") is not None

    def select(self, requested: str | None) -> ModelSelection:
        requested = (requested or "").strip() or None
        if requested:
            video = self.registry.ensure(requested, "video")
            if video:
                return ModelSelection(model=video, requested=requested)
            image = self.registry.ensure(requested, "image")
            if image:
                return ModelSelection(model=image, requested=requested)
            if IMAGE_MODEL_PATTERN.search(requested):
                # Any Gemini image model id is passed through even when it is not registered.
                return ModelSelection(
                    model=ModelSpec(name=requested, provider="gemini", capabilities=("image", "edit")),
                    requested=requested,
                )
            fallback_reason = f"Requested model '{requested}' unavailable; using default image model."
        else:
            fallback_reason = "No model specified; using default."

        candidates = self.registry.by_capability("image")
        if not candidates:
            raise RuntimeError("No models available for capability 'image'.")
        return ModelSelection(model=candidates[0], requested=requested, fallback_reason=fallback_reason)
