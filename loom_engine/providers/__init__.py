"""Provider registry."""

from __future__ import annotations

from ..settings import LoomSettings
from .base import ProviderRegistry
from .dryrun import DryRunProvider
from .gemini import GeminiImageProvider
from .veo import VeoVideoProvider


def default_registry(settings: LoomSettings | None = None) -> ProviderRegistry:
    resolved = settings or LoomSettings.from_env()
    return ProviderRegistry(
        [
            DryRunProvider(),
            GeminiImageProvider(resolved),
            VeoVideoProvider(resolved),
        ]
    )
