"""Provider base classes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping, Protocol


@dataclass(frozen=True)
class Artifact:
    data: bytes
    mime_type: str

    def copy(self) -> "Artifact":
        # bytes(memoryview) allocates a fresh buffer instead of handing back the same object.
        return Artifact(data=bytes(memoryview(self.data)), mime_type=self.mime_type)

    @property
    def byte_count(self) -> int:
        return len(self.data)


@dataclass
class GenerationRequest:
    prompt: str
    base: Artifact | None = None
    model: str | None = None
    template: str | None = None
    negative_prompt: str | None = None


@dataclass
class GeneratedMedia:
    data: bytes
    mime_type: str
    model: str
    metadata: Mapping[str, Any] = field(default_factory=dict)


@dataclass
class Operation:
    name: str
    done: bool = False
    result: Mapping[str, Any] | None = None
    error: Mapping[str, Any] | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Operation":
        result = payload.get("result")
        if result is None:
            result = payload.get("response")
        error = payload.get("error")
        return cls(
            name=str(payload.get("name") or ""),
            done=bool(payload.get("done")),
            result=result if isinstance(result, Mapping) else None,
            error=error if isinstance(error, Mapping) else ({"message": str(error)} if error else None),
        )


class CancelToken(Protocol):
    def is_set(self) -> bool:
        ...

    def wait(self, timeout: float | None = None) -> bool:
        ...


class ImageProvider(Protocol):
    name: str

    def generate(self, request: GenerationRequest) -> GeneratedMedia:
        ...


class VideoProvider(Protocol):
    name: str

    def generate(
        self,
        request: GenerationRequest,
        cancel: CancelToken | None = None,
        on_poll: Callable[[int, Operation], None] | None = None,
    ) -> GeneratedMedia:
        ...


class ProviderRegistry:
    def __init__(self, providers: Iterable[Any]) -> None:
        self._providers = {provider.name: provider for provider in providers}

    def get(self, name: str) -> Any | None:
        return self._providers.get(name)

    def list(self) -> list[str]:
        return sorted(self._providers.keys())

    def providers(self) -> list[Any]:
        return list(self._providers.values())
