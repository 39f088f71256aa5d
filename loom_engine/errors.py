"""Error taxonomy for generation and normalization failures.

Every error subclasses ``RuntimeError`` so callers that only care about
"generation failed" can keep catching that. ``kind`` is a stable slug used in
events and in the structured failure returned by the engine.
"""

from __future__ import annotations

from typing import Any, Mapping

from .utils import truncate_text


class LoomError(RuntimeError):
    kind = "error"


class ConfigurationError(LoomError):
    kind = "configuration"


class UpstreamHttpError(LoomError):
    kind = "upstream_http"

    def __init__(self, label: str, status: int | None, body: str) -> None:
        self.status = status
        self.body = body
        if status is None:
            message = f"{label} request failed: {truncate_text(body)}"
        else:
            message = f"{label} API error {status}: {truncate_text(body)}"
        super().__init__(message)


class NoArtifactFoundError(LoomError):
    kind = "no_artifact"


class UpstreamOperationError(LoomError):
    kind = "upstream_operation"

    def __init__(self, operation_name: str, payload: Mapping[str, Any] | Any) -> None:
        self.operation_name = operation_name
        self.payload = payload
        detail = payload.get("message") if isinstance(payload, Mapping) else None
        super().__init__(f"Operation {operation_name} failed: {detail or payload}")


class OperationTimeoutError(LoomError):
    kind = "operation_timeout"

    def __init__(self, operation_name: str, attempts: int, interval_s: float) -> None:
        self.operation_name = operation_name
        self.attempts = attempts
        self.interval_s = interval_s
        super().__init__(
            f"Operation {operation_name} did not finish after {attempts} polls "
            f"({attempts * interval_s:.0f}s)."
        )


class OperationCancelledError(LoomError):
    kind = "cancelled"


class DownloadError(LoomError):
    kind = "download"

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        super().__init__(f"Failed to download generated artifact: {reason}")


class DecodeError(LoomError):
    kind = "decode"
