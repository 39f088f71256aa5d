"""Veo video provider (long-running operation + polling)."""

from __future__ import annotations

import base64
import binascii
import threading
from typing import Any, Callable, Mapping, Sequence

from ..errors import (
    NoArtifactFoundError,
    OperationCancelledError,
    OperationTimeoutError,
    UpstreamOperationError,
)
from ..settings import LoomSettings
from .base import CancelToken, GeneratedMedia, GenerationRequest, Operation
from .google_http import download_bytes, get_json, model_url, operation_url, post_json

DEFAULT_VIDEO_MIME = "video/mp4"

PollHook = Callable[[int, Operation], None]


class VeoVideoProvider:
    name = "veo"

    def __init__(self, settings: LoomSettings | None = None, on_poll: PollHook | None = None) -> None:
        self.settings = settings or LoomSettings.from_env()
        self.on_poll = on_poll
        self._api_key: str | None = None

    def _resolve_api_key(self) -> str:
        if self._api_key is None:
            self._api_key = self.settings.require_api_key()
        return self._api_key

    def generate(
        self,
        request: GenerationRequest,
        cancel: CancelToken | None = None,
        on_poll: PollHook | None = None,
    ) -> GeneratedMedia:
        api_key = self._resolve_api_key()
        model = self.settings.video_model
        operation = self.start(request, model=model, api_key=api_key)
        operation = self.wait(operation, api_key=api_key, cancel=cancel, on_poll=on_poll)
        data, mime_type = self._fetch_video(operation, api_key=api_key)
        return GeneratedMedia(
            data=data,
            mime_type=mime_type,
            model=model,
            metadata={"operation": operation.name},
        )

    def start(self, request: GenerationRequest, *, model: str, api_key: str) -> Operation:
        payload = post_json(
            model_url(self.settings.api_base, model, "predictLongRunning", api_key),
            build_request_body(request),
            label="Veo 3",
            timeout_s=self.settings.request_timeout_s,
        )
        operation = Operation.from_payload(payload)
        if not operation.name and not operation.done:
            raise NoArtifactFoundError("Veo 3 did not return an operation name")
        return operation

    def wait(
        self,
        operation: Operation,
        *,
        api_key: str,
        cancel: CancelToken | None = None,
        on_poll: PollHook | None = None,
    ) -> Operation:
        """Poll ``operation`` until it is done, errors, or the attempt budget runs out.

        The cancel token doubles as the sleep between polls so that a caller
        abandoning the request stops further polling promptly. The upstream job
        keeps running either way.
        """
        token = cancel if cancel is not None else threading.Event()
        hook = on_poll or self.on_poll
        interval = max(0.0, float(self.settings.poll_interval_s))
        attempts = max(1, int(self.settings.poll_attempts))
        for attempt in range(1, attempts + 1):
            if operation.error:
                raise UpstreamOperationError(operation.name, operation.error)
            if operation.done:
                return operation
            if token.wait(interval) or token.is_set():
                raise OperationCancelledError(f"Polling for {operation.name} was cancelled.")
            payload = get_json(
                operation_url(self.settings.api_base, operation.name, api_key),
                label="Veo 3 operation",
                timeout_s=self.settings.request_timeout_s,
            )
            polled = Operation.from_payload(payload)
            operation = Operation(
                name=polled.name or operation.name,
                done=polled.done,
                result=polled.result,
                error=polled.error,
            )
            if hook is not None:
                hook(attempt, operation)
        if operation.error:
            raise UpstreamOperationError(operation.name, operation.error)
        if operation.done:
            return operation
        raise OperationTimeoutError(operation.name, attempts, interval)

    def _fetch_video(self, operation: Operation, *, api_key: str) -> tuple[bytes, str]:
        video = first_generated_video(operation.result or {})
        if video is None:
            raise NoArtifactFoundError("Veo 3 did not return a video payload")
        mime_type = str(video.get("mime_type") or video.get("mimeType") or DEFAULT_VIDEO_MIME)
        inline = video.get("data") or video.get("video_bytes") or video.get("bytesBase64Encoded")
        if isinstance(inline, str) and inline:
            try:
                return base64.b64decode(inline), mime_type
            except (binascii.Error, ValueError) as exc:
                raise NoArtifactFoundError(f"Veo 3 returned malformed video data: {exc}") from exc
        uri = video.get("uri")
        if not isinstance(uri, str) or not uri:
            raise NoArtifactFoundError("Veo 3 video entry has no downloadable uri")
        data = download_bytes(uri, api_key=api_key, timeout_s=self.settings.request_timeout_s)
        return data, mime_type


def build_request_body(request: GenerationRequest) -> dict[str, Any]:
    body: dict[str, Any] = {"prompt": request.prompt}
    if request.negative_prompt:
        body["config"] = {"negative_prompt": request.negative_prompt}
    if request.base is not None and request.base.data:
        body["base_image"] = {
            "mime_type": request.base.mime_type or "image/png",
            "data": base64.b64encode(request.base.data).decode("ascii"),
        }
    return body


def first_generated_video(result: Mapping[str, Any]) -> Mapping[str, Any] | None:
    """Return the first generated-video entry of a finished operation.

    Accepts both the snake_case ``generated_videos`` shape and the REST
    ``generateVideoResponse.generatedSamples`` shape.
    """
    containers: list[Any] = [
        result.get("generated_videos"),
        result.get("generatedVideos"),
    ]
    nested = result.get("generateVideoResponse") or result.get("generate_video_response")
    if isinstance(nested, Mapping):
        containers.append(nested.get("generatedSamples"))
        containers.append(nested.get("generated_samples"))
    for entries in containers:
        if not isinstance(entries, Sequence) or isinstance(entries, (str, bytes)) or not entries:
            continue
        first = entries[0]
        if not isinstance(first, Mapping):
            continue
        video = first.get("video")
        if isinstance(video, Mapping):
            return video
    return None
