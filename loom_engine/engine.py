"""Core Loom engine orchestration."""

from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .errors import DecodeError, LoomError
from .imaging.normalize import CANONICAL_MIME, normalize
from .models.registry import ModelRegistry, default_models
from .models.selectors import ModelSelection, ModelSelector
from .providers import default_registry
from .providers.base import Artifact, CancelToken, GenerationRequest, ProviderRegistry
from .runs.events import EventWriter
from .settings import LoomSettings
from .storage.artifacts import ArtifactStore, FileArtifactStore
from .storage.themes import FileThemeStore, ThemeStore
from .tasks import GenerationTask, TaskRunner
from .threads.branches import BranchManager
from .threads.messages import (
    ChatMessage,
    assistant_error_message,
    assistant_media_message,
    user_message,
)
from .threads.store import DEFAULT_THREAD_ID, ThreadStore


@dataclass
class PromptRequest:
    session_id: str
    prompt: str
    thread_id: str = DEFAULT_THREAD_ID
    upload: bytes | None = None
    theme: str | None = None
    model: str | None = None
    template: str | None = None
    negative_prompt: str | None = None


@dataclass(frozen=True)
class BaseSelection:
    source: str
    artifact: Artifact | None = None


@dataclass
class GenerationOutcome:
    ok: bool
    thread_id: str
    message: ChatMessage
    kind: str | None = None
    locator: str | None = None
    model: str | None = None
    base_source: str | None = None
    error: str | None = None
    error_kind: str | None = None

    def to_dict(self) -> dict[str, Any]:
        if self.ok:
            return {"thread": self.thread_id, "message": self.message.to_dict()}
        return {"thread": self.thread_id, "error": self.message.text, "kind": self.error_kind}


class LoomEngine:
    def __init__(
        self,
        settings: LoomSettings | None = None,
        *,
        store: ThreadStore | None = None,
        artifacts: ArtifactStore | None = None,
        themes: ThemeStore | None = None,
        provider_registry: ProviderRegistry | None = None,
        model_selector: ModelSelector | None = None,
        events_path: Path | None = None,
        run_id: str | None = None,
        max_workers: int = 8,
    ) -> None:
        self.settings = settings or LoomSettings.from_env()
        self.store = store or ThreadStore()
        self.artifacts = artifacts or FileArtifactStore(self.settings.output_dir)
        self.themes = themes or FileThemeStore(self.settings.themes_dir)
        self.providers = provider_registry or default_registry(self.settings)
        self.model_selector = model_selector or ModelSelector(
            ModelRegistry(default_models(self.settings.image_model, self.settings.video_model))
        )
        self.run_id = run_id or str(uuid.uuid4())
        self.events = EventWriter(events_path, self.run_id)
        self.branches = BranchManager(self.store, self.events)
        self.tasks = TaskRunner(max_workers)
        self.events.emit("engine_started", providers=self.providers.list())

    def _emit_poll(self, attempt: int, operation: Any) -> None:
        self.events.emit("operation_polled", operation=operation.name, attempt=attempt, done=operation.done)

    # Thread management

    def create_thread(self, session_id: str, thread_id: str | None = None) -> str:
        return self.branches.create_thread(session_id, thread_id)

    def clone_thread(self, session_id: str, source_thread_id: str = DEFAULT_THREAD_ID, new_thread_id: str | None = None) -> str:
        return self.branches.clone_thread(session_id, source_thread_id, new_thread_id)

    def delete_thread(self, session_id: str, thread_id: str) -> bool:
        return self.branches.delete_thread(session_id, thread_id)

    def messages(self, session_id: str, thread_id: str = DEFAULT_THREAD_ID) -> list[ChatMessage]:
        return self.store.get_messages(session_id, thread_id)

    def list_themes(self) -> list[str]:
        return self.themes.list()

    # Generation

    def resolve_base_artifact(
        self,
        session_id: str,
        thread_id: str,
        *,
        upload: bytes | None = None,
        theme: str | None = None,
    ) -> BaseSelection:
        """Pick the base image for the next call: upload > theme > thread's last artifact.

        A bad upload raises ``DecodeError``. A missing or undecodable theme is
        treated as no theme.
        """
        if upload:
            return BaseSelection("upload", Artifact(normalize(upload), CANONICAL_MIME))
        theme_name = (theme or "").strip()
        if theme_name:
            try:
                raw = self.themes.load(theme_name)
                if raw:
                    return BaseSelection("theme", Artifact(normalize(raw), CANONICAL_MIME))
                reason = "not found"
            except (OSError, DecodeError) as exc:
                reason = str(exc)
            self.events.emit(
                "theme_ignored",
                session_id=session_id,
                thread_id=thread_id,
                theme=theme_name,
                reason=reason,
            )
        last = self.store.get_last_artifact(session_id, thread_id)
        if last is not None:
            return BaseSelection("last_artifact", last)
        return BaseSelection("none")

    def submit(self, request: PromptRequest, cancel: CancelToken | None = None) -> GenerationOutcome:
        prompt = request.prompt if isinstance(request.prompt, str) else ""
        if not prompt.strip():
            raise ValueError("Missing message")
        session_id = request.session_id
        thread_id = (request.thread_id or "").strip() or DEFAULT_THREAD_ID

        self.store.append_message(session_id, thread_id, user_message(prompt))

        base_source: str | None = None
        model_name: str | None = None
        try:
            base = self.resolve_base_artifact(session_id, thread_id, upload=request.upload, theme=request.theme)
            base_source = base.source
            self.events.emit(
                "base_selected",
                session_id=session_id,
                thread_id=thread_id,
                source=base.source,
                byte_count=base.artifact.byte_count if base.artifact else 0,
            )
            selection = self.model_selector.select(request.model)
            model_name = selection.model.name
            generation = GenerationRequest(
                prompt=prompt,
                base=base.artifact,
                model=selection.model.name,
                template=request.template,
                negative_prompt=request.negative_prompt,
            )
            if selection.is_video:
                message, locator = self._generate_video(session_id, thread_id, selection, generation, cancel)
                kind = "video"
            else:
                message, locator = self._generate_image(session_id, thread_id, selection, generation)
                kind = "image"
        except Exception as exc:
            return self._fail(session_id, thread_id, exc, base_source=base_source, model=model_name)

        self.events.emit(
            "artifact_created",
            session_id=session_id,
            thread_id=thread_id,
            kind=kind,
            locator=locator,
            model=model_name,
        )
        return GenerationOutcome(
            ok=True,
            thread_id=thread_id,
            message=message,
            kind=kind,
            locator=locator,
            model=model_name,
            base_source=base_source,
        )

    def submit_async(self, request: PromptRequest) -> GenerationTask:
        return self.tasks.spawn(lambda cancel: self.submit(request, cancel=cancel))

    def shutdown(self, wait: bool = True) -> None:
        self.tasks.shutdown(wait=wait)

    def _provider(self, selection: ModelSelection) -> Any:
        provider = self.providers.get(selection.model.provider)
        if provider is None:
            raise LoomError(f"No provider available for {selection.model.provider}")
        return provider

    def _generate_image(
        self,
        session_id: str,
        thread_id: str,
        selection: ModelSelection,
        generation: GenerationRequest,
    ) -> tuple[ChatMessage, str]:
        provider = self._provider(selection)
        self.events.emit(
            "generation_started",
            session_id=session_id,
            thread_id=thread_id,
            kind="image",
            provider=provider.name,
            model=selection.model.name,
            fallback_reason=selection.fallback_reason,
        )
        media = provider.generate(generation)
        png = normalize(media.data)
        locator = self.artifacts.persist(session_id, png, CANONICAL_MIME)
        message = assistant_media_message(image_url=locator)
        # Message and artifact are published under one thread lock.
        self.store.record_image(session_id, thread_id, message, png, CANONICAL_MIME)
        return message, locator

    def _generate_video(
        self,
        session_id: str,
        thread_id: str,
        selection: ModelSelection,
        generation: GenerationRequest,
        cancel: CancelToken | None,
    ) -> tuple[ChatMessage, str]:
        provider = self._provider(selection)
        self.events.emit(
            "generation_started",
            session_id=session_id,
            thread_id=thread_id,
            kind="video",
            provider=provider.name,
            model=selection.model.name,
        )
        media = provider.generate(generation, cancel=cancel or threading.Event(), on_poll=self._emit_poll)
        # Videos are served but never become the base image for the next edit.
        locator = self.artifacts.persist(session_id, media.data, media.mime_type)
        message = assistant_media_message(video_url=locator)
        self.store.append_message(session_id, thread_id, message)
        return message, locator

    def _fail(
        self,
        session_id: str,
        thread_id: str,
        exc: Exception,
        *,
        base_source: str | None,
        model: str | None,
    ) -> GenerationOutcome:
        error_kind = getattr(exc, "kind", None) or _fallback_kind(exc)
        text = str(exc) or exc.__class__.__name__
        message = assistant_error_message(text)
        self.store.append_message(session_id, thread_id, message)
        self.events.emit(
            "generation_failed",
            session_id=session_id,
            thread_id=thread_id,
            error=text,
            error_kind=error_kind,
            model=model,
        )
        return GenerationOutcome(
            ok=False,
            thread_id=thread_id,
            message=message,
            model=model,
            base_source=base_source,
            error=text,
            error_kind=error_kind,
        )


def _fallback_kind(exc: Exception) -> str:
    if isinstance(exc, OSError):
        return "storage"
    if isinstance(exc, ValueError):
        return "invalid_request"
    return "internal"
