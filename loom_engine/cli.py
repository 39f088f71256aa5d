"""Loom CLI entrypoints."""

from __future__ import annotations

import argparse
from dataclasses import replace
from pathlib import Path
from typing import Any, Callable

from .chat.command_registry import help_lines
from .chat.intent_parser import parse_intent
from .cli_progress import ProgressTicker
from .engine import GenerationOutcome, LoomEngine, PromptRequest
from .providers.templates import list_templates
from .settings import LoomSettings
from .storage.artifacts import FileArtifactStore
from .threads.sessions import new_session_id
from .threads.store import DEFAULT_THREAD_ID
from .utils import load_dotenv

DRYRUN_IMAGE_MODEL = "dryrun-image-1"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="loom", description="Loom branching image/video generation engine")
    sub = parser.add_subparsers(dest="command")

    def add_common(command: argparse.ArgumentParser) -> None:
        command.add_argument("--out", help="Artifact output directory (default: LOOM_OUTPUT_DIR)")
        command.add_argument("--themes-dir", dest="themes_dir", help="Theme image directory (default: LOOM_THEMES_DIR)")
        command.add_argument("--events", help="Path to events.jsonl")
        command.add_argument("--model", help="Model id (gemini-* image models or veo-3)")
        command.add_argument("--template", help="Prompt template id")
        command.add_argument("--dry-run", dest="dry_run", action="store_true", help="Use the offline provider")

    chat = sub.add_parser("chat", help="Interactive branching chat loop")
    add_common(chat)

    run = sub.add_parser("run", help="Single prompt generation")
    add_common(run)
    run.add_argument("--prompt", required=True)
    run.add_argument("--upload", help="Base image to edit")
    run.add_argument("--theme", help="Theme image name to edit")
    run.add_argument("--negative-prompt", dest="negative_prompt", help="Negative prompt (video only)")

    themes = sub.add_parser("themes", help="List theme images")
    themes.add_argument("--themes-dir", dest="themes_dir")
    return parser


def _settings_from_args(args: argparse.Namespace) -> LoomSettings:
    settings = LoomSettings.from_env()
    overrides: dict[str, Any] = {}
    if getattr(args, "out", None):
        overrides["output_dir"] = Path(args.out)
    if getattr(args, "themes_dir", None):
        overrides["themes_dir"] = Path(args.themes_dir)
    return replace(settings, **overrides) if overrides else settings


def _engine_from_args(args: argparse.Namespace) -> LoomEngine:
    settings = _settings_from_args(args)
    events_path = Path(args.events) if getattr(args, "events", None) else None
    return LoomEngine(settings, events_path=events_path)


def _resolve_model(args: argparse.Namespace) -> str | None:
    if args.dry_run and not (args.model or "").startswith("dryrun-"):
        return DRYRUN_IMAGE_MODEL
    return args.model


def _submit_with_progress(engine: LoomEngine, request: PromptRequest, out: Callable[[str], None]) -> GenerationOutcome | None:
    task = engine.submit_async(request)
    ticker = ProgressTicker("Generating")
    ticker.start_ticking()
    try:
        return task.result()
    except KeyboardInterrupt:
        task.cancel()
        out("Cancelled. An upstream call already in flight may still complete.")
        return None
    finally:
        ticker.stop()


def _print_outcome(outcome: GenerationOutcome, engine: LoomEngine, out: Callable[[str], None]) -> None:
    if not outcome.ok:
        out(outcome.message.text or "Error")
        return
    locator = outcome.locator or ""
    path = engine.artifacts.resolve(locator) if isinstance(engine.artifacts, FileArtifactStore) else None
    out(f"{outcome.kind} via {outcome.model} (base: {outcome.base_source}) -> {path or locator}")


def _handle_run(args: argparse.Namespace) -> int:
    try:
        upload = Path(args.upload).expanduser().read_bytes() if args.upload else None
    except OSError as exc:
        print(f"Cannot read {args.upload}: {exc}")
        return 2
    engine = _engine_from_args(args)
    request = PromptRequest(
        session_id=new_session_id(),
        prompt=args.prompt,
        upload=upload,
        theme=args.theme,
        model=_resolve_model(args),
        template=args.template,
        negative_prompt=args.negative_prompt,
    )
    try:
        outcome = _submit_with_progress(engine, request, print)
    finally:
        engine.shutdown()
    if outcome is None:
        return 130
    _print_outcome(outcome, engine, print)
    return 0 if outcome.ok else 1


def _handle_themes(args: argparse.Namespace) -> int:
    settings = _settings_from_args(args)
    engine = LoomEngine(settings)
    names = engine.list_themes()
    if not names:
        print(f"No themes in {settings.themes_dir}")
    for name in names:
        print(name)
    return 0


def _handle_chat(
    args: argparse.Namespace,
    input_fn: Callable[[str], str] = input,
    out: Callable[[str], None] = print,
    engine: LoomEngine | None = None,
) -> int:
    engine = engine or _engine_from_args(args)
    session_id = new_session_id()
    state: dict[str, Any] = {
        "thread": DEFAULT_THREAD_ID,
        "model": _resolve_model(args),
        "template": args.template,
        "theme": None,
        "upload": None,
    }
    engine.create_thread(session_id, DEFAULT_THREAD_ID)
    out("Loom chat started. Type /help for commands.")

    def _new_thread(intent) -> None:
        state["thread"] = engine.create_thread(session_id, intent.command_args.get("value"))
        out(f"Active thread: {state['thread']}")

    def _fork_thread(intent) -> None:
        source = intent.command_args.get("value") or state["thread"]
        state["thread"] = engine.clone_thread(session_id, source)
        out(f"Forked {source} -> {state['thread']}")

    def _list_threads(_intent) -> None:
        for thread_id in engine.store.list_threads(session_id):
            snapshot = engine.store.snapshot(session_id, thread_id)
            marker = "*" if thread_id == state["thread"] else " "
            artifact = "artifact" if snapshot.has_artifact else "empty"
            out(f"{marker} {thread_id} ({len(snapshot.messages)} messages, {artifact})")

    def _switch_thread(intent) -> None:
        target = intent.command_args["value"]
        if not engine.store.has_thread(session_id, target):
            out(f"No thread named {target}")
            return
        state["thread"] = target
        out(f"Active thread: {target}")

    def _delete_thread(intent) -> None:
        target = intent.command_args["value"]
        existed = engine.delete_thread(session_id, target)
        out(f"Deleted {target}" if existed else f"No thread named {target}")
        if existed and target == state["thread"]:
            state["thread"] = engine.create_thread(session_id, DEFAULT_THREAD_ID)
            out(f"Active thread: {state['thread']}")

    def _set_model(intent) -> None:
        state["model"] = intent.command_args["value"]
        out(f"Model set to {state['model']}")

    def _set_template(intent) -> None:
        state["template"] = intent.command_args["value"]
        out(f"Template set to {state['template']}")

    def _set_theme(intent) -> None:
        state["theme"] = intent.command_args.get("value")
        out(f"Theme set to {state['theme']}" if state["theme"] else "Theme cleared")

    def _set_upload(intent) -> None:
        path = intent.command_args.get("path")
        if path is None:
            state["upload"] = None
            out("Upload cleared")
            return
        try:
            state["upload"] = Path(path).expanduser().read_bytes()
        except OSError as exc:
            out(f"Cannot read {path}: {exc}")
            return
        out(f"Upload attached for next prompt: {path}")

    def _history(_intent) -> None:
        for message in engine.messages(session_id, state["thread"]):
            media = message.image_url or message.video_url
            body = " ".join(part for part in (message.text, media) if part)
            out(f"[{message.role}] {body}")

    def _list_themes(_intent) -> None:
        names = engine.list_themes()
        out(", ".join(names) if names else "No themes available")

    def _list_templates(_intent) -> None:
        for template in list_templates():
            out(f"{template.template_id}: {template.name} - {template.summary}")

    def _help(_intent) -> None:
        for line in help_lines():
            out(line)

    def _generate(intent) -> None:
        request = PromptRequest(
            session_id=session_id,
            prompt=intent.prompt,
            thread_id=state["thread"],
            upload=state["upload"],
            theme=state["theme"],
            model=state["model"],
            template=state["template"],
        )
        # Uploads apply to one prompt; themes stay selected.
        state["upload"] = None
        outcome = _submit_with_progress(engine, request, out)
        if outcome is not None:
            _print_outcome(outcome, engine, out)

    handlers: dict[str, Callable[[Any], None]] = {
        "new_thread": _new_thread,
        "fork_thread": _fork_thread,
        "list_threads": _list_threads,
        "switch_thread": _switch_thread,
        "delete_thread": _delete_thread,
        "set_model": _set_model,
        "set_template": _set_template,
        "set_theme": _set_theme,
        "set_upload": _set_upload,
        "history": _history,
        "list_themes": _list_themes,
        "list_templates": _list_templates,
        "help": _help,
        "generate": _generate,
    }

    try:
        while True:
            try:
                line = input_fn(f"[{state['thread']}]> ")
            except EOFError:
                break
            intent = parse_intent(line)
            if intent.action == "noop":
                continue
            if intent.action == "quit":
                break
            if intent.action == "unknown":
                out(f"Unknown command /{intent.command_args.get('command')}. Type /help.")
                continue
            if intent.action == "missing_arg":
                out(f"/{intent.command_args.get('command')} needs an argument")
                continue
            handlers[intent.action](intent)
    finally:
        engine.shutdown()
    return 0


def main() -> None:
    load_dotenv()
    parser = _build_parser()
    args = parser.parse_args()
    if args.command == "chat":
        raise SystemExit(_handle_chat(args))
    if args.command == "run":
        raise SystemExit(_handle_run(args))
    if args.command == "themes":
        raise SystemExit(_handle_themes(args))
    parser.print_help()
    raise SystemExit(1)


if __name__ == "__main__":
    main()
