"""Shared slash-command metadata for parse + chat handling."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CommandSpec:
    command: str
    action: str
    arg_kind: str
    help: str


COMMANDS: tuple[CommandSpec, ...] = (
    CommandSpec("new", "new_thread", "optional", "Start an empty thread (optional id)"),
    CommandSpec("fork", "fork_thread", "optional", "Fork a thread (default: the active one) and switch to it"),
    CommandSpec("threads", "list_threads", "none", "List threads in this session"),
    CommandSpec("switch", "switch_thread", "required", "Make another thread active"),
    CommandSpec("delete", "delete_thread", "required", "Delete a thread"),
    CommandSpec("model", "set_model", "required", "Select model (gemini-* image models or veo-3)"),
    CommandSpec("template", "set_template", "required", "Select prompt template"),
    CommandSpec("theme", "set_theme", "required", "Use a theme image as base ('none' to clear)"),
    CommandSpec("upload", "set_upload", "path", "Use a local image as base for the next prompt ('none' to clear)"),
    CommandSpec("history", "history", "none", "Show messages of the active thread"),
    CommandSpec("themes", "list_themes", "none", "List available themes"),
    CommandSpec("templates", "list_templates", "none", "List prompt templates"),
    CommandSpec("help", "help", "none", "Show help"),
    CommandSpec("quit", "quit", "none", "Exit chat"),
)

COMMAND_MAP = {spec.command: spec for spec in COMMANDS}
COMMAND_ALIASES = {"exit": "quit", "branch": "fork", "ls": "threads"}

CHAT_HELP_COMMANDS: tuple[str, ...] = tuple(f"/{spec.command}" for spec in COMMANDS)


def help_lines() -> list[str]:
    width = max(len(spec.command) for spec in COMMANDS) + 1
    return [f"/{spec.command.ljust(width)} {spec.help}" for spec in COMMANDS]
