"""Parse user input into structured intents."""

from __future__ import annotations

import re
import shlex

from .command_registry import COMMAND_ALIASES, COMMAND_MAP
from .intent_schema import Intent

_SLASH_PATTERN = re.compile(r"^/(\w+)(?:\s+(.*))?$", re.DOTALL)
_CLEAR_WORDS = {"none", "off", "clear", "-"}


def _first_arg(arg: str) -> str | None:
    if not arg:
        return None
    try:
        tokens = shlex.split(arg)
    except ValueError:
        tokens = arg.split()
    return tokens[0] if tokens else None


def parse_intent(text: str) -> Intent:
    raw = text
    stripped = text.strip()
    if not stripped:
        return Intent(action="noop", raw=raw)

    match = _SLASH_PATTERN.match(stripped)
    if not match:
        return Intent(action="generate", raw=raw, prompt=stripped)

    command = match.group(1).lower()
    command = COMMAND_ALIASES.get(command, command)
    arg = (match.group(2) or "").strip()
    spec = COMMAND_MAP.get(command)
    if spec is None:
        return Intent(action="unknown", raw=raw, command_args={"command": command})

    if spec.arg_kind == "none":
        return Intent(action=spec.action, raw=raw)

    value = _first_arg(arg)
    if spec.arg_kind == "optional":
        return Intent(action=spec.action, raw=raw, command_args={"value": value})
    if value is None:
        return Intent(action="missing_arg", raw=raw, command_args={"command": command})
    if value.lower() in _CLEAR_WORDS and spec.action in {"set_theme", "set_upload"}:
        return Intent(action=spec.action, raw=raw, command_args={"value": None, "clear": True})
    key = "path" if spec.arg_kind == "path" else "value"
    return Intent(action=spec.action, raw=raw, command_args={key: value})
