"""Session identifiers handed to callers (cookie issuance lives in the HTTP layer)."""

from __future__ import annotations

import re
import secrets

SESSION_COOKIE_NAME = "lc_session"
SESSION_MAX_AGE_S = 60 * 60 * 24 * 7

_SESSION_ID_RE = re.compile(r"^[A-Za-z0-9_-]{1,128}$")


def new_session_id() -> str:
    return secrets.token_hex(16)


def is_valid_session_id(value: str | None) -> bool:
    return bool(value) and bool(_SESSION_ID_RE.match(str(value)))


def get_or_create_session_id(existing: str | None) -> str:
    if existing and is_valid_session_id(existing):
        return existing
    return new_session_id()
