"""CLI progress ticker shown while a generation is in flight."""

from __future__ import annotations

import os
import shutil
import sys
import threading
import time
from typing import TextIO

_BOLD = "\x1b[1m"
_GREY = "\x1b[38;2;150;157;165m"
_RESET = "\x1b[0m"


def progress_line(label: str, start: float | None = None, done: bool = False) -> tuple[str, float]:
    now = time.monotonic()
    origin = now if start is None else start
    elapsed = max(0, int(now - origin))
    suffix = "done" if done else "ctrl-c to cancel"
    return f"• {label} ({format_duration(elapsed)} • {suffix})", origin


class ProgressTicker:
    def __init__(
        self,
        label: str,
        stream: TextIO | None = None,
        interval_s: float = 1.0,
        done_label: str = "Finished in",
    ) -> None:
        self.label = label
        self.done_label = done_label
        self.start: float | None = None
        self.stream = stream or sys.stdout
        self.interval_s = max(0.01, interval_s)
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._tty = bool(getattr(self.stream, "isatty", lambda: False)())

    def __enter__(self) -> "ProgressTicker":
        self.start_ticking()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.stop()
        return False

    def start_ticking(self) -> None:
        line, self.start = progress_line(self.label)
        if not self._tty:
            self.stream.write(f"{line}\n")
            self.stream.flush()
            return
        self._write_in_place(f"{_BOLD}{line}{_RESET}")
        self._thread.start()

    def stop(self) -> None:
        if self._thread.is_alive():
            self._stop.set()
            self._thread.join()
        elapsed = max(0, int(time.monotonic() - (self.start or time.monotonic())))
        width = _resolve_terminal_width(self.stream, 100)
        line = f"{_GREY}{_separator_line(f'{self.done_label} {format_duration(elapsed)}', width)}{_RESET}"
        if self._tty:
            self._write_in_place(line)
            self.stream.write("\n")
        else:
            self.stream.write(f"{line}\n")
        self.stream.flush()

    def _run(self) -> None:
        while not self._stop.wait(self.interval_s):
            line, _ = progress_line(self.label, self.start)
            self._write_in_place(f"{_BOLD}{line}{_RESET}")

    def _write_in_place(self, line: str) -> None:
        self.stream.write("\r")
        self.stream.write(line)
        self.stream.write("\033[K")
        self.stream.flush()


def format_duration(seconds: int) -> str:
    minutes, secs = divmod(seconds, 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}h {minutes}m {secs:02d}s"
    if minutes:
        return f"{minutes}m {secs:02d}s"
    return f"{secs}s"


def _separator_line(label: str, width: int) -> str:
    content = f" {label} "
    if width <= len(content) + 2:
        return content.strip()
    remaining = width - len(content)
    left = remaining // 2
    right = remaining - left
    return f"{'─' * left}{content}{'─' * right}"


def _resolve_terminal_width(stream: TextIO | None, fallback: int) -> int:
    if stream and hasattr(stream, "fileno"):
        try:
            return os.get_terminal_size(stream.fileno()).columns
        except (OSError, ValueError):
            pass
    return shutil.get_terminal_size(fallback=(fallback, 20)).columns
