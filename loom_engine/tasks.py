"""Background generation tasks with cooperative cancellation."""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable


@dataclass
class GenerationTask:
    future: Future
    cancel_event: threading.Event = field(default_factory=threading.Event)

    def cancel(self) -> None:
        # Stops further polling only; an upstream call already in flight still completes.
        self.cancel_event.set()
        self.future.cancel()

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def done(self) -> bool:
        return self.future.done()

    def result(self, timeout: float | None = None) -> Any:
        return self.future.result(timeout=timeout)


class TaskRunner:
    def __init__(self, max_workers: int = 8) -> None:
        self.max_workers = max(1, int(max_workers))
        self._executor: ThreadPoolExecutor | None = None
        self._lock = threading.Lock()

    def _pool(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="loom-gen")
            return self._executor

    def spawn(self, fn: Callable[[threading.Event], Any]) -> GenerationTask:
        cancel_event = threading.Event()
        future = self._pool().submit(fn, cancel_event)
        return GenerationTask(future=future, cancel_event=cancel_event)

    def shutdown(self, wait: bool = True) -> None:
        with self._lock:
            executor = self._executor
            self._executor = None
        if executor is not None:
            executor.shutdown(wait=wait)
