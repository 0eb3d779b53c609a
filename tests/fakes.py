from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from forktask import Task
from forktask.kernel import TimerPort


@dataclass
class ManualTimer(TimerPort):
    """Deterministic timer driven by advance()."""

    now: float = 0.0
    _pending: dict[int, tuple[float, Callable[[], None]]] = field(default_factory=dict)
    _next_handle: int = 0
    cancelled: list[int] = field(default_factory=list)

    def schedule(self, seconds: float, callback: Callable[[], None]) -> int:
        handle = self._next_handle
        self._next_handle += 1
        self._pending[handle] = (self.now + seconds, callback)
        return handle

    def cancel(self, handle: int) -> None:
        if self._pending.pop(handle, None) is not None:
            self.cancelled.append(handle)

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [(at, h) for h, (at, _) in self._pending.items() if at <= target]
            if not due:
                break
            at, handle = min(due)
            self.now = at
            _, callback = self._pending.pop(handle)
            callback()
        self.now = target

    @property
    def pending(self) -> int:
        return len(self._pending)


@dataclass
class NoCancelTimer(ManualTimer):
    """Timer whose cancel does nothing, like a computation without a cancel handler."""

    def cancel(self, handle: int) -> None:
        _ = handle


@dataclass
class Probe:
    """Records every callback a fork receives."""

    failures: list[Any] = field(default_factory=list)
    successes: list[Any] = field(default_factory=list)

    def on_failure(self, reason: Any) -> None:
        self.failures.append(reason)

    def on_success(self, value: Any) -> None:
        self.successes.append(value)

    def fork(self, task: Task[Any, Any]) -> Callable[[], None]:
        return task.fork(self.on_failure, self.on_success)

    @property
    def calls(self) -> int:
        return len(self.failures) + len(self.successes)


def counting(task: Task[Any, Any]) -> tuple[Task[Any, Any], list[int]]:
    """Wrap a Task so every fork and cancel of it is counted."""
    counts = [0, 0]

    def run(fail: Callable[[Any], None], succeed: Callable[[Any], None]) -> Callable[[], None]:
        counts[0] += 1
        cancel = task.fork(fail, succeed)

        def counted_cancel() -> None:
            counts[1] += 1
            cancel()

        return counted_cancel

    return Task(run), counts


async def outcome(task: Task[Any, Any]) -> tuple[str, Any]:
    """Fork inside the running loop and wait for the settled channel."""
    loop = asyncio.get_running_loop()
    settled: asyncio.Future[tuple[str, Any]] = loop.create_future()
    task.fork(
        lambda reason: settled.set_result(("failure", reason)),
        lambda value: settled.set_result(("success", value)),
    )
    return await settled
