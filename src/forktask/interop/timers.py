"""Timer-backed helpers built on the Task kernel."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from forktask.combinators import race
from forktask.kernel import Cancel, Task, TaskTimeoutError, TimerPort

E = TypeVar("E")
A = TypeVar("A")


@dataclass(frozen=True)
class LoopTimer(TimerPort):
    """TimerPort backed by an asyncio event loop.

    Without an explicit loop, the running loop is looked up each time a
    callback is scheduled, so one instance serves any loop.
    """

    loop: asyncio.AbstractEventLoop | None = None

    def schedule(self, seconds: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self.loop if self.loop is not None else asyncio.get_running_loop()
        return loop.call_later(seconds, callback)

    def cancel(self, handle: asyncio.TimerHandle) -> None:
        handle.cancel()


def delay(seconds: float, value: A = None, *, timer: TimerPort | None = None) -> Task[Any, A]:
    """Create a Task succeeding with ``value`` after ``seconds``.

    Args:
        seconds: Delay before settling.
        value: Success value.
        timer: Timer facility; defaults to the running asyncio loop.

    Returns:
        Task whose cancel handle cancels the scheduled timer.
    """
    clock = timer if timer is not None else LoopTimer()

    def run(_: Callable[[Any], None], succeed: Callable[[A], None]) -> Cancel:
        handle = clock.schedule(seconds, lambda: succeed(value))
        return lambda: clock.cancel(handle)

    return Task(run)


def timeout(
    task: Task[E, A],
    seconds: float,
    reason: Any = None,
    *,
    timer: TimerPort | None = None,
) -> Task[Any, A]:
    """Fail with ``reason`` unless ``task`` settles within ``seconds``.

    ``reason`` defaults to a ``TaskTimeoutError``. Whichever side loses the
    race is cancelled.
    """
    def expire(_: Any) -> Task[Any, Any]:
        # one error per expiry
        return Task.rejected(reason if reason is not None else TaskTimeoutError(seconds))

    return race([task, delay(seconds, timer=timer).chain(expire)])
