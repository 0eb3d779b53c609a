"""Bridge between Tasks and asyncio awaitables."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from forktask.kernel import Cancel, Task, TaskRejected, noop

A = TypeVar("A")

logger = logging.getLogger(__name__)

# The loop holds only weak references to scheduled tasks
_in_flight: set[asyncio.Future[Any]] = set()


def from_future(factory: Callable[[], Awaitable[A]]) -> Task[Any, A]:
    """Create a Task from a zero-argument awaitable factory.

    The factory is called on every fork, never before. A ``TaskRejected``
    raised by the awaitable is unwrapped back to its reason, any other
    exception is delivered on the failure channel as is.

    The returned cancel handle does not cancel the awaitable itself; it only
    stops the outcome from reaching the callbacks.

    Must be forked while an event loop is running.
    """
    def run(fail: Callable[[Any], None], succeed: Callable[[A], None]) -> Cancel:
        future = asyncio.ensure_future(factory())
        _in_flight.add(future)

        def on_done(done: asyncio.Future[A]) -> None:
            if done.cancelled():
                fail(asyncio.CancelledError())
                return
            exc = done.exception()
            if exc is None:
                succeed(done.result())
            elif isinstance(exc, TaskRejected):
                fail(exc.reason)
            else:
                fail(exc)

        future.add_done_callback(on_done)
        future.add_done_callback(_in_flight.discard)
        return noop

    return Task(run)


def to_future(task: Task[Any, A], loop: asyncio.AbstractEventLoop | None = None) -> asyncio.Future[A]:
    """Fork ``task`` immediately and return a Future mirroring its outcome.

    Failures that are exceptions are set as the Future's exception; any other
    failure value, and ``StopIteration``, is wrapped in ``TaskRejected``.
    Cancelling the Future cancels the forked run.

    Args:
        task: Task to fork.
        loop: Loop owning the Future; defaults to the running loop.

    Returns:
        asyncio.Future settled by the Task.
    """
    if loop is None:
        loop = asyncio.get_running_loop()
    future: asyncio.Future[A] = loop.create_future()

    def on_failure(reason: Any) -> None:
        if future.done():
            return
        # StopIteration cannot be raised into a Future
        if isinstance(reason, BaseException) and not isinstance(reason, StopIteration):
            future.set_exception(reason)
        else:
            future.set_exception(TaskRejected(reason))

    def on_success(value: A) -> None:
        if not future.done():
            future.set_result(value)

    cancel = task.fork(on_failure, on_success)

    def on_done(done: asyncio.Future[A]) -> None:
        if done.cancelled():
            logger.debug("future cancelled, cancelling forked task")
            cancel()

    future.add_done_callback(on_done)
    return future
