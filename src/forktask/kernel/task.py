"""Task - lazy, cancellable, dual-channel computation.

A Task wraps a computation ``(fail, succeed) -> cancel``. Nothing runs until
``fork`` is called; every fork is an independent run with its own settlement
guard and its own cancel handle.

Operators compose new computations around the upstream one at build time, so
they execute inline while the upstream settles. They satisfy the usual laws:

1. Identity: ``t.map(lambda x: x) == t``
2. Composition: ``t.map(f).map(g) == t.map(lambda x: g(f(x)))``
3. Left identity: ``Task.resolved(x).chain(f) == f(x)``
4. Right identity: ``t.chain(Task.resolved) == t``
5. Associativity: ``t.chain(f).chain(g) == t.chain(lambda x: f(x).chain(g))``
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from forktask.kernel.errors import TaskContractError
from forktask.kernel.settlement import (
    Cancel,
    CancelSlot,
    Computation,
    OnFailure,
    OnSuccess,
    Settlement,
    noop,
)

if TYPE_CHECKING:
    from forktask.kernel.trace import Trace

E = TypeVar("E")
A = TypeVar("A")
F = TypeVar("F")
B = TypeVar("B")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Task(Generic[E, A]):
    """Deferred computation settling with a failure ``E`` or a success ``A``."""

    _run: Computation[E, A]

    def fork(self, on_failure: OnFailure[E], on_success: OnSuccess[A]) -> Cancel:
        """Start the computation and return its cancel handle.

        Exactly one callback fires, at most once. After the returned handle
        is called, neither fires. Calling the handle after settlement or more
        than once does nothing.
        """
        settlement: Settlement[E, A] = Settlement(on_failure, on_success)
        return settlement.bind(self._run(settlement.fail, settlement.succeed))

    # Constructors

    @staticmethod
    def resolved(value: A) -> Task[Any, A]:
        """Create a Task that succeeds with ``value`` as soon as it is forked."""
        def run(_: Callable[[Any], None], succeed: Callable[[A], None]) -> Cancel:
            succeed(value)
            return noop

        return Task(run)

    @staticmethod
    def rejected(reason: E) -> Task[E, Any]:
        """Create a Task that fails with ``reason`` as soon as it is forked."""
        def run(fail: Callable[[E], None], _: Callable[[Any], None]) -> Cancel:
            fail(reason)
            return noop

        return Task(run)

    @staticmethod
    def from_future(factory: Callable[[], Awaitable[A]]) -> Task[Any, A]:
        from forktask.interop.futures import from_future

        return from_future(factory)

    @staticmethod
    def race(tasks: Iterable[Task[E, A]], *, trace: Trace | None = None) -> Task[E, A]:
        from forktask.combinators.ops import race

        return race(tasks, trace=trace)

    @staticmethod
    def series(tasks: Iterable[Task[E, A]], *, trace: Trace | None = None) -> Task[E, list[A]]:
        from forktask.combinators.ops import series

        return series(tasks, trace=trace)

    @staticmethod
    def parallel(tasks: Iterable[Task[E, A]], *, trace: Trace | None = None) -> Task[E, list[A]]:
        from forktask.combinators.ops import parallel

        return parallel(tasks, trace=trace)

    # Transformations

    def map(self, func: Callable[[A], B]) -> Task[E, B]:
        def run(fail: Callable[[E], None], succeed: Callable[[B], None]) -> Cancel:
            return self.fork(fail, lambda value: succeed(func(value)))

        return Task(run)

    def map_rejected(self, func: Callable[[E], F]) -> Task[F, A]:
        def run(fail: Callable[[F], None], succeed: Callable[[A], None]) -> Cancel:
            return self.fork(lambda reason: fail(func(reason)), succeed)

        return Task(run)

    def bimap(self, on_failure: Callable[[E], F], on_success: Callable[[A], B]) -> Task[F, B]:
        def run(fail: Callable[[F], None], succeed: Callable[[B], None]) -> Cancel:
            return self.fork(
                lambda reason: fail(on_failure(reason)),
                lambda value: succeed(on_success(value)),
            )

        return Task(run)

    def chain(self, func: Callable[[A], Task[E, B]]) -> Task[E, B]:
        """Sequence a Task-returning function after this Task succeeds.

        Args:
            func: Called with the success value; must return a Task

        Returns:
            New Task settling with the outcome of the Task ``func`` returned

        Raises:
            TaskContractError: When ``func`` returns something other than a
                Task. Raised from whichever callback detects it, so for a
                synchronous upstream it surfaces from ``fork`` itself.
        """
        def run(fail: Callable[[E], None], succeed: Callable[[B], None]) -> Cancel:
            slot = CancelSlot()
            chained = False

            def on_success(value: A) -> None:
                nonlocal chained
                chained = True
                next_task = func(value)
                if not isinstance(next_task, Task):
                    logger.debug("chain callback %r returned %r", func, next_task)
                    raise TaskContractError(
                        f"chained function did not return a Task, got {type(next_task).__name__}"
                    )
                slot.set(next_task.fork(fail, succeed))

            cancel = self.fork(fail, on_success)
            # A synchronous upstream has already handed the slot to the next stage
            if not chained:
                slot.set(cancel)
            return slot

        return Task(run)

    def fold(self, on_failure: Callable[[E], B], on_success: Callable[[A], B]) -> Task[Any, B]:
        """Collapse both channels into success; the result never fails."""
        def run(_: Callable[[Any], None], succeed: Callable[[B], None]) -> Cancel:
            return self.fork(
                lambda reason: succeed(on_failure(reason)),
                lambda value: succeed(on_success(value)),
            )

        return Task(run)

    # Overrides

    def resolve_with(self, value: B) -> Task[Any, B]:
        """Run this Task for its effects, then succeed with ``value`` regardless."""
        def run(_: Callable[[Any], None], succeed: Callable[[B], None]) -> Cancel:
            return self.fork(lambda _reason: succeed(value), lambda _value: succeed(value))

        return Task(run)

    def reject_with(self, reason: F) -> Task[F, Any]:
        """Run this Task for its effects, then fail with ``reason`` regardless."""
        def run(fail: Callable[[F], None], _: Callable[[Any], None]) -> Cancel:
            return self.fork(lambda _reason: fail(reason), lambda _value: fail(reason))

        return Task(run)

    def empty(self) -> Task[Any, Any]:
        """Run this Task for its effects and never settle."""
        def run(_fail: Callable[[Any], None], _succeed: Callable[[Any], None]) -> Cancel:
            return self.fork(noop, noop)

        return Task(run)

    # Interop

    def to_future(self, loop: asyncio.AbstractEventLoop | None = None) -> asyncio.Future[A]:
        """Fork now and expose the outcome as an asyncio Future."""
        from forktask.interop.futures import to_future

        return to_future(self, loop=loop)
