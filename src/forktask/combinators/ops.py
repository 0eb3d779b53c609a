"""Combinator primitives: race, series, parallel."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any, TypeVar

from forktask.kernel import Cancel, CancelSlot, Task, Trace, noop

E = TypeVar("E")
A = TypeVar("A")

logger = logging.getLogger(__name__)


class _Recorder:
    """Trace events of one aggregate run; inert without a Trace."""

    def __init__(self, name: str, trace: Trace | None) -> None:
        self.name = name
        self.trace = trace
        self.parent_id: int | None = None

    def begin(self, size: int) -> None:
        if self.trace is not None:
            self.parent_id = self.trace.record(f"{self.name}_begin", info={"size": size})

    def branch(self, index: int, outcome: str) -> None:
        if self.trace is not None:
            self.trace.record(f"branch_{index}", info={"outcome": outcome}, parent_id=self.parent_id)

    def end(self, outcome: str) -> None:
        if self.trace is not None:
            self.trace.record(f"{self.name}_end", info={"outcome": outcome}, parent_id=self.parent_id)

    def cancel(self) -> None:
        if self.trace is not None:
            self.trace.record(f"{self.name}_cancel", parent_id=self.parent_id)


def race(tasks: Iterable[Task[E, A]], *, trace: Trace | None = None) -> Task[E, A]:
    """Settle with whichever Task settles first.

    Semantics:
        - Fork every Task in input order
        - The first settlement, success or failure, becomes the outcome
        - All other children are cancelled once a winner settles
        - Simultaneous synchronous settlements go to the first in input
          order; Tasks forked after the winner are cancelled straight away
        - An empty sequence never settles

    Args:
        tasks: Tasks to race.
        trace: Optional trace receiving race_begin/branch_i/race_end events.

    Returns:
        Task[E, A]: A new Task racing the inputs.
    """
    children = tuple(tasks)

    def run(fail: Callable[[E], None], succeed: Callable[[A], None]) -> Cancel:
        recorder = _Recorder("race", trace)
        recorder.begin(len(children))
        cancels: list[Cancel] = []
        done = False

        def cancel_all(skip: int | None = None) -> None:
            for index, cancel in enumerate(cancels):
                if index != skip:
                    cancel()

        def settle(index: int, outcome: str, channel: Callable[[Any], None]) -> Callable[[Any], None]:
            def handler(value: Any) -> None:
                nonlocal done
                if done:
                    return
                done = True
                recorder.branch(index, outcome)
                logger.debug("race won by task %d (%s), cancelling the rest", index, outcome)
                cancel_all(skip=index)
                recorder.end(outcome)
                channel(value)

            return handler

        for index, child in enumerate(children):
            child_cancel = child.fork(settle(index, "failure", fail), settle(index, "success", succeed))
            cancels.append(child_cancel)
            # forked after the winner settled: started, then dropped at once
            if done:
                child_cancel()

        def cancel() -> None:
            nonlocal done
            if done:
                return
            done = True
            recorder.cancel()
            cancel_all()

        return cancel

    return Task(run)


def series(tasks: Iterable[Task[E, A]], *, trace: Trace | None = None) -> Task[E, list[A]]:
    """Run Tasks one after another, collecting their values.

    Semantics:
        - Task i+1 is forked only after Task i succeeded
        - The first failure settles the aggregate; later Tasks never start
        - Success yields values in input order
        - Cancelling cancels only the Task currently running

    Synchronously settling Tasks are driven in a loop rather than by
    recursion, so long sequences do not grow the stack.

    Args:
        tasks: Tasks to run in order.
        trace: Optional trace receiving series_begin/branch_i/series_end events.

    Returns:
        Task[E, list[A]]: A new Task running the inputs sequentially.
    """
    children = tuple(tasks)

    def run(fail: Callable[[E], None], succeed: Callable[[list[A]], None]) -> Cancel:
        recorder = _Recorder("series", trace)
        recorder.begin(len(children))
        values: list[A] = []
        slot = CancelSlot()
        failed = False
        driving = False

        def on_failure(reason: E) -> None:
            nonlocal failed
            failed = True
            recorder.branch(len(values), "failure")
            recorder.end("failure")
            fail(reason)

        def on_success(value: A) -> None:
            recorder.branch(len(values), "success")
            values.append(value)
            if not driving:
                drive()

        def drive() -> None:
            nonlocal driving
            driving = True
            try:
                while not (failed or slot.cancelled):
                    index = len(values)
                    if index == len(children):
                        recorder.end("success")
                        succeed(list(values))
                        return
                    slot.set(children[index].fork(on_failure, on_success))
                    if len(values) == index:
                        # still running, on_success resumes the loop
                        return
            finally:
                driving = False

        def cancel() -> None:
            if slot.cancelled:
                return
            recorder.cancel()
            slot()

        drive()
        return cancel

    return Task(run)


def parallel(tasks: Iterable[Task[E, A]], *, trace: Trace | None = None) -> Task[E, list[A]]:
    """Run Tasks concurrently, collecting their values in input order.

    Semantics:
        - Fork every Task in input order
        - Succeed once all succeeded, with values aligned to input order
        - The first failure observed in time settles the aggregate and
          cancels every Task still running, including ones forked after it
        - Cancelling cancels every Task still running

    Args:
        tasks: Tasks to run concurrently.
        trace: Optional trace receiving parallel_begin/branch_i/parallel_end events.

    Returns:
        Task[E, list[A]]: A new Task running the inputs concurrently.
    """
    children = tuple(tasks)

    def run(fail: Callable[[E], None], succeed: Callable[[list[A]], None]) -> Cancel:
        recorder = _Recorder("parallel", trace)
        recorder.begin(len(children))
        if not children:
            recorder.end("success")
            succeed([])
            return noop

        values: list[Any] = [None] * len(children)
        remaining = len(children)
        cancels: list[Cancel] = []
        done = False

        def cancel_all() -> None:
            for cancel in cancels:
                cancel()

        def on_failure_at(index: int) -> Callable[[E], None]:
            def handler(reason: E) -> None:
                nonlocal done
                if done:
                    return
                done = True
                recorder.branch(index, "failure")
                logger.debug("parallel task %d failed, cancelling the rest", index)
                cancel_all()
                recorder.end("failure")
                fail(reason)

            return handler

        def on_success_at(index: int) -> Callable[[A], None]:
            def handler(value: A) -> None:
                nonlocal done, remaining
                if done:
                    return
                recorder.branch(index, "success")
                values[index] = value
                remaining -= 1
                if remaining == 0:
                    done = True
                    recorder.end("success")
                    succeed(list(values))

            return handler

        for index, child in enumerate(children):
            child_cancel = child.fork(on_failure_at(index), on_success_at(index))
            cancels.append(child_cancel)
            if done:
                child_cancel()

        def cancel() -> None:
            nonlocal done
            if done:
                return
            done = True
            recorder.cancel()
            cancel_all()

        return cancel

    return Task(run)
