"""Settlement protocol - the two-callback contract shared by every Task."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Generic, TypeVar

E = TypeVar("E")
A = TypeVar("A")

logger = logging.getLogger(__name__)

Cancel = Callable[[], None]
OnFailure = Callable[[E], Any]
OnSuccess = Callable[[A], Any]
Computation = Callable[[Callable[[E], None], Callable[[A], None]], Cancel | None]


def noop(*_: Any) -> None:
    """Cancel handle for computations with nothing to cancel."""


class Settlement(Generic[E, A]):
    """Per-fork guard around a callback pair.

    Exactly one of ``fail``/``succeed`` reaches the caller, at most once.
    After ``cancel`` neither does. The wrapped cancel handle runs at most once
    and only while the run is still pending.
    """

    __slots__ = ("_on_failure", "_on_success", "_cancel", "_settled", "_cancelled")

    def __init__(self, on_failure: OnFailure[E], on_success: OnSuccess[A]) -> None:
        self._on_failure = on_failure
        self._on_success = on_success
        self._cancel: Cancel = noop
        self._settled = False
        self._cancelled = False

    @property
    def pending(self) -> bool:
        return not (self._settled or self._cancelled)

    def fail(self, reason: E) -> None:
        if not self.pending:
            logger.debug("ignoring failure on finished run: %r", reason)
            return
        self._settled = True
        self._on_failure(reason)

    def succeed(self, value: A) -> None:
        if not self.pending:
            logger.debug("ignoring success on finished run: %r", value)
            return
        self._settled = True
        self._on_success(value)

    def bind(self, cancel: Cancel | None) -> Cancel:
        """Attach the computation's cancel handle and return the guarded one."""
        if callable(cancel):
            self._cancel = cancel
        return self.cancel

    def cancel(self) -> None:
        if not self.pending:
            return
        self._cancelled = True
        cancel, self._cancel = self._cancel, noop
        cancel()


class CancelSlot:
    """Cancel handle for whichever stage of a run is currently active.

    Sequential runs (``chain``, ``series``) swap the active handle as they move
    from stage to stage. Once the slot has been cancelled, any handle stored
    afterwards is cancelled immediately.
    """

    __slots__ = ("_current", "_cancelled")

    def __init__(self) -> None:
        self._current: Cancel = noop
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def set(self, cancel: Cancel) -> None:
        if self._cancelled:
            cancel()
            return
        self._current = cancel

    def __call__(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        cancel, self._current = self._current, noop
        cancel()
