"""Error types raised by the Task kernel and its bridges."""

from __future__ import annotations


class TaskContractError(TypeError):
    """Raised when the Task API is misused.

    Distinct from domain failures: it is raised, never delivered through the
    failure channel.
    """


class TaskRejected(Exception):
    """Carries a non-exception failure value across into asyncio."""

    def __init__(self, reason: object) -> None:
        self.reason = reason
        super().__init__(f"Task rejected with {reason!r}")

    def __repr__(self) -> str:
        return f"TaskRejected(reason={self.reason!r})"


class TaskTimeoutError(TimeoutError):
    """Default failure of a Task that did not settle in time."""

    def __init__(self, seconds: float) -> None:
        self.seconds = seconds
        super().__init__(f"Task did not settle within {seconds}s")
