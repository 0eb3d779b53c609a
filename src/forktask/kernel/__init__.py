"""Kernel layer - the Task primitive and its settlement protocol."""

from forktask.kernel.errors import TaskContractError, TaskRejected, TaskTimeoutError
from forktask.kernel.ports import TimerPort
from forktask.kernel.settlement import Cancel, CancelSlot, Computation, Settlement, noop
from forktask.kernel.task import Task
from forktask.kernel.trace import Evidence, Trace

__all__ = [
    "Task",
    "Cancel",
    "Computation",
    "Settlement",
    "CancelSlot",
    "noop",
    # Errors
    "TaskContractError",
    "TaskRejected",
    "TaskTimeoutError",
    # Ports
    "TimerPort",
    # Tracing
    "Evidence",
    "Trace",
]
