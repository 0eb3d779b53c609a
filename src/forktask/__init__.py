from .combinators import parallel, race, series
from .interop import LoopTimer, delay, from_future, timeout, to_future
from .kernel import (
    Cancel,
    Evidence,
    Task,
    TaskContractError,
    TaskRejected,
    TaskTimeoutError,
    TimerPort,
    Trace,
    noop,
)

__all__ = [
    # Core
    "Task",
    "Cancel",
    "noop",
    # Combinators
    "race",
    "series",
    "parallel",
    # Interop
    "from_future",
    "to_future",
    "delay",
    "timeout",
    "LoopTimer",
    "TimerPort",
    # Errors
    "TaskContractError",
    "TaskRejected",
    "TaskTimeoutError",
    # Tracing
    "Trace",
    "Evidence",
]
