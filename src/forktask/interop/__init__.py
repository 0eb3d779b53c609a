"""Interop - asyncio bridges and timer helpers."""

from .futures import from_future, to_future
from .timers import LoopTimer, delay, timeout

__all__ = [
    "from_future",
    "to_future",
    "LoopTimer",
    "delay",
    "timeout",
]
