"""Port protocols for forktask - pure abstractions."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol


class TimerPort(Protocol):
    """Timer facility used by delayed helpers.

    Injected explicitly; the kernel never reaches for ambient timers.
    """

    def schedule(self, seconds: float, callback: Callable[[], None]) -> Any:
        """Run ``callback`` after ``seconds`` and return a handle for ``cancel``."""
        ...

    def cancel(self, handle: Any) -> None:
        """Cancel a scheduled callback. Unknown or fired handles are ignored."""
        ...
