"""
Cooperative scheduling helpers.

Debouncer is an explicit cancellable scheduled task: trigger() (re)arms a
deadline, poll() runs the callback once the deadline has passed. The host
drives poll() (a NiceGUI ui.timer in the app, a fake clock in tests), so
timing does not depend on any particular event loop.
"""

import logging
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class Debouncer:
    """Run a callback after a quiet period with no new triggers."""

    def __init__(self, delay_ms: float, callback: Callable[[], None],
                 clock: Callable[[], float] = time.monotonic):
        """
        Args:
            delay_ms: Quiescence window in milliseconds
            callback: Called with no arguments when the window elapses
            clock: Monotonic clock returning seconds
        """
        self.delay = max(0.0, delay_ms) / 1000.0
        self._callback = callback
        self._clock = clock
        self._deadline: Optional[float] = None

    @property
    def pending(self) -> bool:
        return self._deadline is not None

    @property
    def deadline(self) -> Optional[float]:
        return self._deadline

    def trigger(self) -> None:
        """Cancel any pending run and restart the window."""
        self._deadline = self._clock() + self.delay

    def cancel(self) -> None:
        self._deadline = None

    def poll(self) -> bool:
        """
        Run the callback if the window has elapsed.

        Returns:
            True if the callback ran
        """
        if self._deadline is None or self._clock() < self._deadline:
            return False
        self._deadline = None
        self._callback()
        return True

    def flush(self) -> bool:
        """Run a pending callback immediately."""
        if self._deadline is None:
            return False
        self._deadline = None
        self._callback()
        return True
