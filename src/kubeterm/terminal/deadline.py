"""Overall time budget of a single terminal operation."""

from __future__ import annotations

import time

from kubeterm.terminal.exceptions import OperationTimeout


class Deadline:
    """Point in time after which an operation must give up."""

    def __init__(self, seconds: float) -> None:
        self._seconds = seconds
        self._expires_at = time.monotonic() + seconds

    def remaining(self) -> float:
        return max(0.0, self._expires_at - time.monotonic())

    @property
    def expired(self) -> bool:
        return time.monotonic() >= self._expires_at

    def bound(self, timeout: float) -> float:
        """The smaller of a step's own timeout and the time left."""
        return min(timeout, self.remaining())

    def check(self, action: str) -> None:
        """Raise if the deadline passed before starting an action.

        Raises:
            OperationTimeout: If the deadline has passed.
        """
        if self.expired:
            raise OperationTimeout(
                f"Gave up before {action}: operation exceeded {self._seconds:g} seconds"
            )
