"""Routing run control objects."""

from __future__ import annotations

import threading


class PlanCancelledError(RuntimeError):
    """Raised when a planning run is aborted through its cancellation token."""


class CancellationToken:
    """Cooperative cancellation flag shared between a caller and one run."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise PlanCancelledError("Route planning run was cancelled.")
