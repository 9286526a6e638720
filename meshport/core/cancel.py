"""Cooperative cancellation for long-running exports."""

from __future__ import annotations

import threading

from .errors import ExportCancelled


class CancelToken:
    """Thread-safe cancellation flag checked between primitives.

    Another thread calls ``cancel()``; the pipeline calls ``raise_if_cancelled()``
    at each primitive boundary and never returns a partial result.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        """Raise ExportCancelled if cancellation was requested."""
        if self._event.is_set():
            raise ExportCancelled("Export cancelled")
