"""Cooperative cancellation for background runs.

Responsibilities:
- Carry a cancellation request from API handlers into running phases.
- Raise `JobCanceledError` at suspension points once cancellation is requested.
"""

from __future__ import annotations

import threading

from ..errors import JobCanceledError


class CancellationToken:
    """Thread-safe one-way cancellation flag.

    Worker threads started through `asyncio.to_thread` may read the token, so the
    flag is backed by `threading.Event` instead of an asyncio primitive.
    """

    __slots__ = ("_event",)

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation; repeated calls are no-ops."""

        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        """Raise `JobCanceledError` when cancellation was requested."""

        if self._event.is_set():
            raise JobCanceledError()
