"""Cooperative cancellation shared between the invocation and signal callbacks.

A :class:`CancellationSource` owns a one-way flag. Signal callbacks (running
on arbitrary threads, at arbitrary points of the invocation) call
:meth:`CancellationSource.cancel`; steps and handlers observe the
:class:`CancellationToken` by polling, by registering a callback, or by
awaiting :meth:`CancellationToken.wait`. Nothing is aborted forcibly.

Cancelling is idempotent: only the first call flips the flag and notifies
callbacks and waiters.

Nothing here ever blocks. A SIGINT handler runs on the main thread between
two bytecodes of whatever the main thread was doing, possibly in the middle
of :meth:`CancellationToken.register` or of an earlier :meth:`cancel`, so a
blocking lock on this path would deadlock the process. Instead every
registered entry carries a one-shot claim, and whoever observes the flag
first (the canceller, or a late registration) runs it.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Callable

from clipipe.exceptions import OperationCancelledError

logger = logging.getLogger(__name__)


class _Once:
    """A callable that runs at most once, whoever calls it."""

    def __init__(self, func: Callable[[], None]) -> None:
        self.func = func
        self._claim = threading.Lock()

    def __call__(self) -> None:
        # Non-blocking: the loser of a race simply returns.
        if not self._claim.acquire(blocking=False):
            return
        try:
            self.func()
        except Exception:
            # May run inside a signal handler: keep notifying the rest.
            logger.warning("Cancellation callback %r failed", self.func, exc_info=True)


class CancellationSource:
    """Signal-safe flag-plus-waiters object backing a :class:`CancellationToken`."""

    def __init__(self) -> None:
        self._cancel_claim = threading.Lock()
        self._cancelled = False
        self._entries: list[_Once] = []
        self.token = CancellationToken(self)

    @property
    def is_cancellation_requested(self) -> bool:
        return self._cancelled

    def cancel(self) -> bool:
        """Request cancellation.

        Safe to call from a signal handler, from any thread, and re-entrantly
        from a callback.

        Returns:
            ``True`` for the call that actually cancelled, ``False`` for
            every later call.
        """
        if not self._cancel_claim.acquire(blocking=False):
            return False
        self._cancelled = True

        entries = list(self._entries)
        logger.debug("Cancellation requested (%d callbacks and waiters)", len(entries))
        for entry in entries:
            entry()
        return True

    def _add(self, func: Callable[[], None]) -> None:
        entry = _Once(func)
        # Append before reading the flag: either the canceller's snapshot
        # contains the entry or this call sees the flag, possibly both.
        self._entries.append(entry)
        if self._cancelled:
            entry()


class CancellationToken:
    """Read-only view of a :class:`CancellationSource` handed to consumers."""

    def __init__(self, source: CancellationSource) -> None:
        self._source = source

    @property
    def is_cancellation_requested(self) -> bool:
        return self._source.is_cancellation_requested

    def register(self, callback: Callable[[], None]) -> None:
        """Call *callback* on cancellation, or right away if already cancelled."""
        self._source._add(callback)

    def raise_if_cancelled(self) -> None:
        """Raise :class:`~clipipe.exceptions.OperationCancelledError` once cancelled."""
        if self.is_cancellation_requested:
            raise OperationCancelledError("The operation was cancelled.")

    async def wait(self) -> None:
        """Suspend until cancellation is requested."""
        loop = asyncio.get_running_loop()
        future: asyncio.Future[None] = loop.create_future()

        def wake() -> None:
            if not loop.is_closed():
                loop.call_soon_threadsafe(_resolve, future)

        self._source._add(wake)
        await future


def _resolve(future: asyncio.Future[None]) -> None:
    if not future.done():
        future.set_result(None)
