"""Bridge OS termination signals to cooperative cancellation.

Nothing is installed until some consumer asks the
:class:`~clipipe.invocation.context.InvocationContext` for a cancellation
token. From then on, until the chain unwinds:

* **SIGINT** (Ctrl+C) cancels the token and is otherwise swallowed; the
  chain is expected to notice and unwind on its own.
* **SIGTERM** (and **SIGBREAK** on Windows) cancels the token, then a
  dedicated thread waits for the chain to finish and ends the process with
  the context's ``result_code``. The event loop thread is never blocked.

When the chain finishes, by any path, the previous handlers are put back
and the completion gate is opened, exactly once.
"""

from __future__ import annotations

import enum
import logging
import os
import signal
import sys
import threading
from typing import TYPE_CHECKING, Any, Callable, Optional, Protocol

if TYPE_CHECKING:
    from clipipe.cancellation import CancellationSource
    from clipipe.invocation.context import InvocationContext

logger = logging.getLogger(__name__)


class TerminationState(enum.Enum):
    IDLE = "idle"
    ARMED = "armed"
    EXITING = "exiting"
    TORN_DOWN = "torn_down"


class SignalBackend(Protocol):
    """Installs and removes the two notification handlers."""

    def install(
        self,
        on_interrupt: Callable[[], None],
        on_process_exit: Callable[[], None],
    ) -> bool:
        """Attach the handlers. Returns ``False`` when they could not be attached."""
        ...

    def uninstall(self) -> None:
        """Detach the handlers attached by :meth:`install`."""
        ...


def _process_exit_signals() -> list[signal.Signals]:
    signals = [signal.SIGTERM]
    sigbreak = getattr(signal, "SIGBREAK", None)
    if sigbreak is not None:
        signals.append(sigbreak)
    return signals


class OsSignalBackend:
    """:class:`SignalBackend` built on :func:`signal.signal`.

    Python only lets the main thread install signal handlers. Elsewhere
    :meth:`install` logs a warning and reports failure; the invocation still
    runs, just without OS-level hooks.
    """

    def __init__(self) -> None:
        self._previous: dict[int, Any] = {}

    def install(
        self,
        on_interrupt: Callable[[], None],
        on_process_exit: Callable[[], None],
    ) -> bool:
        if threading.current_thread() is not threading.main_thread():
            logger.warning("Not on the main thread; termination signals will not cancel the invocation")
            return False

        def interrupt_handler(signum: int, frame: Any) -> None:
            on_interrupt()

        def process_exit_handler(signum: int, frame: Any) -> None:
            # Signal handlers run on the main thread, which is usually the
            # event loop thread; the blocking wait happens elsewhere.
            threading.Thread(
                target=on_process_exit, name="clipipe-process-exit", daemon=True
            ).start()

        self._previous[signal.SIGINT] = signal.signal(signal.SIGINT, interrupt_handler)
        for signum in _process_exit_signals():
            self._previous[signum] = signal.signal(signum, process_exit_handler)
        return True

    def uninstall(self) -> None:
        for signum, previous in self._previous.items():
            signal.signal(signum, previous if previous is not None else signal.SIG_DFL)
        self._previous.clear()


def _force_exit(code: int) -> None:
    """End the process with *code* without unwinding the main thread."""
    for stream in (sys.stdout, sys.stderr):
        try:
            stream.flush()
        except (OSError, ValueError):
            pass
    os._exit(code)


class TerminationCoordinator:
    """Per-invocation state machine behind the cancel-on-termination step.

    Args:
        context: The invocation whose ``result_code`` becomes the exit status
            on the process-exit path.
        backend: Where handlers are installed. Defaults to
            :class:`OsSignalBackend`.
        exit_process: Called with the result code once the gate opens on the
            process-exit path. Defaults to flushing stdio and ``os._exit``.
    """

    def __init__(
        self,
        context: InvocationContext,
        backend: Optional[SignalBackend] = None,
        exit_process: Optional[Callable[[int], None]] = None,
    ) -> None:
        self._context = context
        self._backend = backend if backend is not None else OsSignalBackend()
        self._exit_process = exit_process if exit_process is not None else _force_exit
        self._lock = threading.Lock()
        self._state = TerminationState.IDLE
        self._source: Optional[CancellationSource] = None
        self._gate: Optional[threading.Event] = None
        self._installed = False

    @property
    def state(self) -> TerminationState:
        return self._state

    def arm(self, source: CancellationSource) -> None:
        """Install the handlers for *source*. Only the first call has any effect."""
        with self._lock:
            if self._state is not TerminationState.IDLE:
                return
            self._source = source
            self._gate = threading.Event()
            self._state = TerminationState.ARMED
        self._installed = self._backend.install(self._on_interrupt, self._on_process_exit)
        logger.debug("Termination handling armed (handlers installed: %s)", self._installed)

    def _on_interrupt(self) -> None:
        source = self._source
        if source is None:
            return
        logger.debug("Interrupt received; cancelling invocation")
        source.cancel()

    def _on_process_exit(self) -> None:
        source, gate = self._source, self._gate
        if source is None or gate is None:
            return
        logger.debug("Process exit requested; cancelling invocation")
        with self._lock:
            if self._state is TerminationState.ARMED:
                self._state = TerminationState.EXITING
        source.cancel()
        gate.wait()
        self._exit_process(self._context.result_code)

    def tear_down(self) -> None:
        """Detach the handlers and open the gate. Safe to call more than once."""
        with self._lock:
            previous, self._state = self._state, TerminationState.TORN_DOWN
        if previous in (TerminationState.IDLE, TerminationState.TORN_DOWN):
            return
        if self._installed:
            self._backend.uninstall()
            self._installed = False
        if self._gate is not None:
            self._gate.set()
        logger.debug("Termination handling torn down")
