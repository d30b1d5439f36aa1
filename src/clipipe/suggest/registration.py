"""One-time registration of the host program with the suggestion tool.

The suggestion tool (``clipipe-suggest`` unless configured otherwise) keeps
a list of programs it can complete for. The program registers itself the
first time the pipeline runs::

    clipipe-suggest register --command-path /usr/local/bin/mytool --suggestion-command mytool

The outcome, successful or not, is remembered twice: in-process, so
concurrent and repeated invocations share one attempt, and as a sentinel
file under the cache directory, so later runs of the program skip it.
Registration never raises and never changes the invocation's result code.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import hashlib
import logging
import os
import sys
import threading
import traceback
from pathlib import Path
from typing import Awaitable, Callable, ClassVar, Optional

from clipipe.config import _atomic_write, get_cache_dir

logger = logging.getLogger(__name__)

SUGGEST_FEATURE = "clipipe-suggest"
"""Feature name under which suggest-tool registration is memoised."""


def current_executable() -> Path:
    """Path of the running program (the script, or the interpreter when there is none)."""
    if sys.argv and sys.argv[0] and sys.argv[0] != "-c":
        return Path(os.path.abspath(sys.argv[0]))
    return Path(sys.executable)


def default_sentinel_dir() -> Path:
    return get_cache_dir() / "sentinels"


def list_sentinels(sentinel_dir: Optional[Path] = None) -> list[Path]:
    """Return the recorded sentinel files, sorted by name."""
    directory = sentinel_dir if sentinel_dir is not None else default_sentinel_dir()
    if not directory.is_dir():
        return []
    return sorted(path for path in directory.iterdir() if path.is_file() and not path.name.startswith("."))


def clear_sentinels(sentinel_dir: Optional[Path] = None) -> int:
    """Delete every sentinel file and forget in-process outcomes.

    Returns:
        The number of files removed.
    """
    removed = 0
    for path in list_sentinels(sentinel_dir):
        path.unlink()
        removed += 1
    FeatureRegistration.reset_cache()
    logger.debug("Removed %d registration sentinel(s)", removed)
    return removed


class FeatureRegistration:
    """Runs a registration callable at most once per feature and executable.

    Args:
        feature_name: Key of the feature being registered.
        sentinel_dir: Where sentinel files live. Defaults to
            ``<cache dir>/sentinels``.
        executable: The program being registered. Defaults to
            :func:`current_executable`.
    """

    _lock: ClassVar[threading.Lock] = threading.Lock()
    _results: ClassVar[dict[tuple[str, str], str]] = {}
    _pending: ClassVar[dict[tuple[str, str], concurrent.futures.Future[str]]] = {}

    def __init__(
        self,
        feature_name: str,
        sentinel_dir: Optional[Path] = None,
        executable: Optional[Path] = None,
    ) -> None:
        self.feature_name = feature_name
        self.executable = executable if executable is not None else current_executable()
        self._sentinel_dir = sentinel_dir

    @property
    def key(self) -> tuple[str, str]:
        return self.feature_name, str(self.executable)

    @property
    def sentinel_path(self) -> Path:
        digest = hashlib.sha256(str(self.executable).encode("utf-8")).hexdigest()[:16]
        directory = self._sentinel_dir if self._sentinel_dir is not None else default_sentinel_dir()
        return directory / f"{self.feature_name}-{digest}"

    @classmethod
    def reset_cache(cls) -> None:
        """Forget every in-process outcome.

        Primarily useful in test suites to ensure a clean state between tests.
        """
        with cls._lock:
            cls._results.clear()
            cls._pending.clear()

    async def ensure_registered(self, on_initialize: Callable[[], Awaitable[str]]) -> str:
        """Return the registration outcome, running *on_initialize* only if needed.

        Args:
            on_initialize: Performs the registration and describes the
                outcome. Called at most once per feature and executable.

        Returns:
            The text produced by *on_initialize*, now or on an earlier call.
        """
        # A thread-level future, so that invocations running on different
        # event loops (asyncio.run in several threads) share one attempt.
        with self._lock:
            if self.key in self._results:
                return self._results[self.key]
            pending = self._pending.get(self.key)
            owner = pending is None
            if pending is None:
                pending = concurrent.futures.Future()
                self._pending[self.key] = pending

        if not owner:
            # Shielded: a cancelled waiter must not cancel the shared attempt.
            return await asyncio.shield(asyncio.wrap_future(pending))

        try:
            outcome = self._read_sentinel()
            if outcome is None:
                outcome = await on_initialize()
                self._write_sentinel(outcome)
            else:
                logger.debug("Registration of %s already recorded at %s", self.feature_name, self.sentinel_path)
        except BaseException as exc:
            with self._lock:
                self._pending.pop(self.key, None)
            if isinstance(exc, asyncio.CancelledError):
                pending.cancel()
            else:
                pending.set_exception(exc)
            raise

        with self._lock:
            self._results[self.key] = outcome
            self._pending.pop(self.key, None)
        pending.set_result(outcome)
        return outcome

    def _read_sentinel(self) -> Optional[str]:
        try:
            return self.sentinel_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.warning("Cannot read registration sentinel %s: %s", self.sentinel_path, exc)
            return None

    def _write_sentinel(self, outcome: str) -> None:
        try:
            _atomic_write(self.sentinel_path, outcome)
        except OSError as exc:
            logger.warning("Cannot persist registration sentinel %s: %s", self.sentinel_path, exc)


async def register_with_suggest_tool(tool: str, executable: Optional[Path] = None) -> str:
    """Register *executable* with the suggestion *tool* and describe the outcome.

    Args:
        tool: Name or path of the suggestion tool.
        executable: Program to register. Defaults to
            :func:`current_executable`.

    Returns:
        ``"<tool> exited with code <n>"`` followed by the captured output,
        or ``"Exception during registration:"`` followed by a traceback.
        Never raises.
    """
    executable = executable if executable is not None else current_executable()
    try:
        process = await asyncio.create_subprocess_exec(
            tool,
            "register",
            "--command-path",
            str(executable),
            "--suggestion-command",
            executable.stem,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout, stderr = await process.communicate()
    except Exception:
        outcome = f"Exception during registration:\n{traceback.format_exc()}"
        logger.info("Registration with %s failed", tool, exc_info=True)
        return outcome

    outcome = (
        f"{tool} exited with code {process.returncode}\n"
        f"OUT:\n{stdout.decode(errors='replace')}\n"
        f"ERR:\n{stderr.decode(errors='replace')}"
    )
    logger.info("Registered %s with %s (exit code %s)", executable.stem, tool, process.returncode)
    return outcome
