"""Built-in middleware steps.

Each public function here is a factory returning a step for
:class:`~clipipe.pipeline.chain.MiddlewarePipeline`. The builder registers
them at their :class:`~clipipe.pipeline.order.MiddlewareOrder` slot; the
factories themselves know nothing about ordering.

Directive steps read the directives collected by the parser:

========================  ===============================================
``[env:NAME=value]``      set an environment variable, then continue
``[parse]``               print the parse diagram instead of running
``[debug]``               wait for a debugger to attach, then continue
``[culture:fr-FR]``       set the current culture (also ``[uiculture:..]``,
                          ``[invariantculture]``, ``[invariantuiculture]``)
``[suggest:12]``          print completions for cursor position 12
========================  ===============================================
"""

from __future__ import annotations

import asyncio
import functools
import importlib.metadata
import logging
import os
import sys
import traceback
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional, Union

from clipipe.culture import (
    INVARIANT_CULTURE,
    CultureInfo,
    CultureSnapshot,
    set_current_culture,
    set_current_ui_culture,
)
from clipipe.exceptions import CultureNotFoundError
from clipipe.invocation.restoring import ExecutionContextRestoringResult
from clipipe.invocation.results import (
    HelpResult,
    ParseDirectiveResult,
    ParseErrorResult,
    SuggestDirectiveResult,
    VersionResult,
)
from clipipe.invocation.termination import SignalBackend, TerminationCoordinator
from clipipe.models import Option
from clipipe.output import Console
from clipipe.pipeline.chain import Next, Step
from clipipe.suggest.registration import (
    SUGGEST_FEATURE,
    FeatureRegistration,
    current_executable,
    register_with_suggest_tool,
)
from clipipe.suggest.typo import Scorer, TypoCorrection

if TYPE_CHECKING:
    from pathlib import Path

    from clipipe.invocation.context import InvocationContext

logger = logging.getLogger(__name__)

VersionSource = Union[str, Callable[[], str], None]

GLOBALIZATION_INVARIANT = "CLIPIPE_GLOBALIZATION_INVARIANT"
GLOBALIZATION_UIINVARIANT = "CLIPIPE_GLOBALIZATION_UIINVARIANT"
GLOBALIZATION_CULTURE = "CLIPIPE_GLOBALIZATION_CULTURE"
GLOBALIZATION_UICULTURE = "CLIPIPE_GLOBALIZATION_UICULTURE"


# ---------------------------------------------------------------------------
# Process termination and failures
# ---------------------------------------------------------------------------


def cancel_on_process_termination(
    backend: Optional[SignalBackend] = None,
    exit_process: Optional[Callable[[int], None]] = None,
) -> Step:
    """Cancel the invocation on SIGINT/SIGTERM once someone holds a token.

    Args:
        backend: Signal backend, for embedding and tests.
        exit_process: Replaces the forced process exit on SIGTERM.
    """

    async def step(context: InvocationContext, next: Next) -> None:
        coordinator = TerminationCoordinator(context, backend, exit_process)
        context.on_cancellation_handling_added(coordinator.arm)
        try:
            await next(context)
        finally:
            coordinator.tear_down()

    return step


def _default_exception_handler(exc: BaseException, context: InvocationContext) -> None:
    console = context.console
    console.reset_foreground()
    console.set_foreground_red()
    detail = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)).rstrip()
    console.write_error(f"Unhandled exception: {detail}")
    console.reset_foreground()
    context.result_code = 1
    logger.debug("Unhandled exception in invocation", exc_info=exc)


def exception_handler(
    on_exception: Optional[Callable[[Exception, InvocationContext], None]] = None,
) -> Step:
    """Contain any exception raised further down the chain.

    Args:
        on_exception: Called with the exception and the context. The default
            writes the traceback in red to the error stream and sets the
            result code to 1.
    """
    handle = on_exception if on_exception is not None else _default_exception_handler

    async def step(context: InvocationContext, next: Next) -> None:
        try:
            await next(context)
        except Exception as exc:
            handle(exc, context)

    return step


def configure_console(factory: Callable[[InvocationContext], Console]) -> Step:
    """Replace the context's console with ``factory(context)``."""

    async def step(context: InvocationContext, next: Next) -> None:
        context.console = factory(context)
        await next(context)

    return step


# ---------------------------------------------------------------------------
# Directives
# ---------------------------------------------------------------------------


def environment_variable_directive() -> Step:
    """``[env:NAME=value]``: set process environment variables."""

    def step(context: InvocationContext, next: Next) -> Awaitable[None]:
        for entry in context.parse_result.directives.get_values("env") or []:
            name, separator, value = entry.partition("=")
            name = name.strip()
            if not name or not separator:
                logger.debug("Ignoring malformed env directive %r", entry)
                continue
            os.environ[name] = value.strip()
        return next(context)

    return step


def parse_directive() -> Step:
    """``[parse]``: show how the command line was parsed and stop."""

    async def step(context: InvocationContext, next: Next) -> None:
        if context.parse_result.directives.contains("parse"):
            context.invocation_result = ParseDirectiveResult()
        else:
            await next(context)

    return step


def _debugger_attached() -> bool:
    if sys.gettrace() is not None:
        return True
    debugpy = sys.modules.get("debugpy")
    return bool(debugpy is not None and debugpy.is_client_connected())


def debug_directive(is_attached: Optional[Callable[[], bool]] = None) -> Step:
    """``[debug]``: print the process id and wait until a debugger attaches.

    The wait ignores cancellation.

    Args:
        is_attached: Predicate polled every ``config.debug_poll_interval``
            seconds. Defaults to checking for a trace function or a
            connected debugpy client.
    """
    attached = is_attached if is_attached is not None else _debugger_attached

    async def step(context: InvocationContext, next: Next) -> None:
        if context.parse_result.directives.contains("debug"):
            name = current_executable().name
            context.console.write_out(f"Attach your debugger to process {os.getpid()} ({name}).")
            while not attached():
                await asyncio.sleep(context.config.debug_poll_interval)
        await next(context)

    return step


def _parse_bool(value: str) -> bool:
    value = value.strip()
    if value.lower() in ("true", "false"):
        return value.lower() == "true"
    try:
        return int(value) != 0
    except ValueError:
        return False


def _lookup_culture(name: str, source: str) -> Optional[CultureInfo]:
    try:
        return CultureInfo.get(name)
    except CultureNotFoundError:
        logger.debug("Ignoring unknown culture %r from %s", name, source)
        return None


def _apply_culture_environment() -> None:
    invariant = os.environ.get(GLOBALIZATION_INVARIANT)
    if invariant is not None and _parse_bool(invariant):
        set_current_culture(INVARIANT_CULTURE)
    uiinvariant = os.environ.get(GLOBALIZATION_UIINVARIANT)
    if uiinvariant is not None and _parse_bool(uiinvariant):
        set_current_ui_culture(INVARIANT_CULTURE)

    name = os.environ.get(GLOBALIZATION_CULTURE)
    if name is not None:
        culture = _lookup_culture(name, GLOBALIZATION_CULTURE)
        if culture is not None:
            set_current_culture(culture)
    name = os.environ.get(GLOBALIZATION_UICULTURE)
    if name is not None:
        culture = _lookup_culture(name, GLOBALIZATION_UICULTURE)
        if culture is not None:
            set_current_ui_culture(culture)


def culture_directive() -> Step:
    """Configure the current cultures from the environment, then from directives.

    Directives take precedence over the ``CLIPIPE_GLOBALIZATION_*``
    variables. Whatever result the rest of the chain decides on is applied
    under the cultures configured here.
    """

    async def step(context: InvocationContext, next: Next) -> None:
        directives = context.parse_result.directives
        _apply_culture_environment()

        if directives.contains("invariantculture"):
            set_current_culture(INVARIANT_CULTURE)
        if directives.contains("invariantuiculture"):
            set_current_ui_culture(INVARIANT_CULTURE)
        for name in directives.get_values("culture") or []:
            culture = _lookup_culture(name, "culture directive")
            if culture is not None:
                set_current_culture(culture)
        for name in directives.get_values("uiculture") or []:
            culture = _lookup_culture(name, "uiculture directive")
            if culture is not None:
                set_current_ui_culture(culture)

        snapshot = CultureSnapshot.capture()
        await next(context)
        context.wrap_invocation_result(lambda inner: ExecutionContextRestoringResult(snapshot, inner))

    return step


def suggest_directive() -> Step:
    """``[suggest]`` / ``[suggest:<position>]``: print completions and stop."""

    async def step(context: InvocationContext, next: Next) -> None:
        values = context.parse_result.directives.get_values("suggest")
        if values is None:
            await next(context)
            return

        raw_length = len(context.parse_result.raw_input or "")
        position = raw_length
        if values:
            try:
                position = int(values[0])
            except ValueError:
                logger.debug("Non-numeric suggest position %r; using end of input", values[0])
        context.invocation_result = SuggestDirectiveResult(position)

    return step


# ---------------------------------------------------------------------------
# Suggestions and parse errors
# ---------------------------------------------------------------------------


def register_suggest_tool(
    on_initialize: Optional[Callable[[InvocationContext], Awaitable[str]]] = None,
    sentinel_dir: Optional[Path] = None,
) -> Step:
    """Register the program with the suggestion tool, once.

    Args:
        on_initialize: Performs the registration. Defaults to running
            ``config.suggest_tool`` as a subprocess.
        sentinel_dir: Where the outcome is persisted between runs.
    """

    async def step(context: InvocationContext, next: Next) -> None:
        registration = FeatureRegistration(SUGGEST_FEATURE, sentinel_dir=sentinel_dir)

        async def initialize() -> str:
            if on_initialize is not None:
                return await on_initialize(context)
            return await register_with_suggest_tool(context.config.suggest_tool, registration.executable)

        outcome = await registration.ensure_registered(initialize)
        logger.debug("Suggest registration: %s", outcome.splitlines()[0] if outcome else "")
        await next(context)

    return step


def typo_corrections(max_distance: Optional[int] = None, scorer: Optional[Scorer] = None) -> Step:
    """Suggest close matches for unmatched tokens, then continue.

    Args:
        max_distance: Overrides ``config.max_typo_distance``.
        scorer: Distance function; Levenshtein by default.
    """

    async def step(context: InvocationContext, next: Next) -> None:
        parse_result = context.parse_result
        if parse_result.unmatched_tokens and parse_result.command.treat_unmatched_tokens_as_errors:
            distance = max_distance if max_distance is not None else context.config.max_typo_distance
            TypoCorrection(distance, scorer).provide_suggestions(parse_result, context.console)
        await next(context)

    return step


def parse_error_reporting() -> Step:
    """Report parse errors instead of running the handler."""

    async def step(context: InvocationContext, next: Next) -> None:
        if context.parse_result.errors:
            context.invocation_result = ParseErrorResult()
        else:
            await next(context)

    return step


# ---------------------------------------------------------------------------
# Help and version
# ---------------------------------------------------------------------------


def help_option(option: Option) -> Step:
    """Show help instead of running the handler when *option* was given."""

    async def step(context: InvocationContext, next: Next) -> None:
        if context.parse_result.find_result_for(option) is not None:
            context.invocation_result = HelpResult()
        else:
            await next(context)

    return step


@functools.lru_cache(maxsize=None)
def resolve_version(distribution: Optional[str] = None) -> str:
    """Look up the program version, once per process.

    Tries the installed *distribution*'s metadata, then ``__version__`` of
    the ``__main__`` module, then falls back to ``"0.0.0"``.
    """
    if distribution:
        try:
            return importlib.metadata.version(distribution)
        except importlib.metadata.PackageNotFoundError:
            logger.debug("Distribution %r is not installed", distribution)
    main = sys.modules.get("__main__")
    version: Any = getattr(main, "__version__", None)
    if isinstance(version, str) and version:
        return version
    return "0.0.0"


def version_option(option: Option, version: VersionSource = None) -> Step:
    """Print the version instead of running the handler when *option* was given.

    Args:
        option: The ``--version`` option added to the root command.
        version: Version string or callable. Defaults to
            ``config.version``, then :func:`resolve_version`.
    """

    async def step(context: InvocationContext, next: Next) -> None:
        if not context.parse_result.has_option(option):
            await next(context)
            return
        source: Union[str, Callable[[], str]]
        if version is not None:
            source = version
        elif context.config.version is not None:
            source = context.config.version
        else:
            source = functools.partial(resolve_version, context.config.distribution)
        context.invocation_result = VersionResult(source)

    return step
