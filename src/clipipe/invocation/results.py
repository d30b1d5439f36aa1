"""Deferred invocation results.

A step that decides what the invocation should produce (help, version, a
parse-error report, ...) does not write anything itself. It stores an
:class:`InvocationResult` on the context and stops the chain; the pipeline
calls :meth:`InvocationResult.apply` exactly once after every step has
unwound. Steps that ran earlier therefore get to decorate the decision
(see :class:`~clipipe.invocation.restoring.ExecutionContextRestoringResult`).
"""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING, Callable, Optional

if TYPE_CHECKING:
    from clipipe.invocation.context import InvocationContext


class InvocationResult(abc.ABC):
    """Base class for every deferred result."""

    @abc.abstractmethod
    def apply(self, context: InvocationContext) -> None:
        """Produce the result's effects on *context* (output, ``result_code``)."""


class HelpResult(InvocationResult):
    """Render help for the matched command through the context's help renderer."""

    def apply(self, context: InvocationContext) -> None:
        context.help_renderer(context.parse_result, context.console)
        context.result_code = 0


class VersionResult(InvocationResult):
    """Write the program version to the normal output stream.

    Args:
        version: Version string, or a zero-argument callable returning it.
            A callable is resolved when the result is applied.
    """

    def __init__(self, version: str | Callable[[], str]) -> None:
        self._version = version

    def apply(self, context: InvocationContext) -> None:
        version = self._version() if callable(self._version) else self._version
        context.console.write_out(version)
        context.result_code = 0


class ParseErrorResult(InvocationResult):
    """Report every parse error in red on the error stream."""

    def apply(self, context: InvocationContext) -> None:
        console = context.console
        console.reset_foreground()
        console.set_foreground_red()
        for error in context.parse_result.errors:
            console.write_error(error.message)
        console.write_error()
        console.reset_foreground()
        context.result_code = context.config.parse_error_exit_code


class ParseDirectiveResult(InvocationResult):
    """Write the parse diagram of the command line (``[parse]`` directive)."""

    def apply(self, context: InvocationContext) -> None:
        parse_result = context.parse_result
        context.console.write_out(parse_result.diagram())
        context.result_code = context.config.parse_error_exit_code if parse_result.errors else 0


class SuggestDirectiveResult(InvocationResult):
    """Write completion suggestions, one per line (``[suggest]`` directive).

    Args:
        position: Cursor offset into the raw command-line text; ``None``
            means the end of the input.
    """

    def __init__(self, position: Optional[int] = None) -> None:
        self.position = position

    def apply(self, context: InvocationContext) -> None:
        for suggestion in context.parse_result.suggestions(self.position):
            context.console.write_out(suggestion)
        context.result_code = 0
