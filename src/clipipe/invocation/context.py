"""Invocation context -- the request-scoped object threaded through the chain.

One :class:`InvocationContext` is created per invocation, handed by
reference to every middleware step and to the command handler, and
discarded once the deferred result has been applied and
:attr:`~InvocationContext.result_code` read.

Fields are filled progressively:

* **Construction** -- ``parse_result``, ``console``, ``config`` and the help
  renderer are fixed.
* **Chain** -- steps may replace ``console`` (ConfigureConsole), set
  ``result_code``, set the deferred ``invocation_result`` (at most once), or
  request a cancellation token.
* **Completion** -- the pipeline applies ``invocation_result`` and returns
  ``result_code``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Optional

from clipipe.cancellation import CancellationSource, CancellationToken
from clipipe.exceptions import InvocationResultAlreadySetError
from clipipe.help import HelpRenderer, render_help
from clipipe.models import PipelineConfig
from clipipe.output import Console
from clipipe.parser.parse_result import ParseResult

if TYPE_CHECKING:
    from clipipe.invocation.results import InvocationResult

logger = logging.getLogger(__name__)


class InvocationContext:
    """Mutable state shared by every step of one invocation.

    Args:
        parse_result: The parse result; read-only for the whole chain.
        console: Output sink. Defaults to a :class:`~clipipe.output.Console`
            on the process streams.
        config: Tunables for the built-in steps.
        help_renderer: Callable used by :class:`~clipipe.invocation.results.HelpResult`.
    """

    def __init__(
        self,
        parse_result: ParseResult,
        console: Optional[Console] = None,
        *,
        config: Optional[PipelineConfig] = None,
        help_renderer: Optional[HelpRenderer] = None,
    ) -> None:
        self._parse_result = parse_result
        self.console = console if console is not None else Console()
        self.config = config if config is not None else PipelineConfig()
        self.help_renderer = help_renderer if help_renderer is not None else render_help
        self.result_code = 0
        self._invocation_result: Optional[InvocationResult] = None
        self._cancellation_source: Optional[CancellationSource] = None
        self._cancellation_listeners: list[Callable[[CancellationSource], None]] = []

    @property
    def parse_result(self) -> ParseResult:
        return self._parse_result

    # ------------------------------------------------------------------
    # Deferred result
    # ------------------------------------------------------------------

    @property
    def invocation_result(self) -> Optional[InvocationResult]:
        """The deferred result deciding this invocation's output, if any."""
        return self._invocation_result

    @invocation_result.setter
    def invocation_result(self, result: InvocationResult) -> None:
        if self._invocation_result is not None:
            raise InvocationResultAlreadySetError(
                f"Invocation result already set to {type(self._invocation_result).__name__}; "
                f"refusing {type(result).__name__}"
            )
        self._invocation_result = result

    def wrap_invocation_result(
        self, wrapper: Callable[[InvocationResult], InvocationResult]
    ) -> None:
        """Replace the deferred result with ``wrapper(result)``.

        Decorating the existing decision is not a second decision, so this
        is allowed after the result was set. Does nothing when no result was
        set.
        """
        if self._invocation_result is not None:
            self._invocation_result = wrapper(self._invocation_result)

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    @property
    def has_cancellation(self) -> bool:
        """Whether any consumer has asked for a cancellation token."""
        return self._cancellation_source is not None

    def on_cancellation_handling_added(
        self, listener: Callable[[CancellationSource], None]
    ) -> None:
        """Call *listener* with the source when cancellation support is first requested.

        A listener added after the source exists is called right away.
        """
        if self._cancellation_source is not None:
            listener(self._cancellation_source)
        else:
            self._cancellation_listeners.append(listener)

    def get_cancellation_token(self) -> CancellationToken:
        """Return the shared token, creating the source on first use."""
        if self._cancellation_source is None:
            self._cancellation_source = CancellationSource()
            logger.debug("Cancellation handling added (%d listeners)", len(self._cancellation_listeners))
            listeners, self._cancellation_listeners = self._cancellation_listeners, []
            for listener in listeners:
                listener(self._cancellation_source)
        return self._cancellation_source.token
