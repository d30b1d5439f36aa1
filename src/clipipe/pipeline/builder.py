"""Fluent builder assembling a command tree and middleware into a :class:`Parser`.

Typical usage::

    from clipipe import Command, CommandLineBuilder

    def greet(context):
        context.console.write_out(f"Hello, {context.parse_result.arguments[0]}!")
        return 0

    root = Command(name="greet", arguments=["name"], handler=greet)
    parser = CommandLineBuilder(root).use_defaults().build()
    raise SystemExit(parser.invoke())

Each ``use_*`` method registers one built-in step at its fixed
:class:`~clipipe.pipeline.order.MiddlewareOrder` slot, so the order of the
calls does not matter. User steps go through :meth:`CommandLineBuilder.add_middleware`
at any integer order.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import sys
from pathlib import Path
from typing import Awaitable, Callable, Optional, Sequence, Union

from clipipe.help import HelpRenderer, render_help
from clipipe.invocation.context import InvocationContext
from clipipe.invocation.results import InvocationResult
from clipipe.invocation.termination import SignalBackend
from clipipe.models import Command, Option, PipelineConfig
from clipipe.output import Console
from clipipe.parser.parse_result import ParseResult
from clipipe.parser.tokenizer import parse
from clipipe.pipeline import steps
from clipipe.pipeline.chain import MiddlewarePipeline, Next, Step
from clipipe.pipeline.order import MiddlewareOrder
from clipipe.suggest.typo import Scorer

logger = logging.getLogger(__name__)

HELP_ALIASES = ["-h", "-?", "/?"]


async def invoke_handler(context: InvocationContext) -> None:
    """Run the matched command's handler and record what it returns.

    An ``int`` becomes the result code and an
    :class:`~clipipe.invocation.results.InvocationResult` becomes the
    deferred result; anything else is ignored.
    """
    handler = context.parse_result.command.handler
    if handler is None:
        logger.debug("Command %r has no handler", context.parse_result.command.name)
        return
    result = handler(context)
    if inspect.isawaitable(result):
        result = await result
    if isinstance(result, InvocationResult):
        context.invocation_result = result
    elif isinstance(result, int):
        context.result_code = result


class Parser:
    """A built command line: parses arguments and runs the middleware chain.

    Created by :meth:`CommandLineBuilder.build`; not meant to be
    instantiated directly.
    """

    def __init__(
        self,
        command: Command,
        chain: Next,
        *,
        config: PipelineConfig,
        help_renderer: HelpRenderer,
        enable_directives: bool,
    ) -> None:
        self.command = command
        self.config = config
        self._chain = chain
        self._help_renderer = help_renderer
        self._enable_directives = enable_directives

    def parse(self, args: Union[str, Sequence[str], None] = None) -> ParseResult:
        """Parse *args*, or ``sys.argv[1:]`` when omitted."""
        if args is None:
            args = sys.argv[1:]
        return parse(self.command, args, enable_directives=self._enable_directives)

    async def invoke_async(
        self,
        args: Union[str, Sequence[str], ParseResult, None] = None,
        console: Optional[Console] = None,
    ) -> int:
        """Run the chain for *args* and return the result code.

        Args:
            args: A parse result, an argument vector, a command-line string,
                or ``None`` for ``sys.argv[1:]``.
            console: Output sink. Defaults to the process streams.

        Returns:
            The invocation's ``result_code`` after the deferred result, if
            any, has been applied.
        """
        parse_result = args if isinstance(args, ParseResult) else self.parse(args)
        context = InvocationContext(
            parse_result,
            console,
            config=self.config,
            help_renderer=self._help_renderer,
        )
        await self._chain(context)
        if context.invocation_result is not None:
            context.invocation_result.apply(context)
        return context.result_code

    def invoke(
        self,
        args: Union[str, Sequence[str], ParseResult, None] = None,
        console: Optional[Console] = None,
    ) -> int:
        """Synchronous :meth:`invoke_async`, run with :func:`asyncio.run`."""
        return asyncio.run(self.invoke_async(args, console))


class CommandLineBuilder:
    """Collects middleware for *command* and builds a :class:`Parser`.

    Args:
        command: The root command.
        config: Tunables for the built-in steps. Defaults to
            :class:`~clipipe.models.PipelineConfig` defaults; use
            :func:`clipipe.config.resolve_config` to honour the user's
            config file and environment.
    """

    def __init__(self, command: Command, config: Optional[PipelineConfig] = None) -> None:
        self.command = command
        self.config = config if config is not None else PipelineConfig()
        self._pipeline = MiddlewarePipeline()
        self._help_option: Optional[Option] = None
        self._help_renderer: HelpRenderer = render_help
        self._enable_directives = self.config.enable_directives

    @property
    def pipeline(self) -> MiddlewarePipeline:
        return self._pipeline

    @property
    def help_option(self) -> Optional[Option]:
        return self._help_option

    # ------------------------------------------------------------------
    # User middleware
    # ------------------------------------------------------------------

    def add_middleware(self, step: Step, order: int = MiddlewareOrder.DEFAULT) -> CommandLineBuilder:
        self._pipeline.add(step, order)
        return self

    use_middleware = add_middleware

    def use_action(
        self,
        action: Callable[[InvocationContext], object],
        order: int = MiddlewareOrder.DEFAULT,
    ) -> CommandLineBuilder:
        """Run *action* (sync or async) and then continue the chain."""

        async def step(context: InvocationContext, next: Next) -> None:
            result = action(context)
            if inspect.isawaitable(result):
                await result
            await next(context)

        return self.add_middleware(step, order)

    # ------------------------------------------------------------------
    # Built-in middleware
    # ------------------------------------------------------------------

    def cancel_on_process_termination(
        self,
        backend: Optional[SignalBackend] = None,
        exit_process: Optional[Callable[[int], None]] = None,
    ) -> CommandLineBuilder:
        return self.add_middleware(
            steps.cancel_on_process_termination(backend, exit_process), MiddlewareOrder.STARTUP
        )

    def use_exception_handler(
        self, on_exception: Optional[Callable[[Exception, InvocationContext], None]] = None
    ) -> CommandLineBuilder:
        return self.add_middleware(steps.exception_handler(on_exception), MiddlewareOrder.EXCEPTION_HANDLER)

    def configure_console(self, factory: Callable[[InvocationContext], Console]) -> CommandLineBuilder:
        return self.add_middleware(steps.configure_console(factory), MiddlewareOrder.CONFIGURE_CONSOLE)

    def use_environment_variable_directive(self) -> CommandLineBuilder:
        return self.add_middleware(
            steps.environment_variable_directive(), MiddlewareOrder.ENVIRONMENT_VARIABLE_DIRECTIVE
        )

    def use_parse_directive(self) -> CommandLineBuilder:
        return self.add_middleware(steps.parse_directive(), MiddlewareOrder.PARSE_DIRECTIVE)

    def use_debug_directive(self, is_attached: Optional[Callable[[], bool]] = None) -> CommandLineBuilder:
        return self.add_middleware(steps.debug_directive(is_attached), MiddlewareOrder.DEBUG_DIRECTIVE)

    def use_culture_directive(self) -> CommandLineBuilder:
        return self.add_middleware(steps.culture_directive(), MiddlewareOrder.CULTURE_DIRECTIVE)

    def use_suggest_directive(self) -> CommandLineBuilder:
        return self.add_middleware(steps.suggest_directive(), MiddlewareOrder.SUGGEST_DIRECTIVE)

    def register_with_suggest_tool(
        self,
        on_initialize: Optional[Callable[[InvocationContext], Awaitable[str]]] = None,
        sentinel_dir: Optional[Path] = None,
    ) -> CommandLineBuilder:
        return self.add_middleware(
            steps.register_suggest_tool(on_initialize, sentinel_dir),
            MiddlewareOrder.REGISTER_SUGGEST_TOOL,
        )

    def use_typo_corrections(
        self, max_distance: Optional[int] = None, scorer: Optional[Scorer] = None
    ) -> CommandLineBuilder:
        return self.add_middleware(steps.typo_corrections(max_distance, scorer), MiddlewareOrder.TYPO_CORRECTION)

    def use_parse_error_reporting(self) -> CommandLineBuilder:
        return self.add_middleware(steps.parse_error_reporting(), MiddlewareOrder.PARSE_ERROR_REPORTING)

    def use_help(self, option: Optional[Option] = None) -> CommandLineBuilder:
        """Add a global ``--help`` option and show help when it is given.

        Only the first call has an effect.
        """
        if self._help_option is not None:
            return self
        if option is None:
            option = Option(
                name="--help",
                aliases=list(HELP_ALIASES),
                description="Show help and usage information",
                is_global=True,
            )
        self._help_option = option
        if not any(self.command.find_child(alias) for alias in option.all_aliases):
            self.command.add_global_option(option)
        return self.add_middleware(steps.help_option(option), MiddlewareOrder.HELP_OPTION)

    def use_version_option(self, version: steps.VersionSource = None) -> CommandLineBuilder:
        """Add ``--version`` to the root command unless it already answers to it.

        Args:
            version: Version string or callable; see :func:`steps.version_option`.
        """
        if self.command.find_child("--version") is not None:
            return self
        option = Option(name="--version", description="Show version information")
        self.command.add_option(option)
        return self.add_middleware(steps.version_option(option, version), MiddlewareOrder.VERSION_OPTION)

    def use_defaults(self) -> CommandLineBuilder:
        """Register every built-in step with its default settings."""
        return (
            self.use_version_option()
            .use_help()
            .use_environment_variable_directive()
            .use_parse_directive()
            .use_debug_directive()
            .use_culture_directive()
            .use_suggest_directive()
            .register_with_suggest_tool()
            .use_typo_corrections()
            .use_parse_error_reporting()
            .use_exception_handler()
            .cancel_on_process_termination()
        )

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def enable_directives(self, value: bool = True) -> CommandLineBuilder:
        self._enable_directives = value
        return self

    def use_help_renderer(self, renderer: HelpRenderer) -> CommandLineBuilder:
        self._help_renderer = renderer
        return self

    def build(self) -> Parser:
        logger.debug("Building pipeline for %r with %d steps", self.command.name, len(self._pipeline))
        return Parser(
            self.command,
            self._pipeline.build(invoke_handler),
            config=self.config,
            help_renderer=self._help_renderer,
            enable_directives=self._enable_directives,
        )
