"""clipipe -- the invocation pipeline of a command-line framework.

Given a parsed command line, clipipe runs a deterministically ordered chain
of cross-cutting steps before, or instead of, the matched command's
handler: help and version short-circuits, directives such as
``[parse]``, ``[env:NAME=value]`` and ``[culture:fr-FR]``, typo
suggestions, parse-error reporting, exception containment and cooperative
cancellation on SIGINT/SIGTERM.

Typical usage::

    from clipipe import Command, CommandLineBuilder

    root = Command(name="tool", handler=lambda context: 0)
    parser = CommandLineBuilder(root).use_defaults().build()
    raise SystemExit(parser.invoke())

Modules:
    app: ``run()`` entry point helper with crash logging.
    models: Pydantic models for commands, options and configuration.
    config: XDG-aware configuration resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes.
    output: stdout/stderr console sink built on Rich.
    culture: Culture model and process-wide current culture.
    pipeline: Middleware ordering, composition and the builder.
    invocation: Invocation context, deferred results, termination handling.
    suggest: Typo suggestions and suggestion-tool registration.
    cli: The ``clipipe`` admin command (config and registration sentinels).
"""

from clipipe.app import run
from clipipe.models import Command, Option, ParseError, PipelineConfig
from clipipe.pipeline.builder import CommandLineBuilder, Parser
from clipipe.pipeline.order import MiddlewareOrder

__version__ = "0.1.0"

__all__ = [
    "Command",
    "CommandLineBuilder",
    "MiddlewareOrder",
    "Option",
    "ParseError",
    "Parser",
    "PipelineConfig",
    "run",
]
