"""Default plain-text help renderer.

Help layout is not part of the pipeline's contract: :class:`HelpResult`
calls whatever renderer the builder was given through
:meth:`~clipipe.pipeline.builder.CommandLineBuilder.use_help_renderer`.
This one prints the sections most tools expect::

    Description:
      Copy files.

    Usage:
      tool copy <source> [options]

    Options:
      -?, -h, --help  Show help and usage information
"""

from __future__ import annotations

from typing import Callable

from clipipe.output import Console
from clipipe.parser.parse_result import ParseResult

HelpRenderer = Callable[[ParseResult, Console], None]


def _rows(console: Console, title: str, rows: list[tuple[str, str]]) -> None:
    if not rows:
        return
    width = max(len(label) for label, _ in rows)
    console.write_out(f"{title}:")
    for label, description in rows:
        console.write_out(f"  {label.ljust(width)}  {description}".rstrip())
    console.write_out()


def render_help(parse_result: ParseResult, console: Console) -> None:
    """Write help for the matched command of *parse_result* to *console*."""
    command = parse_result.command

    if command.description:
        console.write_out("Description:")
        console.write_out(f"  {command.description}")
        console.write_out()

    usage = " ".join(c.name for c in parse_result.commands)
    usage += "".join(f" <{argument}>" for argument in command.arguments)
    if command.subcommands:
        usage += " [command]"
    options = [o for o in parse_result.available_options() if not o.hidden]
    if options:
        usage += " [options]"
    console.write_out("Usage:")
    console.write_out(f"  {usage}")
    console.write_out()

    _rows(console, "Arguments", [(f"<{argument}>", "") for argument in command.arguments])
    _rows(
        console,
        "Options",
        [
            (
                ", ".join(sorted(o.all_aliases, key=len)) + (" <value>" if o.takes_value else ""),
                o.description,
            )
            for o in options
        ],
    )
    _rows(
        console,
        "Commands",
        [(c.name, c.description) for c in command.subcommands if not c.hidden],
    )
