"""Minimal command-line parser producing a :class:`ParseResult`.

The invocation pipeline only needs a parse result; this parser exists so
that programs built on clipipe work out of the box. It understands:

* leading directives (``[name]`` / ``[name:value]``),
* subcommands by name or alias,
* options as ``--opt``, ``--opt value`` or ``--opt=value``,
* ``--`` to end option processing,
* positional arguments, bounded by :attr:`Command.arguments`.

Anything left over is *unmatched*; when the matched command treats
unmatched tokens as errors each one becomes a :class:`ParseError`.
"""

from __future__ import annotations

import logging
import shlex
from typing import Optional, Sequence, Union

from clipipe.models import Command, Option, ParseError
from clipipe.parser.directives import DirectiveCollection, match_directive
from clipipe.parser.parse_result import ParseResult

logger = logging.getLogger(__name__)


def _find_option(options: Sequence[Option], token: str) -> Optional[Option]:
    for option in options:
        if option.has_alias(token):
            return option
    return None


def _find_subcommand(command: Command, token: str) -> Optional[Command]:
    for subcommand in command.subcommands:
        if subcommand.has_alias(token):
            return subcommand
    return None


def parse(
    command: Command,
    args: Union[str, Sequence[str]],
    *,
    enable_directives: bool = True,
    raw_input: Optional[str] = None,
) -> ParseResult:
    """Parse *args* against the *command* tree.

    Args:
        command: Root command.
        args: Argument vector (without the program name) or a command-line
            string, which is split with :func:`shlex.split`.
        enable_directives: Recognise leading ``[...]`` tokens as directives.
        raw_input: Original text, used by the suggest directive. Defaults to
            *args* itself when a string is given, else the space-joined
            vector.

    Returns:
        The :class:`ParseResult`. Parsing never raises; problems are
        reported through :attr:`ParseResult.errors`.
    """
    if isinstance(args, str):
        raw_input = args if raw_input is None else raw_input
        try:
            tokens = shlex.split(args)
        except ValueError as exc:
            # Unclosed quote or trailing escape.
            logger.debug("Cannot split command line %r: %s", args, exc)
            return ParseResult(
                commands=[command],
                errors=[ParseError(message=f"Invalid command line: {exc}.")],
                raw_input=raw_input,
            )
    else:
        tokens = list(args)
        raw_input = " ".join(tokens) if raw_input is None else raw_input

    directives = DirectiveCollection()
    index = 0
    if enable_directives:
        while index < len(tokens):
            directive = match_directive(tokens[index])
            if directive is None:
                break
            directives.add(*directive)
            index += 1

    commands = [command]
    global_options: list[Option] = [o for o in command.options if o.is_global]
    option_values: dict[str, list[str]] = {}
    arguments: list[str] = []
    unmatched: list[str] = []
    errors: list[ParseError] = []
    remaining = tokens[index:]
    only_arguments = False

    position = 0
    while position < len(remaining):
        token = remaining[position]
        position += 1
        current = commands[-1]

        if not only_arguments and token == "--":
            only_arguments = True
            continue

        option: Optional[Option] = None
        inline: Optional[str] = None
        if not only_arguments:
            options = [*current.options, *(o for o in global_options if o not in current.options)]
            option = _find_option(options, token)
            if option is None and "=" in token:
                name, _, inline = token.partition("=")
                option = _find_option(options, name)
            if option is None and token.startswith("-") and len(token) > 1:
                unmatched.append(token)
                continue

        if option is not None:
            values = option_values.setdefault(option.name, [])
            if not option.takes_value:
                continue
            if inline is not None:
                values.append(inline)
            elif position < len(remaining):
                values.append(remaining[position])
                position += 1
            else:
                errors.append(
                    ParseError(message=f"Required argument missing for option: '{token}'.", token=token)
                )
            continue

        subcommand = None if only_arguments or arguments else _find_subcommand(current, token)
        if subcommand is not None:
            commands.append(subcommand)
            global_options.extend(o for o in subcommand.options if o.is_global)
            continue

        if len(arguments) < len(current.arguments):
            arguments.append(token)
        else:
            unmatched.append(token)

    matched = commands[-1]
    if matched.treat_unmatched_tokens_as_errors:
        errors.extend(
            ParseError(message=f"Unrecognized command or argument '{token}'.", token=token)
            for token in unmatched
        )
    if matched.subcommands and matched.handler is None and not option_values:
        errors.append(ParseError(message="Required command was not provided."))

    logger.debug(
        "Parsed %d tokens: command=%s unmatched=%d errors=%d",
        len(tokens), " ".join(c.name for c in commands), len(unmatched), len(errors),
    )
    return ParseResult(
        commands=commands,
        directives=directives,
        tokens=remaining,
        option_values=option_values,
        arguments=arguments,
        unmatched_tokens=unmatched,
        errors=errors,
        raw_input=raw_input,
    )
