"""Canonical Pydantic models shared across all clipipe modules.

The models fall into two groups:

**Configuration model** -- serialised as JSON in the user's config directory:
    :class:`PipelineConfig`.

**Command model** -- the symbols the parser matches tokens against and the
errors it produces:
    :class:`Option`, :class:`Command` and :class:`ParseError`.

The parse result itself lives in :mod:`clipipe.parser.parse_result` because
it carries a :class:`~clipipe.parser.directives.DirectiveCollection`, which
is a plain class rather than a model.
"""

from __future__ import annotations

from typing import Any, Callable, Iterator, Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Configuration ---


class PipelineConfig(BaseModel):
    """Tunables for the built-in middleware.

    Resolved by :func:`clipipe.config.resolve_config` from explicit
    overrides, ``CLIPIPE_*`` environment variables and the user's
    ``config.json``. The builder uses plain defaults when no config is
    passed.

    Example::

        PipelineConfig(max_typo_distance=2, suggest_tool="my-suggest")
    """

    max_typo_distance: int = Field(
        default=3, ge=0, description="Maximum edit distance for typo suggestions"
    )
    debug_poll_interval: float = Field(
        default=0.5, gt=0, description="Seconds between debugger-attach polls"
    )
    suggest_tool: str = Field(
        default="clipipe-suggest",
        description="Executable invoked to register the program for suggestions",
    )
    parse_error_exit_code: int = Field(
        default=1, description="Result code set when parse errors are reported"
    )
    enable_directives: bool = Field(
        default=True, description="Treat leading [name:value] tokens as directives"
    )
    version: Optional[str] = Field(
        default=None, description="Explicit version printed by --version"
    )
    distribution: Optional[str] = Field(
        default=None, description="Distribution whose metadata supplies the version"
    )


# --- Command model ---


class Option(BaseModel):
    """A named option such as ``--verbose`` or ``--output <value>``.

    Attributes:
        name: Primary alias, including its prefix (``--output``).
        aliases: Additional aliases (``-o``).
        takes_value: Whether the option consumes a value token.
        is_global: Whether subcommands inherit the option.
        hidden: Hidden options are never offered as suggestions.
    """

    name: str
    aliases: list[str] = Field(default_factory=list)
    description: str = ""
    takes_value: bool = False
    is_global: bool = False
    hidden: bool = False

    @property
    def all_aliases(self) -> list[str]:
        return [self.name, *self.aliases]

    def has_alias(self, alias: str) -> bool:
        return alias in self.all_aliases


class Command(BaseModel):
    """A command or subcommand and its handler.

    The handler receives the :class:`~clipipe.invocation.context.InvocationContext`
    and may be a plain function or a coroutine function. It may return an
    ``int`` (the result code), an
    :class:`~clipipe.invocation.results.InvocationResult`, or ``None``.

    Attributes:
        name: Command name as typed on the command line.
        options: Options local to this command (plus inherited global ones).
        subcommands: Child commands.
        arguments: Names of the positional arguments the command accepts.
        handler: Callable invoked when this command is matched.
        treat_unmatched_tokens_as_errors: Report surplus tokens as parse
            errors (and trigger typo suggestions).
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    aliases: list[str] = Field(default_factory=list)
    description: str = ""
    options: list[Option] = Field(default_factory=list)
    subcommands: list[Command] = Field(default_factory=list)
    arguments: list[str] = Field(default_factory=list)
    handler: Optional[Callable[..., Any]] = None
    treat_unmatched_tokens_as_errors: bool = True
    hidden: bool = False

    @property
    def all_aliases(self) -> list[str]:
        return [self.name, *self.aliases]

    def has_alias(self, alias: str) -> bool:
        return alias in self.all_aliases

    def add_option(self, option: Option) -> Command:
        self.options.append(option)
        return self

    def add_global_option(self, option: Option) -> Command:
        option.is_global = True
        return self.add_option(option)

    def add_subcommand(self, command: Command) -> Command:
        self.subcommands.append(command)
        return self

    def children(self) -> Iterator[Option | Command]:
        """Yield the options and subcommands directly below this command."""
        yield from self.options
        yield from self.subcommands

    def find_child(self, alias: str) -> Option | Command | None:
        """Return the option or subcommand answering to *alias*, if any."""
        for child in self.children():
            if child.has_alias(alias):
                return child
        return None


class ParseError(BaseModel):
    """A single problem found while parsing the command line.

    Attributes:
        message: Human-readable description shown to the user.
        token: The offending token, when one can be singled out.
    """

    message: str
    token: Optional[str] = None


Command.model_rebuild()
