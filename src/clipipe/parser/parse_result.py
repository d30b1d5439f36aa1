"""Parse result -- the immutable input of every invocation.

Produced by :func:`clipipe.parser.tokenizer.parse` (or by any other parser
the host prefers) and read, never modified, by the middleware chain.
"""

from __future__ import annotations

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from clipipe.models import Command, Option, ParseError
from clipipe.parser.directives import DirectiveCollection


class ParseResult(BaseModel):
    """Outcome of matching a command line against a command tree.

    Attributes:
        commands: Matched command path, root first.
        directives: Directives found before the first ordinary token.
        tokens: Ordinary tokens (directives excluded), as given.
        option_values: Values per matched option, keyed by primary name.
            Flags map to an empty list.
        arguments: Positional arguments bound to the matched command.
        unmatched_tokens: Tokens nothing claimed.
        errors: Parse errors; non-empty means the handler must not run.
        raw_input: The original command-line text, when known.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    commands: list[Command]
    directives: DirectiveCollection = Field(default_factory=DirectiveCollection)
    tokens: list[str] = Field(default_factory=list)
    option_values: dict[str, list[str]] = Field(default_factory=dict)
    arguments: list[str] = Field(default_factory=list)
    unmatched_tokens: list[str] = Field(default_factory=list)
    errors: list[ParseError] = Field(default_factory=list)
    raw_input: Optional[str] = None

    @property
    def root_command(self) -> Command:
        return self.commands[0]

    @property
    def command(self) -> Command:
        """The innermost matched command."""
        return self.commands[-1]

    def available_options(self) -> list[Option]:
        """Options usable at the matched command: its own plus inherited global ones."""
        options = list(self.command.options)
        for ancestor in self.commands[:-1]:
            options.extend(o for o in ancestor.options if o.is_global)
        return options

    def _option_name(self, option: Union[Option, str]) -> Optional[str]:
        if isinstance(option, Option):
            return option.name
        for candidate in self.available_options():
            if candidate.has_alias(option):
                return candidate.name
        return None

    def has_option(self, option: Union[Option, str]) -> bool:
        """Whether *option* (an :class:`Option` or any of its aliases) was matched."""
        name = self._option_name(option)
        return name is not None and name in self.option_values

    def find_result_for(self, option: Union[Option, str]) -> Optional[list[str]]:
        """Return the values matched for *option*, or ``None`` when it is absent."""
        name = self._option_name(option)
        if name is None or name not in self.option_values:
            return None
        return list(self.option_values[name])

    def value_for(self, option: Union[Option, str], default: Optional[str] = None) -> Optional[str]:
        """Return the last value given for *option*, or *default*."""
        values = self.find_result_for(option)
        if not values:
            return default
        return values[-1]

    def diagram(self) -> str:
        """Render the parse tree, e.g. ``[ tool [ --out <a.txt> ] <input> ]   ???--> --bogus``."""
        inner = []
        for name, values in self.option_values.items():
            inner.append(f"[ {name}" + "".join(f" <{v}>" for v in values) + " ]")
        inner.extend(f"<{argument}>" for argument in self.arguments)

        opening = [f"[ {command.name}" for command in self.commands]
        text = " ".join(opening + inner) + " ]" * len(self.commands)
        if self.errors:
            text = "!" + text
        if self.unmatched_tokens:
            text += "   ???--> " + " ".join(self.unmatched_tokens)
        return text

    def suggestions(self, position: Optional[int] = None) -> list[str]:
        """Complete the word ending at *position* in :attr:`raw_input`.

        Candidates are the visible aliases of the matched command's
        subcommands and available options, filtered by the partial word
        under the cursor (case-insensitive prefix) and sorted.
        """
        text = self.raw_input or ""
        if position is not None:
            text = text[:max(position, 0)]
        partial = "" if not text or text[-1].isspace() else text.split()[-1]

        candidates: set[str] = set()
        for command in self.command.subcommands:
            if not command.hidden:
                candidates.update(command.all_aliases)
        for option in self.available_options():
            if not option.hidden:
                candidates.update(option.all_aliases)

        prefix = partial.lower()
        return sorted(c for c in candidates if c.lower().startswith(prefix))
