"""Directive collection -- bracketed control tokens at the start of a command line.

A directive is written ``[name]`` or ``[name:value]`` and must precede every
other token::

    mytool [env:LOG_LEVEL=debug] [culture:fr-FR] run --fast

Names are case-insensitive. A name may repeat (``env`` usually does) and
every occurrence contributes one value; the flag form contributes no value.
"""

from __future__ import annotations

import re
from typing import Iterable, Iterator, Optional

_DIRECTIVE_PATTERN = re.compile(r"^\[(?P<name>[^:\[\]\s]+)(?::(?P<value>.*))?\]$", re.DOTALL)


def match_directive(token: str) -> Optional[tuple[str, Optional[str]]]:
    """Split *token* into ``(name, value)`` if it is a directive, else ``None``."""
    match = _DIRECTIVE_PATTERN.match(token)
    if match is None:
        return None
    return match.group("name"), match.group("value")


class DirectiveCollection:
    """Case-insensitive multi-map of directive names to values."""

    def __init__(self, items: Iterable[tuple[str, Optional[str]]] = ()) -> None:
        self._names: dict[str, str] = {}
        self._values: dict[str, list[str]] = {}
        for name, value in items:
            self.add(name, value)

    def add(self, name: str, value: Optional[str] = None) -> None:
        key = name.lower()
        self._names.setdefault(key, name)
        values = self._values.setdefault(key, [])
        if value is not None:
            values.append(value)

    def contains(self, name: str) -> bool:
        return name.lower() in self._values

    def get_values(self, name: str) -> Optional[list[str]]:
        """Return the values given for *name* (possibly empty), or ``None`` if absent."""
        values = self._values.get(name.lower())
        return None if values is None else list(values)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.contains(name)

    def __iter__(self) -> Iterator[tuple[str, list[str]]]:
        for key, values in self._values.items():
            yield self._names[key], list(values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"DirectiveCollection({dict(self)!r})"
