"""Typo suggestions ("did you mean ...") for unmatched tokens."""

from __future__ import annotations

import logging
import os
from typing import Callable, Optional, Sequence

from clipipe.models import Command, Option
from clipipe.output import Console
from clipipe.parser.parse_result import ParseResult

logger = logging.getLogger(__name__)

Scorer = Callable[[str, str], int]


def levenshtein(s1: str, s2: str) -> int:
    """Return the edit distance between *s1* and *s2*."""
    if len(s1) < len(s2):
        return levenshtein(s2, s1)
    if len(s2) == 0:
        return len(s1)
    previous_row = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1):
        current_row = [i + 1]
        for j, c2 in enumerate(s2):
            insertions = previous_row[j + 1] + 1
            deletions = current_row[j] + 1
            substitutions = previous_row[j] + (c1 != c2)
            current_row.append(min(insertions, deletions, substitutions))
        previous_row = current_row
    return previous_row[-1]


def _common_prefix_length(a: str, b: str) -> int:
    return len(os.path.commonprefix([a, b]))


class TypoCorrection:
    """Ranks the visible symbols of a command against unmatched tokens.

    Args:
        max_distance: Candidates further than this from the token are
            dropped.
        scorer: Distance function, :func:`levenshtein` by default.
    """

    def __init__(self, max_distance: int = 3, scorer: Optional[Scorer] = None) -> None:
        if max_distance < 0:
            raise ValueError("max_distance must not be negative")
        self.max_distance = max_distance
        self.scorer = scorer if scorer is not None else levenshtein

    def provide_suggestions(self, parse_result: ParseResult, console: Console) -> None:
        """Write suggestions for every unmatched token of *parse_result*."""
        for token in parse_result.unmatched_tokens:
            suggestions = self.suggestions_for(token, _candidates(parse_result))
            if not suggestions:
                logger.debug("No suggestion within distance %d for %r", self.max_distance, token)
                continue
            console.write_out(f"'{token}' was not matched. Did you mean one of the following?")
            for suggestion in suggestions:
                console.write_out(suggestion)

    def suggestions_for(self, token: str, symbols: Sequence[Option | Command]) -> list[str]:
        """Return the closest aliases to *token*, best match first."""
        scored: list[tuple[int, int, str]] = []
        for symbol in symbols:
            best = self._best_alias(token, symbol.all_aliases)
            if best is not None and best[0] <= self.max_distance:
                scored.append(best)
        if not scored:
            return []

        best_distance = min(distance for distance, _, _ in scored)
        closest = [item for item in scored if item[0] == best_distance]
        closest.sort(key=lambda item: item[1], reverse=True)
        return [alias for _, _, alias in closest]

    def _best_alias(self, token: str, aliases: Sequence[str]) -> Optional[tuple[int, int, str]]:
        best: Optional[tuple[int, int, str]] = None
        for alias in aliases:
            distance = self.scorer(token, alias)
            prefix = _common_prefix_length(token, alias)
            if best is None or distance < best[0] or (distance == best[0] and prefix > best[1]):
                best = (distance, prefix, alias)
        return best


def _candidates(parse_result: ParseResult) -> list[Option | Command]:
    command = parse_result.command
    symbols: list[Option | Command] = [
        o for o in parse_result.available_options() if not o.hidden
    ]
    symbols.extend(c for c in command.subcommands if not c.hidden)
    return symbols
