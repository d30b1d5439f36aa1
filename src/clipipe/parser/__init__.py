"""Command-line parsing -- directives, parse results and a minimal parser.

The invocation pipeline treats parsing as an upstream collaborator: it only
reads a :class:`ParseResult`. This package supplies one:

* :mod:`~clipipe.parser.directives` -- :class:`DirectiveCollection` and the
  ``[name:value]`` token syntax.
* :mod:`~clipipe.parser.parse_result` -- :class:`ParseResult`, including
  the parse-tree diagram and completion candidates.
* :mod:`~clipipe.parser.tokenizer` -- :func:`parse`, which matches tokens
  against a :class:`~clipipe.models.Command` tree.
"""

from clipipe.parser.directives import DirectiveCollection
from clipipe.parser.parse_result import ParseResult
from clipipe.parser.tokenizer import parse

__all__ = ["DirectiveCollection", "ParseResult", "parse"]
