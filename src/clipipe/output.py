"""Console sink with strict stdout/stderr discipline.

Follows `clig.dev <https://clig.dev/>`_ conventions:

* **stdout** -- primary output (help text, version string, suggestions,
  handler output).
* **stderr** -- diagnostics (parse errors, unhandled exceptions).
* **Colour control** -- respects ``NO_COLOR``, ``TERM=dumb``, and the
  ``no_color`` constructor flag. Rich drops colour codes automatically when
  the stream is not a terminal.

One :class:`Console` is created per invocation (or supplied by the caller)
and travels on the :class:`~clipipe.invocation.context.InvocationContext`.
The ``ConfigureConsole`` step can swap it for a caller-built instance.
"""

from __future__ import annotations

import os
from typing import IO, Optional

from rich.console import Console as RichConsole


class Console:
    """Output sink pair used by every middleware step and deferred result.

    Maintains two Rich :class:`~rich.console.Console` instances -- one for
    stdout and one for stderr -- with markup, emoji and highlighting
    disabled so that user text such as ``[ tool ]`` is written verbatim.

    The terminal foreground colour is modelled as a current style that
    applies to every subsequent write until :meth:`reset_foreground`.

    Args:
        stdout: Stream for normal output. Defaults to ``sys.stdout``,
            resolved at write time.
        stderr: Stream for error output. Defaults to ``sys.stderr``.
        no_color: Disable all colour.
    """

    def __init__(
        self,
        stdout: Optional[IO[str]] = None,
        stderr: Optional[IO[str]] = None,
        no_color: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._style: Optional[str] = None

        self._stdout = RichConsole(
            file=stdout,
            no_color=self._no_color,
            markup=False,
            emoji=False,
            highlight=False,
            soft_wrap=True,
        )
        self._stderr = RichConsole(
            file=stderr,
            stderr=True,
            no_color=self._no_color,
            markup=False,
            emoji=False,
            highlight=False,
            soft_wrap=True,
        )

    @property
    def no_color(self) -> bool:
        """Whether colour output is disabled."""
        return self._no_color

    @property
    def foreground(self) -> Optional[str]:
        """The style currently applied to writes, or ``None``."""
        return self._style

    # ------------------------------------------------------------------ #
    # Terminal colour
    # ------------------------------------------------------------------ #

    def set_foreground(self, style: str) -> None:
        """Apply *style* (a Rich style string) to subsequent writes."""
        if not self._no_color:
            self._style = style

    def set_foreground_red(self) -> None:
        self.set_foreground("red")

    def reset_foreground(self) -> None:
        self._style = None

    # ------------------------------------------------------------------ #
    # Writing
    # ------------------------------------------------------------------ #

    def write_out(self, text: str = "", end: str = "\n") -> None:
        """Write *text* to the normal output stream.

        Args:
            text: The text to write.
            end: Line terminator appended after *text*.
        """
        self._stdout.print(text, style=self._style, end=end)

    def write_error(self, text: str = "", end: str = "\n") -> None:
        """Write *text* to the error stream.

        Args:
            text: The text to write.
            end: Line terminator appended after *text*.
        """
        self._stderr.print(text, style=self._style, end=end)


# ------------------------------------------------------------------ #
# Module-level helpers
# ------------------------------------------------------------------ #


def _should_disable_color() -> bool:
    """Check if color should be disabled per clig.dev.

    Returns True when NO_COLOR env var is set (any value) or TERM=dumb.
    """
    if os.environ.get("NO_COLOR") is not None:
        return True
    if os.environ.get("TERM") == "dumb":
        return True
    return False
