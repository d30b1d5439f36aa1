"""Numeric process exit codes used by the invocation pipeline.

Each constant maps to a specific outcome category and is referenced by the
corresponding :class:`~clipipe.exceptions.ClipipeError` subclass or by the
built-in middleware. Shell wrappers can inspect the exit code to tell a
parse failure from an unhandled exception or a cancelled run without
parsing stderr.

Example::

    $ mytool --bogus
    $ echo $?
    1   # EXIT_GENERIC_FAILURE -- the command line could not be parsed
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unhandled exception or a parse error occurred."""

EXIT_INVALID_USAGE = 2
"""The framework was given unusable input (for example an unknown culture name)."""

EXIT_CANCELLED = 130
"""The invocation was cancelled by an interrupt (128 + SIGINT)."""
