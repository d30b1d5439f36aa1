"""Exception hierarchy for clipipe.

All exceptions inherit from :class:`ClipipeError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`clipipe.exit_codes`.
Failures raised *inside* the middleware chain are contained by the exception
handler step; :func:`clipipe.app.run` only sees errors raised while building
the pipeline or resolving configuration.

Subclass hierarchy::

    ClipipeError (exit 1)
    +-- ConfigError                      (exit 1)
    +-- PipelineError                    (exit 1)
    |   +-- InvocationResultAlreadySetError
    +-- CultureNotFoundError             (exit 2)
    +-- OperationCancelledError          (exit 130)
"""

from clipipe.exit_codes import EXIT_CANCELLED, EXIT_GENERIC_FAILURE, EXIT_INVALID_USAGE


class ClipipeError(Exception):
    """Base exception for all clipipe errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`clipipe.exit_codes`.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigError(ClipipeError):
    """Raised for configuration problems (invalid JSON, out-of-range values)."""

    exit_code = EXIT_GENERIC_FAILURE


class PipelineError(ClipipeError):
    """Raised when the middleware pipeline is misused or misconfigured."""

    exit_code = EXIT_GENERIC_FAILURE


class InvocationResultAlreadySetError(PipelineError):
    """Raised when a second step tries to set the deferred invocation result.

    Only one step may decide the final output of an invocation. Wrapping the
    existing result goes through
    :meth:`~clipipe.invocation.context.InvocationContext.wrap_invocation_result`
    instead.
    """


class CultureNotFoundError(ClipipeError):
    """Raised when a culture name cannot be resolved."""

    exit_code = EXIT_INVALID_USAGE


class OperationCancelledError(ClipipeError):
    """Raised by :meth:`~clipipe.cancellation.CancellationToken.raise_if_cancelled`.

    :attr:`exit_code` applies only where the error reaches :func:`clipipe.app.run`
    or an embedder's own handling. Raised from a handler inside the default
    pipeline, it is an unhandled exception like any other and the
    exception-handler step reports it with result code 1.
    """

    exit_code = EXIT_CANCELLED
