"""Program entry point helper.

:func:`run` is the one-liner most programs need::

    from clipipe import Command, run

    def main() -> None:
        run(Command(name="mytool", handler=handle))

It resolves the effective configuration, builds the parser with every
built-in step, invokes it on ``sys.argv[1:]`` and exits with the result
code. Failures inside the chain are handled by the exception-handler step;
``run`` only deals with what happens outside it (configuration errors,
interrupts during startup, bugs in clipipe itself).
"""

from __future__ import annotations

import logging
import sys
import traceback
from datetime import datetime
from typing import NoReturn, Optional, Sequence, Union

from clipipe.exceptions import ClipipeError
from clipipe.exit_codes import EXIT_CANCELLED, EXIT_GENERIC_FAILURE
from clipipe.models import Command, PipelineConfig
from clipipe.output import Console

logger = logging.getLogger(__name__)


def _write_crash_log(exc: BaseException) -> str:
    """Write a crash traceback to disk and return the log file path.

    Args:
        exc: The unhandled exception to log.

    Returns:
        Absolute path to the written crash log file.
    """
    from clipipe.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
    return str(log_path)


def run(
    command: Command,
    args: Union[str, Sequence[str], None] = None,
    *,
    config: Optional[PipelineConfig] = None,
) -> NoReturn:
    """Build a default pipeline for *command*, invoke it and exit.

    Args:
        command: Root command of the program.
        args: Arguments to parse. Defaults to ``sys.argv[1:]``.
        config: Explicit configuration. Defaults to
            :func:`clipipe.config.resolve_config`.

    Raises:
        SystemExit: Always, carrying the invocation's result code.
    """
    console = Console()
    try:
        from clipipe.config import resolve_config
        from clipipe.pipeline.builder import CommandLineBuilder

        effective = config if config is not None else resolve_config()
        parser = CommandLineBuilder(command, effective).use_defaults().build()
        code = parser.invoke(args, console)
    except SystemExit:
        raise
    except KeyboardInterrupt:
        console.write_error("\nCancelled.")
        sys.exit(EXIT_CANCELLED)
    except ClipipeError as exc:
        console.write_error(f"Error: {exc}")
        sys.exit(exc.exit_code)
    except Exception as exc:
        log_path = _write_crash_log(exc)
        logger.debug("Crash log written to %s", log_path)
        console.write_error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
    sys.exit(code)
