"""Fixed ordering of the built-in middleware slots.

Lower values run first and therefore wrap everything with a higher value.
The order is policy, not configuration: culture must be configured before
anything renders text, parse-error reporting must preempt help and version,
and the exception handler must enclose every step except termination
handling.
"""

from __future__ import annotations

import enum


class MiddlewareOrder(enum.IntEnum):
    """Named pipeline slots. Any other integer is a valid order too."""

    STARTUP = -4000
    EXCEPTION_HANDLER = -3000
    CONFIGURE_CONSOLE = -2600
    ENVIRONMENT_VARIABLE_DIRECTIVE = -2500
    PARSE_DIRECTIVE = -2400
    DEBUG_DIRECTIVE = -2300
    CULTURE_DIRECTIVE = -2200
    SUGGEST_DIRECTIVE = -2100
    REGISTER_SUGGEST_TOOL = -2000
    TYPO_CORRECTION = -1900
    PARSE_ERROR_REPORTING = -1500
    HELP_OPTION = -1200
    VERSION_OPTION = -1100
    CONFIGURATION = -1000
    DEFAULT = 0
