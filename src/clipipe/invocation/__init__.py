"""Per-invocation state: the context, deferred results and termination handling."""

from clipipe.invocation.context import InvocationContext
from clipipe.invocation.restoring import ExecutionContextRestoringResult
from clipipe.invocation.results import (
    HelpResult,
    InvocationResult,
    ParseDirectiveResult,
    ParseErrorResult,
    SuggestDirectiveResult,
    VersionResult,
)
from clipipe.invocation.termination import (
    OsSignalBackend,
    SignalBackend,
    TerminationCoordinator,
    TerminationState,
)

__all__ = [
    "ExecutionContextRestoringResult",
    "HelpResult",
    "InvocationContext",
    "InvocationResult",
    "OsSignalBackend",
    "ParseDirectiveResult",
    "ParseErrorResult",
    "SignalBackend",
    "SuggestDirectiveResult",
    "TerminationCoordinator",
    "TerminationState",
    "VersionResult",
]
