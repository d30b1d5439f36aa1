"""Deferred result that reinstates a culture snapshot while it is applied."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from clipipe.culture import CultureSnapshot
from clipipe.invocation.results import InvocationResult

if TYPE_CHECKING:
    from clipipe.invocation.context import InvocationContext

logger = logging.getLogger(__name__)


class ExecutionContextRestoringResult(InvocationResult):
    """Apply *inner* with *snapshot* as the current culture.

    The caller's cultures are put back afterwards, also when *inner* raises.
    With no snapshot, *inner* is applied directly.

    Args:
        snapshot: Cultures captured when the result was decided.
        inner: The wrapped result.
    """

    def __init__(self, snapshot: Optional[CultureSnapshot], inner: InvocationResult) -> None:
        self.snapshot = snapshot
        self.inner = inner

    def apply(self, context: InvocationContext) -> None:
        if self.snapshot is None:
            self.inner.apply(context)
            return
        logger.debug(
            "Applying %s under culture=%s ui_culture=%s",
            type(self.inner).__name__, self.snapshot.culture, self.snapshot.ui_culture,
        )
        with self.snapshot.applied():
            self.inner.apply(context)
