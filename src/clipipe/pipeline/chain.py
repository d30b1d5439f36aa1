"""Middleware chain composition.

A step has the signature ``step(context, next)``. It may do work before
calling ``next(context)``, after it, both, or never call it at all, which
stops every later step and the handler from running::

    async def timing(context, next):
        started = time.monotonic()
        await next(context)
        logger.info("took %.2fs", time.monotonic() - started)

Plain functions are accepted as well. They continue the chain by returning
``next(context)``; any awaitable a step returns is awaited.
"""

from __future__ import annotations

import inspect
import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Union

if TYPE_CHECKING:
    from clipipe.invocation.context import InvocationContext

logger = logging.getLogger(__name__)

Next = Callable[["InvocationContext"], Awaitable[None]]
Step = Callable[["InvocationContext", Next], Union[Awaitable[Any], Any]]
Handler = Callable[["InvocationContext"], Union[Awaitable[Any], Any]]


async def _call(func: Callable[..., Any], *args: Any) -> Any:
    result = func(*args)
    if inspect.isawaitable(result):
        return await result
    return result


class MiddlewarePipeline:
    """An ordered collection of steps folded into a single coroutine function.

    Steps are sorted by order with ties kept in registration order. The
    built chain holds no per-run state and may be run any number of times,
    concurrently too, as long as each run has its own context.
    """

    def __init__(self) -> None:
        self._steps: list[tuple[int, Step]] = []

    def __len__(self) -> int:
        return len(self._steps)

    def add(self, step: Step, order: int) -> None:
        """Register *step* at *order*."""
        if not callable(step):
            raise TypeError("Middleware must be a callable")
        self._steps.append((int(order), step))

    def ordered_steps(self) -> list[tuple[int, Step]]:
        """Return ``(order, step)`` pairs in execution order."""
        return sorted(self._steps, key=lambda item: item[0])

    def build(self, handler: Handler) -> Next:
        """Compose the registered steps around *handler*.

        Args:
            handler: Innermost callable, usually the matched command's
                handler invoker.

        Returns:
            ``run(context)``, a coroutine function executing the chain.
        """
        chain: Next = _guarded(lambda context: _call(handler, context), "handler")

        for order, step in reversed(self.ordered_steps()):

            def make_link(mw: Step, next_link: Next) -> Next:
                async def link(context: InvocationContext) -> None:
                    await _call(mw, context, next_link)

                return link

            name = getattr(step, "__qualname__", repr(step))
            chain = _guarded(make_link(step, chain), f"{name} (order {order})")

        return chain


def _guarded(target: Callable[[InvocationContext], Awaitable[Any]], name: str) -> Next:
    """Wrap *target* so it never runs once a deferred result has been set."""

    async def next_(context: InvocationContext) -> None:
        if context.invocation_result is not None:
            logger.debug("Skipping %s: invocation result already set", name)
            return
        await target(context)

    return next_
