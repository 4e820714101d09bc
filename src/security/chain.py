"""Continuation-passing execution of security middlewares.

Each middleware receives the shared ``SecurityContext`` and a ``next_``
continuation. Calling ``next_`` runs the rest of the chain (and finally the
handler). A middleware has two ways to stop a request:

- return without calling ``next_``: the chain reports ``blocked=True``;
- raise: the exception propagates to the caller untouched.

The two outcomes are mutually exclusive.
"""

import inspect
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any, Protocol, TypeAlias, runtime_checkable

from loguru import logger

from src.core.observability import trace_operation
from src.security.context import SecurityContext

Next: TypeAlias = Callable[[], Awaitable[None]]
FinalHandler: TypeAlias = Callable[[], Any]


@runtime_checkable
class SecurityMiddleware(Protocol):
    """Contract implemented by every security middleware."""

    name: str

    async def handle(self, context: SecurityContext, next_: Next) -> None:
        """Inspect or mutate ``context`` and call ``next_`` at most once to proceed."""
        ...


@dataclass
class SecurityResult:
    """Outcome of a security chain that did not raise."""

    blocked: bool = False
    reason: str | None = None


async def run_security_chain(
    middlewares: Sequence[SecurityMiddleware],
    context: SecurityContext,
    final_handler: FinalHandler,
) -> SecurityResult:
    """Run ``middlewares`` around ``final_handler``.

    Args:
        middlewares: Middlewares, outermost first.
        context: Shared request state.
        final_handler: Called (and awaited if needed) after the last middleware
            proceeds.

    Returns:
        SecurityResult: Whether a middleware blocked, and which one.
    """
    result = SecurityResult()

    async def execute(index: int) -> None:
        if index >= len(middlewares):
            outcome = final_handler()
            if inspect.isawaitable(outcome):
                await outcome
            return

        middleware = middlewares[index]
        proceeded = False

        async def next_() -> None:
            nonlocal proceeded
            if proceeded:
                logger.warning(
                    "Ignoring repeated continuation call", middleware=middleware.name
                )
                return
            proceeded = True
            await execute(index + 1)

        await middleware.handle(context, next_)
        if not proceeded:
            result.blocked = True
            result.reason = f"{middleware.name} blocked request"
            logger.info(
                "Security middleware blocked request",
                middleware=middleware.name,
                request_id=context.request_id,
            )

    with trace_operation(
        "security.middlewares",
        request_id=context.request_id,
        middleware_count=len(middlewares),
    ):
        await execute(0)

    return result
