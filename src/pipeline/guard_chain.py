"""Sequential evaluation of the guards declared for a handler."""

import inspect
from collections.abc import Hashable, Iterable
from dataclasses import dataclass

from loguru import logger

from src.auth.guards import Guard, GuardContext
from src.core.observability import trace_operation
from src.core.types import GuardOptions
from src.pipeline.enhancers import Enhancer, guard_enhancers


@dataclass(frozen=True)
class GuardOutcome:
    """Result of a guard chain.

    Attributes:
        allowed: Whether every guard allowed the request.
        guard_id: Identifier of the guard that denied, if any.
        options: Options of the denying guard enhancer.
    """

    allowed: bool
    guard_id: Hashable | None = None
    options: GuardOptions | None = None

    @property
    def reason(self) -> str | None:
        """Human-readable denial reason."""
        if self.allowed:
            return None
        return f"{self.guard_id} blocked request"


ALLOWED = GuardOutcome(allowed=True)


async def evaluate_guards(
    enhancers: Iterable[Enhancer], context: GuardContext
) -> GuardOutcome:
    """Run guard enhancers one at a time, stopping at the first denial.

    Guards are never evaluated concurrently: later guards read the principal
    attached by earlier ones. Errors raised by a guard, or by the resolver for
    an unknown guard id, propagate to the caller.

    Args:
        enhancers: Enhancers declared for the handler; non-guard ones are skipped.
        context: Mutable guard-phase request context.

    Returns:
        GuardOutcome: ``ALLOWED`` or the first denial.
    """
    guards = guard_enhancers(enhancers)
    if not guards:
        return ALLOWED

    with trace_operation("security.guards", guard_count=len(guards)):
        for enhancer in guards:
            guard: Guard = context.resolver.resolve(enhancer.guard_id)
            result = guard.can_activate(context, enhancer.options)
            if inspect.isawaitable(result):
                result = await result
            if not result:
                logger.info(
                    "Guard denied request",
                    guard=str(enhancer.guard_id),
                    principal_id=(
                        context.principal.id if context.principal is not None else None
                    ),
                )
                return GuardOutcome(
                    allowed=False, guard_id=enhancer.guard_id, options=enhancer.options
                )

    return ALLOWED
