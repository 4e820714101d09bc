"""The per-request pipeline: guards, then security middlewares, then the handler."""

import inspect
from collections.abc import Callable, Hashable
from dataclasses import dataclass
from typing import Any

from src.auth.guards import GuardContext
from src.pipeline.enhancers import EnhancerRegistry, security_middleware_ids
from src.pipeline.guard_chain import GuardOutcome, evaluate_guards
from src.security.chain import SecurityMiddleware, SecurityResult, run_security_chain
from src.security.context import SecurityContext


@dataclass
class PipelineResult:
    """What happened to one request.

    Attributes:
        guards: Outcome of the guard phase.
        security: Outcome of the middleware phase; None if guards denied.
        value: The handler's return value, when it ran.
        handled: Whether the handler ran.
    """

    guards: GuardOutcome
    security: SecurityResult | None = None
    value: Any = None
    handled: bool = False

    @property
    def allowed(self) -> bool:
        return self.handled

    @property
    def reason(self) -> str | None:
        """Why the handler did not run, if it did not."""
        if not self.guards.allowed:
            return self.guards.reason
        if self.security is not None and self.security.blocked:
            return self.security.reason
        return None


class RequestPipeline:
    """Run the enhancers declared for a handler around its invocation.

    Args:
        enhancers: Declared enhancers per ``(controller, handler name)``.
    """

    def __init__(self, enhancers: EnhancerRegistry) -> None:
        self.enhancers = enhancers

    async def run(
        self,
        controller: Hashable,
        handler_name: str,
        guard_context: GuardContext,
        security_context: SecurityContext,
        handler: Callable[[SecurityContext], Any],
    ) -> PipelineResult:
        """Process one request.

        Middlewares are resolved through the guard context's resolver. The
        principal resolved by the guards is copied into the security context
        before any middleware runs. Exceptions from guards, middlewares or the
        handler propagate.

        Args:
            controller: Controller the handler belongs to.
            handler_name: Handler name within the controller.
            guard_context: Guard-phase request context.
            security_context: Middleware-phase request context.
            handler: Receives the (possibly sanitized) security context.

        Returns:
            PipelineResult: Guard outcome, security outcome and handler value.
        """
        declared = self.enhancers.enhancers_for(controller, handler_name)

        outcome = await evaluate_guards(declared, guard_context)
        result = PipelineResult(guards=outcome)
        if not outcome.allowed:
            return result

        if guard_context.principal is not None:
            security_context.principal = guard_context.principal

        middlewares: list[SecurityMiddleware] = [
            guard_context.resolver.resolve(middleware_id)
            for middleware_id in security_middleware_ids(declared)
        ]

        async def invoke_handler() -> None:
            value = handler(security_context)
            if inspect.isawaitable(value):
                value = await value
            result.value = value
            result.handled = True

        result.security = await run_security_chain(
            middlewares, security_context, invoke_handler
        )
        return result
