"""Request guards: predicates deciding whether a handler may run.

Guards run one after another against a shared, mutable ``GuardContext``.
The authentication guard attaches the principal it resolves so that the
role and policy guards declared after it can reuse it. A guard denies by
returning False; missing or invalid credentials never raise.
"""

import re
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from loguru import logger

from src.auth.policies import PolicyRegistry, evaluate_policy
from src.auth.principal import Principal
from src.auth.tokens import TokenStrategy
from src.core.constants import AUTHORIZATION_HEADER
from src.core.context import get_header
from src.core.types import GuardOptions, Headers, MaybeAwaitableBool
from src.pipeline.resolver import InstanceResolver

_BEARER_PREFIX = re.compile(r"bearer ", re.IGNORECASE)


@dataclass
class GuardContext:
    """Guard-phase view of a request.

    Attributes:
        headers: Request headers.
        resolver: Lookup for guard instances in the current request scope.
        principal: The principal resolved by an earlier guard, if any.
    """

    headers: Headers
    resolver: InstanceResolver
    principal: Principal | None = field(default=None)

    def attach_principal(self, principal: Principal) -> None:
        """Attach the resolved principal for downstream guards.

        Raises:
            ValueError: If ``principal`` is None; an attached principal is
                never cleared within a request.
        """
        if principal is None:
            msg = "Cannot clear the principal of a request"
            raise ValueError(msg)
        self.principal = principal


@runtime_checkable
class Guard(Protocol):
    """Contract implemented by every guard."""

    def can_activate(
        self, context: GuardContext, options: GuardOptions | None = None
    ) -> MaybeAwaitableBool:
        """Return whether the request may continue."""
        ...


def extract_bearer_token(headers: Headers) -> str:
    """Return the credential carried by the Authorization header.

    The first case-insensitive ``"bearer "`` is removed; an absent header
    yields an empty string.
    """
    authorization = get_header(headers, AUTHORIZATION_HEADER) or ""
    return _BEARER_PREFIX.sub("", authorization, count=1)


def resolve_principal(context: GuardContext, tokens: TokenStrategy) -> Principal | None:
    """Return the attached principal, authenticating the bearer token if needed.

    On successful authentication the principal is attached to ``context``.
    """
    if context.principal is not None:
        return context.principal

    token = extract_bearer_token(context.headers)
    if not token:
        logger.debug("No bearer credential on request")
        return None

    principal = tokens.authenticate(token)
    if principal is None:
        return None

    context.attach_principal(principal)
    return principal


class AuthenticationGuard:
    """Allow requests carrying a valid bearer token."""

    name = "AuthenticationGuard"

    def __init__(self, tokens: TokenStrategy) -> None:
        self.tokens = tokens

    def can_activate(
        self, context: GuardContext, options: GuardOptions | None = None
    ) -> bool:
        _ = options
        return resolve_principal(context, self.tokens) is not None


class RoleGuard:
    """Allow principals holding any of the configured roles.

    Options:
        roles: Role names; when empty or absent every principal is allowed.
    """

    name = "RoleGuard"

    def can_activate(
        self, context: GuardContext, options: GuardOptions | None = None
    ) -> bool:
        principal = context.principal
        if principal is None:
            return False

        roles: list[str] = list((options or {}).get("roles") or [])
        if not roles:
            return True
        return principal.has_any_role(roles)


class PolicyGuard:
    """Allow principals satisfying every configured policy, in order.

    An unregistered policy name denies. Requests that reach this guard
    without a principal are authenticated lazily from their bearer token.

    Options:
        policies: Policy names to evaluate.
    """

    name = "PolicyGuard"

    def __init__(self, tokens: TokenStrategy, registry: PolicyRegistry) -> None:
        self.tokens = tokens
        self.registry = registry

    async def can_activate(
        self, context: GuardContext, options: GuardOptions | None = None
    ) -> bool:
        principal = resolve_principal(context, self.tokens)
        if principal is None:
            return False

        policy_names: list[str] = list((options or {}).get("policies") or [])
        return await self._evaluate(principal, policy_names)

    async def _evaluate(self, principal: Principal, policy_names: list[str]) -> bool:
        for policy_name in policy_names:
            policy = self.registry.get(policy_name)
            if policy is None:
                logger.warning("Unknown policy {} denies request", policy_name)
                return False
            if not await evaluate_policy(policy, principal):
                logger.debug(
                    "Policy {} denied principal", policy_name, principal_id=principal.id
                )
                return False
        return True
