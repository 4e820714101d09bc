"""Per-handler enhancer declarations.

An enhancer is either a guard (with optional options) or a group of security
middlewares. Enhancers are declared explicitly at wiring time against a
``(controller, handler name)`` pair and evaluated in declaration order::

    registry.declare(
        ReportsController,
        "list_reports",
        authenticated(),
        require_roles("admin"),
        use_security("AuditLogger"),
    )
"""

from collections.abc import Hashable, Iterable
from dataclasses import dataclass, field
from typing import Literal, TypeAlias

from src.core.types import GuardOptions

AUTHENTICATION_GUARD = "AuthenticationGuard"
ROLE_GUARD = "RoleGuard"
POLICY_GUARD = "PolicyGuard"


@dataclass(frozen=True)
class GuardEnhancer:
    """Run the guard registered as ``guard_id`` with ``options``."""

    guard_id: Hashable
    options: GuardOptions | None = field(default=None, compare=False)
    kind: Literal["guard"] = "guard"


@dataclass(frozen=True)
class SecurityEnhancer:
    """Wrap the handler in the middlewares registered as ``middleware_ids``."""

    middleware_ids: tuple[Hashable, ...]
    kind: Literal["security"] = "security"


Enhancer: TypeAlias = GuardEnhancer | SecurityEnhancer


def authenticated() -> GuardEnhancer:
    """Require a valid bearer token."""
    return GuardEnhancer(AUTHENTICATION_GUARD)


def require_roles(*roles: str) -> GuardEnhancer:
    """Require any of ``roles``; needs a principal from an earlier guard."""
    return GuardEnhancer(ROLE_GUARD, {"roles": list(roles)})


def require_policies(*policies: str) -> GuardEnhancer:
    """Require every policy in ``policies``, evaluated in order."""
    return GuardEnhancer(POLICY_GUARD, {"policies": list(policies)})


def use_guards(*guard_ids: Hashable) -> list[GuardEnhancer]:
    """Run custom guards, one enhancer per identifier."""
    return [GuardEnhancer(guard_id) for guard_id in guard_ids]


def use_security(*middleware_ids: Hashable) -> SecurityEnhancer:
    """Wrap the handler in the given security middlewares, outermost first."""
    return SecurityEnhancer(tuple(middleware_ids))


def guard_enhancers(enhancers: Iterable[Enhancer]) -> list[GuardEnhancer]:
    """Select the guard enhancers, keeping their order."""
    return [enhancer for enhancer in enhancers if isinstance(enhancer, GuardEnhancer)]


def security_middleware_ids(enhancers: Iterable[Enhancer]) -> list[Hashable]:
    """Flatten every security enhancer into one ordered list of middleware ids."""
    return [
        middleware_id
        for enhancer in enhancers
        if isinstance(enhancer, SecurityEnhancer)
        for middleware_id in enhancer.middleware_ids
    ]


class EnhancerRegistry:
    """Ordered enhancer table keyed by ``(controller, handler name)``."""

    def __init__(self) -> None:
        self._table: dict[tuple[Hashable, str], list[Enhancer]] = {}

    def declare(
        self,
        controller: Hashable,
        handler_name: str,
        *enhancers: Enhancer | list[GuardEnhancer],
    ) -> None:
        """Append enhancers for a handler, preserving declaration order.

        Lists (as returned by ``use_guards``) are flattened in place.
        """
        entries = self._table.setdefault((controller, handler_name), [])
        for enhancer in enhancers:
            if isinstance(enhancer, list):
                entries.extend(enhancer)
            else:
                entries.append(enhancer)

    def enhancers_for(self, controller: Hashable, handler_name: str) -> list[Enhancer]:
        """Return a copy of the enhancers declared for a handler."""
        return list(self._table.get((controller, handler_name), []))

    def __contains__(self, key: object) -> bool:
        return key in self._table
