"""Named, pluggable authorization policies.

A policy is any object with a ``name`` and an ``evaluate(principal,
context=None)`` method returning a bool, or an awaitable of one. Policies
are looked up by name in a ``PolicyRegistry`` that the application owns and
hands to the guards that need it.
"""

import inspect
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from loguru import logger

from src.auth.principal import Principal
from src.core.types import MaybeAwaitableBool


@runtime_checkable
class Policy(Protocol):
    """An authorization rule evaluated against a principal."""

    name: str

    def evaluate(
        self, principal: Principal, context: dict[str, Any] | None = None
    ) -> MaybeAwaitableBool:
        """Return whether ``principal`` satisfies the rule."""
        ...


@dataclass(frozen=True)
class FunctionPolicy:
    """Adapt a plain (sync or async) function into a Policy."""

    name: str
    func: Callable[[Principal, dict[str, Any] | None], MaybeAwaitableBool]

    def evaluate(
        self, principal: Principal, context: dict[str, Any] | None = None
    ) -> MaybeAwaitableBool:
        return self.func(principal, context)


async def evaluate_policy(
    policy: Policy, principal: Principal, context: dict[str, Any] | None = None
) -> bool:
    """Evaluate a policy, awaiting the result when it is pending."""
    result = policy.evaluate(principal, context)
    if inspect.isawaitable(result):
        result = await result
    return bool(result)


class PolicyRegistry:
    """Mutable name to policy table.

    Registration is unsynchronized; registering a name twice replaces the
    previous policy.
    """

    def __init__(self) -> None:
        self._policies: dict[str, Policy] = {}

    def register(self, policy: Policy) -> None:
        """Register ``policy`` under its name."""
        if policy.name in self._policies:
            logger.warning("Replacing registered policy {}", policy.name)
        self._policies[policy.name] = policy

    def get(self, name: str) -> Policy | None:
        """Return the policy registered as ``name``, if any."""
        return self._policies.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._policies

    def __iter__(self) -> Iterator[str]:
        return iter(self._policies)

    def __len__(self) -> int:
        return len(self._policies)
