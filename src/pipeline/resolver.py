"""Lookup of guard and middleware instances by identifier."""

from collections.abc import Hashable
from typing import Any, Protocol

from src.core.exceptions import ComponentNotFoundError


class InstanceResolver(Protocol):
    """Collaborator that turns an identifier into a live instance."""

    def resolve(self, identifier: Hashable) -> Any:  # noqa: ANN401 - instances of any type
        """Return the instance registered for ``identifier``."""
        ...


class InstanceRegistry:
    """Dictionary-backed resolver populated at wiring time.

    Unknown identifiers raise ``ComponentNotFoundError`` so that a route wired
    to a missing guard or middleware can never run.
    """

    def __init__(self) -> None:
        self._instances: dict[Hashable, Any] = {}

    def register(self, identifier: Hashable, instance: Any) -> None:  # noqa: ANN401
        """Make ``instance`` resolvable as ``identifier``."""
        self._instances[identifier] = instance

    def resolve(self, identifier: Hashable) -> Any:  # noqa: ANN401
        try:
            return self._instances[identifier]
        except KeyError as exc:
            raise ComponentNotFoundError(identifier) from exc

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._instances
