"""The authenticated identity attached to a request."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Principal(BaseModel):
    """An authenticated identity with its roles and free-form metadata.

    Token payloads decode straight into this model; unknown claims in a
    payload are ignored.
    """

    model_config = ConfigDict(extra="ignore")

    id: str | int = Field(..., description="Stable identifier of the principal")
    roles: list[str] = Field(default_factory=list, description="Granted role names")
    policies: list[str] | None = Field(
        default=None, description="Policy names the principal was issued with"
    )
    metadata: dict[str, Any] | None = Field(
        default=None, description="Free-form attributes (e.g. subscription plan)"
    )

    def has_any_role(self, roles: list[str] | set[str]) -> bool:
        """Whether at least one of ``roles`` was granted to this principal."""
        return not set(roles).isdisjoint(self.roles)
