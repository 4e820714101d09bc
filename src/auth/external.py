"""Authentication through an external authorization code.

This is the extension point for an OAuth-style identity exchange. The
default implementation trusts any non-empty code and maps it to a minimal
principal; subclasses override ``exchange`` to call a real identity provider.
"""

from src.auth.principal import Principal

DEFAULT_EXTERNAL_ROLE = "user"


class ExternalCodeStrategy:
    """Turn an external authorization code into a principal."""

    provider = "external"

    async def exchange(self, code: str) -> Principal:
        """Resolve a non-empty code to a principal."""
        return Principal(
            id=code,
            roles=[DEFAULT_EXTERNAL_ROLE],
            metadata={"provider": self.provider},
        )

    async def authenticate(self, code: str | None) -> Principal | None:
        """Return a principal for ``code``, or None when it is empty."""
        if not code:
            return None
        return await self.exchange(code)
