"""CORS and Content-Security-Policy response header middlewares.

Both only accumulate headers into the context; applying them to the actual
response is the transport's job.
"""

from collections.abc import Sequence

from src.core.constants import ORIGIN_HEADER
from src.core.exceptions import OriginNotAllowedError
from src.security.chain import Next
from src.security.context import SecurityContext

WILDCARD_ORIGIN = "*"


class CorsGuard:
    """Reject foreign origins and advertise the CORS policy.

    Args:
        origins: Allowed origins; ``"*"`` allows any.
        methods: Advertised methods.
        headers: Advertised request headers.
        credentials: Whether credentials are allowed.
    """

    name = "CorsGuard"

    def __init__(
        self,
        origins: Sequence[str],
        methods: Sequence[str] = ("GET", "POST"),
        headers: Sequence[str] = ("Content-Type", "Authorization"),
        *,
        credentials: bool = False,
    ) -> None:
        self.origins = list(origins)
        self.methods = list(methods)
        self.headers = list(headers)
        self.credentials = credentials

    def is_allowed(self, origin: str) -> bool:
        return WILDCARD_ORIGIN in self.origins or origin in self.origins

    async def handle(self, context: SecurityContext, next_: Next) -> None:
        origin = context.header(ORIGIN_HEADER)
        if origin and not self.is_allowed(origin):
            raise OriginNotAllowedError(origin)

        allow_origin = origin or (self.origins[0] if self.origins else WILDCARD_ORIGIN)
        context.add_response_headers(
            {
                "Access-Control-Allow-Origin": allow_origin,
                "Access-Control-Allow-Methods": ",".join(self.methods),
                "Access-Control-Allow-Headers": ",".join(self.headers),
                "Access-Control-Allow-Credentials": (
                    "true" if self.credentials else "false"
                ),
            }
        )
        await next_()


class CspGuard:
    """Advertise a Content-Security-Policy built from ``directives``."""

    name = "CspGuard"

    def __init__(self, directives: dict[str, Sequence[str]]) -> None:
        self.directives = {key: list(values) for key, values in directives.items()}

    @property
    def header_value(self) -> str:
        return "; ".join(
            f"{directive} {' '.join(values)}"
            for directive, values in self.directives.items()
        )

    async def handle(self, context: SecurityContext, next_: Next) -> None:
        context.add_response_headers({"Content-Security-Policy": self.header_value})
        await next_()
