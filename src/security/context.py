"""Middleware-phase view of a request."""

import time
from dataclasses import dataclass, field
from typing import Any

from src.auth.principal import Principal
from src.core.constants import (
    COOKIES_KEY,
    MILLISECONDS_PER_SECOND,
    RESPONSE_HEADERS_KEY,
)
from src.core.context import get_header
from src.core.types import Headers


def _now_ms() -> float:
    return time.time() * MILLISECONDS_PER_SECOND


@dataclass
class SecurityContext:
    """Mutable request state shared by the security middlewares.

    Middlewares may rewrite ``headers`` and ``body`` (the sanitizer does) and
    accumulate response headers in ``metadata["response_headers"]``.

    Attributes:
        request_id: Unique id of the request.
        method: HTTP method.
        path: Request path.
        client_address: Peer address, when known.
        headers: Request headers.
        body: Decoded request body.
        principal: Principal resolved during the guard phase.
        timestamp: Request start in epoch milliseconds.
        metadata: Free-form bag; holds ``cookies`` and ``response_headers``.
    """

    request_id: str
    method: str
    path: str
    client_address: str | None = None
    headers: Headers = field(default_factory=dict)
    body: Any = None
    principal: Principal | None = None
    timestamp: float = field(default_factory=_now_ms)
    metadata: dict[str, Any] = field(default_factory=dict)

    def header(self, name: str) -> str | None:
        """Case-insensitive request header lookup."""
        return get_header(self.headers, name)

    @property
    def cookies(self) -> dict[str, str]:
        """Request cookies, empty when the transport supplied none."""
        return self.metadata.get(COOKIES_KEY) or {}

    @property
    def response_headers(self) -> dict[str, str]:
        """Headers accumulated for the response so far."""
        return self.metadata.get(RESPONSE_HEADERS_KEY) or {}

    def add_response_headers(self, headers: dict[str, str]) -> None:
        """Merge ``headers`` into the accumulated response headers."""
        self.metadata[RESPONSE_HEADERS_KEY] = {**self.response_headers, **headers}
