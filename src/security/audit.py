"""Audit trail of requests passing through the security chain.

The audit middleware times everything downstream of it. Place it early in
the chain to include the other middlewares in the measurement, or last to
time the handler alone.
"""

import time
from typing import Any, Protocol

from loguru import logger
from pydantic import BaseModel, Field

from src.auth.principal import Principal
from src.core.constants import MILLISECONDS_PER_SECOND
from src.core.error_context import sanitize_dict
from src.security.chain import Next
from src.security.context import SecurityContext

FAILURE_STATUS = 500


class AuditEntry(BaseModel):
    """One audited request."""

    request_id: str
    method: str
    path: str
    status: int | None = Field(default=None, description="Set on failure only")
    latency_ms: float
    principal: Principal | None = None
    metadata: dict[str, Any] | None = None


class AuditSink(Protocol):
    """Destination for audit entries."""

    def write(self, entry: AuditEntry) -> None:
        """Persist or forward ``entry``."""
        ...


class LoguruAuditSink:
    """Write audit entries as structured Loguru records."""

    def write(self, entry: AuditEntry) -> None:
        logger.bind(
            audit=True,
            request_id=entry.request_id,
            method=entry.method,
            path=entry.path,
            latency_ms=entry.latency_ms,
            principal_id=entry.principal.id if entry.principal else None,
            status=entry.status,
            metadata=entry.metadata,
        ).info("Audit {} {}", entry.method, entry.path)


class AuditLogger:
    """Record every request, successful or not; failures are re-raised.

    Metadata is redacted (cookies carry CSRF tokens) before it reaches the sink.

    Args:
        sink: Where entries go; defaults to Loguru.
    """

    name = "AuditLogger"

    def __init__(self, sink: AuditSink | None = None) -> None:
        self.sink: AuditSink = sink if sink is not None else LoguruAuditSink()

    async def handle(self, context: SecurityContext, next_: Next) -> None:
        start = time.perf_counter()
        try:
            await next_()
        except Exception as exc:
            self._emit(
                context,
                start,
                status=FAILURE_STATUS,
                metadata={"error": getattr(exc, "message", str(exc))},
            )
            raise
        else:
            self._emit(context, start, metadata=context.metadata)

    def _emit(
        self,
        context: SecurityContext,
        start: float,
        *,
        metadata: dict[str, Any],
        status: int | None = None,
    ) -> None:
        latency_ms = (time.perf_counter() - start) * MILLISECONDS_PER_SECOND
        self.sink.write(
            AuditEntry(
                request_id=context.request_id,
                method=context.method,
                path=context.path,
                status=status,
                latency_ms=round(latency_ms, 2),
                principal=context.principal,
                metadata=sanitize_dict(metadata),
            )
        )
