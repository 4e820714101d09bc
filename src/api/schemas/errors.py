"""Error response schema shared by every exception handler."""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field


class ServiceInfo(BaseModel):
    """Identifies the service instance that produced an error."""

    name: str = Field(..., description="Name of the service", examples=["Bastion"])
    version: str = Field(..., description="Version of the service", examples=["0.1.0"])
    environment: str = Field(
        ...,
        description="Environment where the service is running",
        examples=["development", "staging", "production"],
    )


class ErrorResponse(BaseModel):
    """Standardized error body.

    ``error_code`` is machine-readable and stable; ``message`` is meant for
    humans. ``debug_info`` is only populated in development.
    """

    error_code: str = Field(
        ...,
        description="Unique error code identifying the error type",
        examples=["FORBIDDEN", "CSRF_TOKEN_MISMATCH", "RATE_LIMITED"],
    )
    message: str = Field(
        ...,
        description="Human-readable error message",
        examples=["RoleGuard blocked request", "Rate limit exceeded. Try again in 4s"],
    )
    details: dict[str, Any] | None = Field(
        default=None,
        description="Additional error details",
        examples=[{"retry_after_seconds": 4, "key": "203.0.113.7"}],
    )
    correlation_id: str | None = Field(
        default=None,
        description="Request correlation ID for tracing and debugging",
        examples=["550e8400-e29b-41d4-a716-446655440000"],
    )
    request_id: str | None = Field(
        default=None,
        description="Unique request identifier",
        examples=["req-550e8400-e29b-41d4-a716-446655440000"],
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="Timestamp when the error occurred (with timezone)",
    )
    severity: str | None = Field(
        default=None,
        description="Error severity level",
        examples=["LOW", "MEDIUM", "HIGH", "CRITICAL"],
    )
    service_info: ServiceInfo | None = Field(
        default=None,
        description="Information about the service that generated the error",
    )
    debug_info: dict[str, Any] | None = Field(
        default=None,
        description="Debug information (only populated in development environments)",
    )

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "error_code": "FORBIDDEN",
                    "message": "RoleGuard blocked request",
                    "correlation_id": "550e8400-e29b-41d4-a716-446655440000",
                    "request_id": "req-660e8400-e29b-41d4-a716-446655440000",
                    "timestamp": "2026-06-14T12:00:00+00:00",
                    "severity": "MEDIUM",
                    "service_info": {
                        "name": "Bastion",
                        "version": "0.1.0",
                        "environment": "production",
                    },
                },
                {
                    "error_code": "RATE_LIMITED",
                    "message": "Rate limit exceeded. Try again in 4s",
                    "details": {"retry_after_seconds": 4, "key": "203.0.113.7"},
                    "timestamp": "2026-06-14T12:00:01+00:00",
                    "severity": "LOW",
                },
            ]
        }
    }
