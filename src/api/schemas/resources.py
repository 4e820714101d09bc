"""Response models of the protected example routes."""

from typing import Any

from pydantic import BaseModel, Field

from src.auth.principal import Principal


class HealthResponse(BaseModel):
    status: str = Field(default="healthy", examples=["healthy"])
    version: str = Field(..., examples=["0.1.0"])


class SessionResponse(BaseModel):
    """A session opened from a valid bearer token."""

    session_id: str = Field(..., description="Opaque session identifier")
    expires_in: int = Field(..., description="Session lifetime in seconds")


class AccountResponse(BaseModel):
    principal: Principal


class ReportsResponse(BaseModel):
    reports: list[str] = Field(default_factory=list)
    requested_by: str | int


class InvoicesResponse(BaseModel):
    invoices: list[dict[str, Any]] = Field(default_factory=list)
    plan: str | None = None


class CommentResponse(BaseModel):
    """A stored comment, after sanitization."""

    request_id: str
    content: Any = Field(..., description="Sanitized request body")


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
