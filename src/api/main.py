"""FastAPI application factory.

Builds the app, its exception handlers and ASGI middleware, the shared
``SecurityApplication`` and the example routes. Each protected route
declares its enhancers once, at startup, under a ``(controller, handler)``
key, and calls ``run_protected`` with the same key.

Middleware are executed in reverse order of registration.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Annotated, Any

from fastapi import Body, Depends, FastAPI, Request, Response, status
from loguru import logger

from src.api.constants import (
    ACCOUNT_CONTROLLER,
    ADMIN_CONTROLLER,
    BILLING_CONTROLLER,
    COMMENTS_CONTROLLER,
    PREMIUM_PLAN_POLICY,
)
from src.api.middleware.error_handler import register_exception_handlers
from src.api.middleware.request_context import RequestContextMiddleware
from src.api.middleware.security_headers import SecurityHeadersMiddleware
from src.api.schemas.resources import (
    AccountResponse,
    CommentResponse,
    HealthResponse,
    InvoicesResponse,
    ReportsResponse,
    SessionResponse,
    TokenResponse,
)
from src.api.security import get_security_application, run_protected
from src.api.utils.responses import ORJSONResponse
from src.auth.guards import extract_bearer_token
from src.auth.policies import FunctionPolicy
from src.auth.principal import Principal
from src.core.config import Settings, get_settings
from src.core.exceptions import NotFoundError, UnauthorizedError, ValidationError
from src.core.logging import setup_logging
from src.core.observability import instrument_app, setup_tracing
from src.pipeline.application import SecurityApplication, create_security_application
from src.pipeline.enhancers import (
    authenticated,
    require_policies,
    require_roles,
    use_security,
)
from src.security.context import SecurityContext

SecurityDep = Annotated[SecurityApplication, Depends(get_security_application)]


@asynccontextmanager
async def lifespan(app_instance: FastAPI) -> AsyncGenerator[None]:
    """Log startup and shutdown; in-memory state needs no cleanup."""
    logger.info(
        "Application startup complete - {} v{}",
        app_instance.title,
        app_instance.version,
    )
    yield
    logger.info("Application shutdown complete")


def is_premium(principal: Principal, context: dict[str, Any] | None = None) -> bool:
    """Policy predicate: the principal's plan metadata says ``premium``."""
    _ = context
    return (principal.metadata or {}).get("plan") == "premium"


def declare_routes(security: SecurityApplication) -> None:
    """Register the policies and enhancers used by the routes below."""
    security.policies.register(FunctionPolicy(PREMIUM_PLAN_POLICY, is_premium))

    enhancers = security.enhancers
    enhancers.declare(
        ACCOUNT_CONTROLLER,
        "me",
        authenticated(),
        use_security("CorsGuard", "CspGuard"),
    )
    enhancers.declare(
        ADMIN_CONTROLLER, "reports", authenticated(), require_roles("admin")
    )
    enhancers.declare(
        BILLING_CONTROLLER, "invoices", require_policies(PREMIUM_PLAN_POLICY)
    )
    enhancers.declare(
        COMMENTS_CONTROLLER,
        "create",
        # AuditLogger wraps the rest of the chain so denials are recorded too
        use_security(
            "AuditLogger", "InputSanitizer", "CsrfProtector", "AdaptiveRateLimiter"
        ),
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Optional settings instance. If not provided, will use get_settings().

    Returns:
        FastAPI: Configured FastAPI application instance.
    """
    if settings is None:
        settings = get_settings()

    setup_logging(settings)
    setup_tracing(settings)

    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        docs_url=settings.docs_url,
        openapi_url=settings.openapi_url,
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )

    security = create_security_application(settings)
    declare_routes(security)
    application.state.security = security

    register_exception_handlers(application)

    # 2. Request context middleware (creates correlation ID)
    application.add_middleware(RequestContextMiddleware)
    # 1. Security headers middleware (adds security headers to all responses)
    application.add_middleware(SecurityHeadersMiddleware)

    @application.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(version=settings.app_version)

    @application.post(
        "/auth/sessions",
        response_model=SessionResponse,
        status_code=status.HTTP_201_CREATED,
    )
    async def create_session(request: Request, security: SecurityDep) -> SessionResponse:
        """Open a session for the principal of a valid bearer token.

        Raises:
            UnauthorizedError: If the token is missing or invalid.
        """
        token = extract_bearer_token(dict(request.headers))
        principal = security.auth.authenticate_token(token) if token else None
        if principal is None:
            raise UnauthorizedError("A valid bearer token is required")

        session_id = security.auth.create_session(principal)
        logger.info("Session opened", principal_id=principal.id)
        return SessionResponse(
            session_id=session_id,
            expires_in=security.auth.sessions.ttl_seconds,
        )

    @application.get("/auth/sessions/{session_id}", response_model=AccountResponse)
    async def read_session(session_id: str, security: SecurityDep) -> AccountResponse:
        principal = security.auth.authenticate_session(session_id)
        if principal is None:
            raise NotFoundError("Session not found or expired")
        return AccountResponse(principal=principal)

    @application.delete(
        "/auth/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT
    )
    async def delete_session(session_id: str, security: SecurityDep) -> Response:
        if not security.auth.destroy_session(session_id):
            raise NotFoundError("Session not found or expired")
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @application.post("/auth/external", response_model=TokenResponse)
    async def exchange_external_code(
        code: Annotated[str, Body(embed=True)], security: SecurityDep
    ) -> TokenResponse:
        """Exchange an external authorization code for a bearer token.

        Raises:
            UnauthorizedError: If the code is empty.
        """
        principal = await security.auth.authenticate_external(code)
        if principal is None:
            raise UnauthorizedError("Authorization code is required")
        return TokenResponse(access_token=security.auth.issue_token(principal))

    @application.get("/account/me", response_model=AccountResponse)
    async def read_account(request: Request, response: Response) -> AccountResponse:
        def handler(context: SecurityContext) -> AccountResponse:
            return AccountResponse(principal=context.principal)

        return await run_protected(
            request, response, ACCOUNT_CONTROLLER, "me", handler
        )

    @application.get("/admin/reports", response_model=ReportsResponse)
    async def read_reports(request: Request, response: Response) -> ReportsResponse:
        def handler(context: SecurityContext) -> ReportsResponse:
            principal = context.principal
            return ReportsResponse(
                reports=["daily-signups", "failed-logins"],
                requested_by=principal.id if principal else "",
            )

        return await run_protected(
            request, response, ADMIN_CONTROLLER, "reports", handler
        )

    @application.get("/billing/invoices", response_model=InvoicesResponse)
    async def read_invoices(request: Request, response: Response) -> InvoicesResponse:
        def handler(context: SecurityContext) -> InvoicesResponse:
            metadata = (context.principal.metadata if context.principal else None) or {}
            return InvoicesResponse(invoices=[], plan=metadata.get("plan"))

        return await run_protected(
            request, response, BILLING_CONTROLLER, "invoices", handler
        )

    @application.post(
        "/comments",
        response_model=CommentResponse,
        status_code=status.HTTP_201_CREATED,
    )
    async def create_comment(request: Request, response: Response) -> CommentResponse:
        """Accept a comment; the body is sanitized before the handler sees it."""

        def handler(context: SecurityContext) -> CommentResponse:
            if context.body is None:
                raise ValidationError("Comment body is required")
            return CommentResponse(request_id=context.request_id, content=context.body)

        return await run_protected(
            request, response, COMMENTS_CONTROLLER, "create", handler
        )

    instrument_app(application, settings)

    return application


app = create_app()
