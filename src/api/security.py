"""Bridge between Starlette requests and the security pipeline.

Routes call ``run_protected`` with the controller and handler name their
enhancers were declared under. Soft denials become ``ForbiddenError``; hard
denials raised inside the pipeline propagate to the exception handlers.
Response headers accumulated by middlewares are copied onto the response.
"""

from collections.abc import Callable, Hashable
from typing import Any

import orjson
from fastapi import Request, Response
from loguru import logger
from starlette.datastructures import Headers as StarletteHeaders

from src.api.constants import JSON_CONTENT_TYPES
from src.auth.guards import GuardContext
from src.core.constants import COOKIES_KEY, REQUEST_ID_HEADER
from src.core.context import generate_request_id
from src.core.error_context import sanitize_headers
from src.core.exceptions import ForbiddenError, ValidationError
from src.core.types import Headers
from src.pipeline.application import SecurityApplication
from src.security.context import SecurityContext


def get_security_application(request: Request) -> SecurityApplication:
    """Return the application-scoped security services."""
    security: SecurityApplication = request.app.state.security
    return security


async def read_json_body(request: Request) -> Any:  # noqa: ANN401 - decoded JSON of any shape
    """Decode the request body, or return None when there is none.

    Raises:
        ValidationError: If a JSON content type carries malformed JSON.
    """
    raw = await request.body()
    if not raw:
        return None

    content_type = request.headers.get("content-type", "").split(";")[0].strip()
    if content_type not in JSON_CONTENT_TYPES:
        return raw.decode("utf-8", errors="replace")

    try:
        return orjson.loads(raw)
    except orjson.JSONDecodeError as exc:
        raise ValidationError("Request body is not valid JSON", cause=exc) from exc


def normalize_headers(headers: StarletteHeaders) -> Headers:
    """Flatten request headers, joining repeated values with commas."""
    return {key: ",".join(headers.getlist(key)) for key in headers.keys()}


async def build_contexts(
    request: Request, security: SecurityApplication
) -> tuple[GuardContext, SecurityContext]:
    """Create the guard-phase and middleware-phase views of ``request``."""
    headers = normalize_headers(request.headers)
    guard_context = GuardContext(headers=headers, resolver=security.instances)
    security_context = SecurityContext(
        request_id=request.headers.get(REQUEST_ID_HEADER) or generate_request_id(),
        method=request.method,
        path=request.url.path,
        client_address=request.client.host if request.client else None,
        headers=dict(headers),
        body=await read_json_body(request),
        metadata={COOKIES_KEY: dict(request.cookies)},
    )
    return guard_context, security_context


async def run_protected(
    request: Request,
    response: Response,
    controller: Hashable,
    handler_name: str,
    handler: Callable[[SecurityContext], Any],
) -> Any:  # noqa: ANN401 - whatever the handler returns
    """Run ``handler`` behind the enhancers declared for it.

    Args:
        request: Incoming request.
        response: Response whose headers receive the accumulated headers.
        controller: Controller the enhancers were declared under.
        handler_name: Handler name the enhancers were declared under.
        handler: Receives the (possibly sanitized) security context.

    Returns:
        Any: The handler's return value.

    Raises:
        ForbiddenError: If a guard denied or a middleware blocked the request.
    """
    security = get_security_application(request)
    guard_context, security_context = await build_contexts(request, security)

    result = await security.pipeline.run(
        controller, handler_name, guard_context, security_context, handler
    )

    for name, value in security_context.response_headers.items():
        response.headers[name] = value

    if not result.handled:
        reason = result.reason or "Request blocked"
        logger.info(
            "Request denied",
            request_id=security_context.request_id,
            reason=reason,
            headers=sanitize_headers(security_context.headers),
        )
        raise ForbiddenError(
            reason,
            context={"controller": str(controller), "handler": handler_name},
        )

    return result.value
