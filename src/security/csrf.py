"""Double-submit-cookie CSRF protection."""

import hmac

from loguru import logger

from src.core.exceptions import CsrfTokenError
from src.security.chain import Next
from src.security.context import SecurityContext

DEFAULT_CSRF_HEADER = "x-csrf-token"
DEFAULT_CSRF_COOKIE = "csrf_token"


class CsrfProtector:
    """Require the CSRF header token to equal the CSRF cookie token.

    A missing token on either side, or a mismatch, raises ``CsrfTokenError``.

    Args:
        header_name: Request header carrying the token (matched case-insensitively).
        cookie_name: Cookie carrying the token.
    """

    name = "CsrfProtector"

    def __init__(
        self,
        header_name: str = DEFAULT_CSRF_HEADER,
        cookie_name: str = DEFAULT_CSRF_COOKIE,
    ) -> None:
        self.header_name = header_name
        self.cookie_name = cookie_name

    async def handle(self, context: SecurityContext, next_: Next) -> None:
        header_token = context.header(self.header_name)
        cookie_token = context.cookies.get(self.cookie_name)

        if not header_token or not cookie_token:
            logger.warning(
                "CSRF token missing",
                request_id=context.request_id,
                has_header=bool(header_token),
                has_cookie=bool(cookie_token),
            )
            raise CsrfTokenError(context={"request_id": context.request_id})

        if not hmac.compare_digest(
            header_token.encode("utf-8"), cookie_token.encode("utf-8")
        ):
            logger.warning("CSRF token mismatch", request_id=context.request_id)
            raise CsrfTokenError(context={"request_id": context.request_id})

        await next_()
