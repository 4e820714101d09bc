"""Strip script blocks and control characters from request input."""

import re
from typing import Any, Final

from src.security.chain import Next
from src.security.context import SecurityContext

SCRIPT_BLOCK_PATTERN: Final = re.compile(
    r"<script.*?>.*?</script>", re.IGNORECASE | re.DOTALL
)
CONTROL_CHARS_PATTERN: Final = re.compile(r"[\x00-\x1f\x7f]")


def clean_string(value: str) -> str:
    """Remove ``<script>`` blocks and ASCII control characters, then trim."""
    without_scripts = SCRIPT_BLOCK_PATTERN.sub("", value)
    return CONTROL_CHARS_PATTERN.sub("", without_scripts).strip()


def sanitize(value: Any) -> Any:  # noqa: ANN401 - arbitrary decoded JSON
    """Sanitize every string inside ``value``, recursing into lists and dicts.

    Other values are returned unchanged.
    """
    if isinstance(value, str):
        return clean_string(value)
    if isinstance(value, list):
        return [sanitize(item) for item in value]
    if isinstance(value, dict):
        return {key: sanitize(item) for key, item in value.items()}
    return value


class InputSanitizer:
    """Rewrite the request body and header values in place. Never blocks."""

    name = "InputSanitizer"

    async def handle(self, context: SecurityContext, next_: Next) -> None:
        if context.body is not None:
            context.body = sanitize(context.body)
        context.headers = {
            key: clean_string(value) if isinstance(value, str) else value
            for key, value in context.headers.items()
        }
        await next_()
