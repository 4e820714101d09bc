"""HMAC-SHA256 signed bearer tokens.

Wire format, three unpadded base64url segments joined by dots::

    base64url(JSON header) "." base64url(JSON payload) "." base64url(signature)

where ``signature = HMAC-SHA256(secret, "<header>.<payload>")``. The payload
is the principal itself. There is no expiry check: a token stays valid for
as long as the secret does.
"""

import base64
import binascii
import hashlib
import hmac

import orjson
from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from src.auth.principal import Principal

TOKEN_HEADER = {"alg": "HS256", "typ": "JWT"}


def b64url_encode(data: bytes) -> str:
    """Encode bytes as unpadded base64url text."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(segment: str) -> bytes:
    """Decode base64url text, tolerating missing padding and the +/ alphabet.

    Raises:
        binascii.Error: If the segment is not valid base64.
    """
    normalized = segment.replace("+", "-").replace("/", "_")
    padding = "=" * (-len(normalized) % 4)
    return base64.urlsafe_b64decode(normalized + padding)


class TokenStrategy:
    """Issue and verify bearer tokens signed with a shared secret.

    Args:
        secret: Shared HMAC secret.
    """

    def __init__(self, secret: str) -> None:
        self._secret = secret.encode("utf-8")

    def _sign(self, signing_input: str) -> str:
        digest = hmac.new(
            self._secret, signing_input.encode("utf-8"), hashlib.sha256
        ).digest()
        return b64url_encode(digest)

    def issue(self, principal: Principal) -> str:
        """Create a signed token whose payload is ``principal``.

        Args:
            principal: The identity to encode.

        Returns:
            str: The token in ``header.payload.signature`` form.
        """
        header = b64url_encode(orjson.dumps(TOKEN_HEADER))
        payload = b64url_encode(
            principal.model_dump_json(exclude_none=True).encode("utf-8")
        )
        return f"{header}.{payload}.{self._sign(f'{header}.{payload}')}"

    def verify_signature(self, signing_input: str, signature: str) -> bool:
        """Check a signature in constant time."""
        expected = self._sign(signing_input)
        return hmac.compare_digest(expected.encode("ascii"), signature.encode("utf-8"))

    def authenticate(self, token: str | None) -> Principal | None:
        """Verify ``token`` and decode its payload.

        Only the first three dot-separated segments are considered.

        Args:
            token: Raw token text.

        Returns:
            Principal | None: The principal, or None for any invalid token.
        """
        if not token:
            return None

        segments = token.split(".")
        if len(segments) < 3 or not segments[2]:  # noqa: PLR2004 - header.payload.signature
            return None

        header, payload, signature = segments[:3]
        if not self.verify_signature(f"{header}.{payload}", signature):
            logger.debug("Rejected bearer token with invalid signature")
            return None

        try:
            return Principal.model_validate_json(b64url_decode(payload))
        except (binascii.Error, ValueError, PydanticValidationError) as exc:
            logger.debug("Rejected bearer token with undecodable payload: {}", exc)
            return None
