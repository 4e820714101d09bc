"""In-memory server-side sessions."""

import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass

from loguru import logger

from src.auth.principal import Principal
from src.core.constants import MILLISECONDS_PER_SECOND


def _now_ms() -> float:
    return time.time() * MILLISECONDS_PER_SECOND


@dataclass
class SessionState:
    """A stored session: who it belongs to and when it stops being valid."""

    principal: Principal
    expires_at: float


class SessionStrategy:
    """Create opaque session ids and resolve them back to principals.

    Expired sessions are evicted lazily when looked up; there is no
    background sweep.

    Args:
        ttl_seconds: Default session lifetime.
        clock: Returns the current time in epoch milliseconds.
    """

    def __init__(
        self, ttl_seconds: int = 3600, clock: Callable[[], float] = _now_ms
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._sessions: dict[str, SessionState] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def create_session(
        self, principal: Principal, ttl_seconds: int | None = None
    ) -> str:
        """Store ``principal`` under a fresh session id and return the id."""
        session_id = str(uuid.uuid4())
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        self._sessions[session_id] = SessionState(
            principal=principal,
            expires_at=self._clock() + ttl * MILLISECONDS_PER_SECOND,
        )
        return session_id

    def authenticate(self, session_id: str | None) -> Principal | None:
        """Return the session's principal, or None if unknown or expired."""
        if not session_id:
            return None
        session = self._sessions.get(session_id)
        if session is None:
            return None
        if session.expires_at < self._clock():
            del self._sessions[session_id]
            logger.debug("Evicted expired session")
            return None
        return session.principal

    def destroy_session(self, session_id: str) -> bool:
        """Remove a session; returns whether it existed."""
        return self._sessions.pop(session_id, None) is not None
