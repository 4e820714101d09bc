"""Shared fixtures for integration tests."""

from collections.abc import AsyncGenerator, Callable, Generator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from src.api.main import create_app
from src.auth.principal import Principal
from src.auth.tokens import TokenStrategy
from src.core.config import AuthConfig, SecurityConfig, Settings, get_settings
from src.core.context import RequestContext

TEST_SECRET = "integration-secret"


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def clean_request_context() -> Generator[None]:
    RequestContext.clear()
    yield
    RequestContext.clear()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        auth_config=AuthConfig(token_secret=TEST_SECRET),
        security_config=SecurityConfig(
            rate_limit_base_limit=2,
            rate_limit_penalty_multiplier=1,
            cors_origins=["https://app.example"],
        ),
    )


@pytest.fixture
def app(settings: Settings) -> FastAPI:
    """A fresh app, so in-memory state does not leak between tests."""
    return create_app(settings)


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def bearer() -> Callable[..., dict[str, str]]:
    """Build an Authorization header for a principal signed with the test secret."""
    tokens = TokenStrategy(TEST_SECRET)

    def _bearer(
        principal_id: str = "user-1",
        roles: list[str] | None = None,
        metadata: dict[str, str] | None = None,
    ) -> dict[str, str]:
        principal = Principal(id=principal_id, roles=roles or ["user"], metadata=metadata)
        return {"Authorization": f"Bearer {tokens.issue(principal)}"}

    return _bearer
