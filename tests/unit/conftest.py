"""Shared fixtures for unit tests."""

import os
from collections.abc import Callable, Generator
from typing import Any

import pytest

from src.auth.principal import Principal
from src.core.config import Settings, get_settings
from src.core.context import RequestContext
from src.core.error_context import _get_sensitive_fields
from src.pipeline.resolver import InstanceRegistry
from src.security.context import SecurityContext


@pytest.fixture
def mock_settings(monkeypatch: pytest.MonkeyPatch) -> Settings:
    """Provide a real Settings object built from test environment values."""
    monkeypatch.setenv("APP_NAME", "TestApp")
    monkeypatch.setenv("APP_VERSION", "1.0.0")
    monkeypatch.setenv("ENVIRONMENT", "development")
    monkeypatch.setenv("DEBUG", "false")
    monkeypatch.setenv("API_PORT", "3000")
    return Settings()


@pytest.fixture(autouse=True)
def clean_lru_cache() -> Generator[None]:
    """Clear cached settings before and after each test."""
    get_settings.cache_clear()
    _get_sensitive_fields.cache_clear()
    yield
    get_settings.cache_clear()
    _get_sensitive_fields.cache_clear()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Remove application environment variables that could leak into Settings."""
    env_prefixes = [
        "APP_",
        "API_",
        "ENVIRONMENT",
        "DEBUG",
        "LOG_CONFIG__",
        "OBSERVABILITY_CONFIG__",
        "AUTH_CONFIG__",
        "SECURITY_CONFIG__",
    ]
    for key in list(os.environ):
        if any(key.startswith(prefix) for prefix in env_prefixes):
            monkeypatch.delenv(key, raising=False)
    return monkeypatch


@pytest.fixture(autouse=True)
def clean_context() -> Generator[None]:
    """Clear the request context before and after each test."""
    RequestContext.clear()
    yield
    RequestContext.clear()


@pytest.fixture
def make_principal() -> Callable[..., Principal]:
    """Build principals with sensible defaults."""

    def _make(
        principal_id: str | int = "user-1",
        roles: list[str] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Principal:
        return Principal(id=principal_id, roles=roles or ["user"], metadata=metadata)

    return _make


@pytest.fixture
def make_context() -> Callable[..., SecurityContext]:
    """Build security contexts for middleware tests."""

    def _make(**overrides: Any) -> SecurityContext:
        values: dict[str, Any] = {
            "request_id": "req-test",
            "method": "POST",
            "path": "/comments",
        }
        values.update(overrides)
        return SecurityContext(**values)

    return _make


@pytest.fixture
def registry() -> InstanceRegistry:
    return InstanceRegistry()
