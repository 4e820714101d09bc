"""Unit tests for the middleware-phase request context."""

from collections.abc import Callable

import pytest

from src.security.context import SecurityContext


@pytest.mark.unit
class TestSecurityContext:
    def test_defaults(self, make_context: Callable[..., SecurityContext]) -> None:
        context = make_context()

        assert context.client_address is None
        assert context.headers == {}
        assert context.body is None
        assert context.principal is None
        assert context.cookies == {}
        assert context.response_headers == {}
        assert context.timestamp > 0

    def test_header_lookup_ignores_case(
        self, make_context: Callable[..., SecurityContext]
    ) -> None:
        context = make_context(headers={"X-CSRF-Token": "abc"})

        assert context.header("x-csrf-token") == "abc"
        assert context.header("missing") is None

    def test_cookies_come_from_metadata(
        self, make_context: Callable[..., SecurityContext]
    ) -> None:
        context = make_context(metadata={"cookies": {"csrf_token": "abc"}})

        assert context.cookies == {"csrf_token": "abc"}

    def test_response_headers_merge(
        self, make_context: Callable[..., SecurityContext]
    ) -> None:
        context = make_context()

        context.add_response_headers({"A": "1", "B": "1"})
        context.add_response_headers({"B": "2"})

        assert context.metadata["response_headers"] == {"A": "1", "B": "2"}
