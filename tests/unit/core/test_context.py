"""Unit tests for request context helpers."""

import uuid

import pytest

from src.core.context import (
    RequestContext,
    generate_correlation_id,
    generate_request_id,
    get_header,
)


@pytest.mark.unit
class TestRequestContext:
    def test_set_get_clear(self) -> None:
        assert RequestContext.get_correlation_id() is None

        RequestContext.set_correlation_id("abc")
        assert RequestContext.get_correlation_id() == "abc"

        RequestContext.clear()
        assert RequestContext.get_correlation_id() is None


@pytest.mark.unit
class TestIdGenerators:
    def test_correlation_id_is_uuid4(self) -> None:
        assert uuid.UUID(generate_correlation_id()).version == 4

    def test_request_id_prefix(self) -> None:
        request_id = generate_request_id()

        assert request_id.startswith("req-")
        assert uuid.UUID(request_id.removeprefix("req-")).version == 4


@pytest.mark.unit
class TestGetHeader:
    @pytest.mark.parametrize(
        ("headers", "name", "expected"),
        [
            ({"authorization": "x"}, "authorization", "x"),
            ({"Authorization": "x"}, "authorization", "x"),
            ({"authorization": "x"}, "AUTHORIZATION", "x"),
            ({"other": "x"}, "authorization", None),
            ({}, "authorization", None),
        ],
    )
    def test_case_insensitive_lookup(
        self, headers: dict[str, str], name: str, expected: str | None
    ) -> None:
        assert get_header(headers, name) == expected
