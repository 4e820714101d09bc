"""Unit tests for continuation-passing middleware execution."""

from collections.abc import Callable

import pytest
from pytest_mock import MockerFixture

from src.security.chain import Next, SecurityMiddleware, run_security_chain
from src.security.context import SecurityContext


class Recorder:
    """Middleware that records entry and exit, optionally blocking."""

    def __init__(self, name: str, log: list[str], *, proceed: bool = True) -> None:
        self.name = name
        self.log = log
        self.proceed = proceed

    async def handle(self, context: SecurityContext, next_: Next) -> None:
        _ = context
        self.log.append(f"{self.name}:before")
        if self.proceed:
            await next_()
        self.log.append(f"{self.name}:after")


class DoubleCaller:
    name = "DoubleCaller"

    async def handle(self, context: SecurityContext, next_: Next) -> None:
        _ = context
        await next_()
        await next_()


class Raiser:
    name = "Raiser"

    async def handle(self, context: SecurityContext, next_: Next) -> None:
        _ = context, next_
        raise PermissionError("nope")


@pytest.mark.unit
class TestRunSecurityChain:
    @pytest.fixture
    def log(self) -> list[str]:
        return []

    def test_middlewares_satisfy_protocol(self, log: list[str]) -> None:
        assert isinstance(Recorder("A", log), SecurityMiddleware)

    async def test_empty_chain_runs_handler(
        self, make_context: Callable[..., SecurityContext], mocker: MockerFixture
    ) -> None:
        handler = mocker.Mock()

        result = await run_security_chain([], make_context(), handler)

        handler.assert_called_once_with()
        assert result.blocked is False
        assert result.reason is None

    async def test_middlewares_wrap_handler_in_order(
        self, make_context: Callable[..., SecurityContext], log: list[str]
    ) -> None:
        middlewares = [Recorder("A", log), Recorder("B", log)]

        result = await run_security_chain(
            middlewares, make_context(), lambda: log.append("handler")
        )

        assert result.blocked is False
        assert log == ["A:before", "B:before", "handler", "B:after", "A:after"]

    async def test_second_of_three_blocks(
        self,
        make_context: Callable[..., SecurityContext],
        log: list[str],
        mocker: MockerFixture,
    ) -> None:
        handler = mocker.Mock()
        middlewares = [
            Recorder("First", log),
            Recorder("Second", log, proceed=False),
            Recorder("Third", log),
        ]

        result = await run_security_chain(middlewares, make_context(), handler)

        assert result.blocked is True
        assert result.reason == "Second blocked request"
        assert "Third:before" not in log
        handler.assert_not_called()

    async def test_async_handler_is_awaited(
        self, make_context: Callable[..., SecurityContext], log: list[str]
    ) -> None:
        async def handler() -> None:
            log.append("async-handler")

        await run_security_chain([Recorder("A", log)], make_context(), handler)

        assert "async-handler" in log

    async def test_repeated_continuation_is_ignored(
        self, make_context: Callable[..., SecurityContext], mocker: MockerFixture
    ) -> None:
        mock_logger = mocker.patch("src.security.chain.logger")
        handler = mocker.Mock()

        result = await run_security_chain([DoubleCaller()], make_context(), handler)

        handler.assert_called_once()
        assert result.blocked is False
        mock_logger.warning.assert_called_once()

    async def test_exceptions_propagate(
        self,
        make_context: Callable[..., SecurityContext],
        log: list[str],
        mocker: MockerFixture,
    ) -> None:
        handler = mocker.Mock()

        with pytest.raises(PermissionError, match="nope"):
            await run_security_chain(
                [Recorder("A", log), Raiser()], make_context(), handler
            )

        handler.assert_not_called()
        assert log == ["A:before"]

    async def test_handler_exceptions_propagate(
        self, make_context: Callable[..., SecurityContext], log: list[str]
    ) -> None:
        def handler() -> None:
            raise ValueError("handler failed")

        with pytest.raises(ValueError, match="handler failed"):
            await run_security_chain([Recorder("A", log)], make_context(), handler)
