"""Unit tests for the request pipeline."""

from collections.abc import Callable

import pytest
from pytest_mock import MockerFixture

from src.auth.guards import AuthenticationGuard, GuardContext
from src.auth.principal import Principal
from src.auth.tokens import TokenStrategy
from src.core.exceptions import ComponentNotFoundError
from src.pipeline.enhancers import EnhancerRegistry, authenticated, use_security
from src.pipeline.executor import PipelineResult, RequestPipeline
from src.pipeline.guard_chain import ALLOWED, GuardOutcome
from src.pipeline.resolver import InstanceRegistry
from src.security.chain import Next, SecurityResult
from src.security.context import SecurityContext


class Blocker:
    name = "Blocker"

    async def handle(self, context: SecurityContext, next_: Next) -> None:
        _ = context, next_


class PassThrough:
    name = "PassThrough"

    def __init__(self) -> None:
        self.seen: list[Principal | None] = []

    async def handle(self, context: SecurityContext, next_: Next) -> None:
        self.seen.append(context.principal)
        await next_()


@pytest.fixture
def tokens() -> TokenStrategy:
    return TokenStrategy("pipeline-secret")


@pytest.fixture
def enhancers() -> EnhancerRegistry:
    return EnhancerRegistry()


@pytest.fixture
def pipeline(enhancers: EnhancerRegistry) -> RequestPipeline:
    return RequestPipeline(enhancers)


@pytest.mark.unit
class TestPipelineResult:
    def test_reason_prefers_guard_denial(self) -> None:
        result = PipelineResult(guards=GuardOutcome(allowed=False, guard_id="G"))

        assert result.allowed is False
        assert result.reason == "G blocked request"

    def test_reason_from_blocked_chain(self) -> None:
        result = PipelineResult(
            guards=ALLOWED,
            security=SecurityResult(blocked=True, reason="M blocked request"),
        )

        assert result.reason == "M blocked request"

    def test_handled_has_no_reason(self) -> None:
        result = PipelineResult(guards=ALLOWED, security=SecurityResult(), handled=True)

        assert result.allowed is True
        assert result.reason is None


@pytest.mark.unit
class TestRequestPipeline:
    async def test_undeclared_handler_runs(
        self,
        pipeline: RequestPipeline,
        registry: InstanceRegistry,
        make_context: Callable[..., SecurityContext],
    ) -> None:
        result = await pipeline.run(
            "c",
            "h",
            GuardContext(headers={}, resolver=registry),
            make_context(),
            lambda context: "ok",
        )

        assert result.handled is True
        assert result.value == "ok"

    async def test_guard_denial_skips_middlewares_and_handler(
        self,
        pipeline: RequestPipeline,
        enhancers: EnhancerRegistry,
        registry: InstanceRegistry,
        tokens: TokenStrategy,
        make_context: Callable[..., SecurityContext],
        mocker: MockerFixture,
    ) -> None:
        passthrough = PassThrough()
        registry.register("AuthenticationGuard", AuthenticationGuard(tokens))
        registry.register("PassThrough", passthrough)
        enhancers.declare("c", "h", authenticated(), use_security("PassThrough"))
        handler = mocker.Mock()

        result = await pipeline.run(
            "c", "h", GuardContext(headers={}, resolver=registry), make_context(), handler
        )

        assert result.handled is False
        assert result.security is None
        assert result.reason == "AuthenticationGuard blocked request"
        assert passthrough.seen == []
        handler.assert_not_called()

    async def test_principal_flows_into_security_context(
        self,
        pipeline: RequestPipeline,
        enhancers: EnhancerRegistry,
        registry: InstanceRegistry,
        tokens: TokenStrategy,
        make_context: Callable[..., SecurityContext],
        make_principal: Callable[..., Principal],
    ) -> None:
        principal = make_principal()
        passthrough = PassThrough()
        registry.register("AuthenticationGuard", AuthenticationGuard(tokens))
        registry.register("PassThrough", passthrough)
        enhancers.declare("c", "h", authenticated(), use_security("PassThrough"))
        guard_context = GuardContext(
            headers={"authorization": f"Bearer {tokens.issue(principal)}"},
            resolver=registry,
        )

        result = await pipeline.run(
            "c", "h", guard_context, make_context(), lambda context: context.principal
        )

        assert passthrough.seen == [principal]
        assert result.value == principal

    async def test_blocked_chain_reports_reason(
        self,
        pipeline: RequestPipeline,
        enhancers: EnhancerRegistry,
        registry: InstanceRegistry,
        make_context: Callable[..., SecurityContext],
        mocker: MockerFixture,
    ) -> None:
        registry.register("Blocker", Blocker())
        enhancers.declare("c", "h", use_security("Blocker"))
        handler = mocker.Mock()

        result = await pipeline.run(
            "c", "h", GuardContext(headers={}, resolver=registry), make_context(), handler
        )

        assert result.handled is False
        assert result.reason == "Blocker blocked request"
        handler.assert_not_called()

    async def test_async_handler_is_awaited(
        self,
        pipeline: RequestPipeline,
        registry: InstanceRegistry,
        make_context: Callable[..., SecurityContext],
    ) -> None:
        async def handler(context: SecurityContext) -> str:
            return context.request_id

        result = await pipeline.run(
            "c",
            "h",
            GuardContext(headers={}, resolver=registry),
            make_context(request_id="req-9"),
            handler,
        )

        assert result.value == "req-9"

    async def test_unknown_middleware_raises(
        self,
        pipeline: RequestPipeline,
        enhancers: EnhancerRegistry,
        registry: InstanceRegistry,
        make_context: Callable[..., SecurityContext],
    ) -> None:
        enhancers.declare("c", "h", use_security("Ghost"))

        with pytest.raises(ComponentNotFoundError):
            await pipeline.run(
                "c",
                "h",
                GuardContext(headers={}, resolver=registry),
                make_context(),
                lambda context: None,
            )
