"""Unit tests for the authentication, role and policy guards."""

from collections.abc import Callable

import pytest
from pytest_mock import MockerFixture

from src.auth.guards import (
    AuthenticationGuard,
    Guard,
    GuardContext,
    PolicyGuard,
    RoleGuard,
    extract_bearer_token,
    resolve_principal,
)
from src.auth.policies import FunctionPolicy, PolicyRegistry
from src.auth.principal import Principal
from src.auth.tokens import TokenStrategy
from src.pipeline.resolver import InstanceRegistry


@pytest.fixture
def tokens() -> TokenStrategy:
    return TokenStrategy("guard-secret")


@pytest.fixture
def make_guard_context(
    registry: InstanceRegistry,
) -> Callable[..., GuardContext]:
    def _make(
        headers: dict[str, str] | None = None, principal: Principal | None = None
    ) -> GuardContext:
        return GuardContext(
            headers=headers or {}, resolver=registry, principal=principal
        )

    return _make


@pytest.mark.unit
class TestExtractBearerToken:
    @pytest.mark.parametrize(
        ("headers", "expected"),
        [
            ({"authorization": "Bearer abc"}, "abc"),
            ({"Authorization": "bearer abc"}, "abc"),
            ({"AUTHORIZATION": "BEARER abc"}, "abc"),
            ({"authorization": "abc"}, "abc"),
            ({"authorization": "Bearer Bearer abc"}, "Bearer abc"),
            ({}, ""),
        ],
    )
    def test_extracts_credential(self, headers: dict[str, str], expected: str) -> None:
        assert extract_bearer_token(headers) == expected


@pytest.mark.unit
class TestGuardContext:
    def test_attach_principal(
        self,
        make_guard_context: Callable[..., GuardContext],
        make_principal: Callable[..., Principal],
    ) -> None:
        context = make_guard_context()
        principal = make_principal()

        context.attach_principal(principal)

        assert context.principal is principal

    def test_attach_none_is_rejected(
        self, make_guard_context: Callable[..., GuardContext]
    ) -> None:
        with pytest.raises(ValueError, match="Cannot clear"):
            make_guard_context().attach_principal(None)  # type: ignore[arg-type]


@pytest.mark.unit
class TestResolvePrincipal:
    def test_returns_attached_principal_without_token(
        self,
        tokens: TokenStrategy,
        make_guard_context: Callable[..., GuardContext],
        make_principal: Callable[..., Principal],
        mocker: MockerFixture,
    ) -> None:
        principal = make_principal()
        spy = mocker.spy(tokens, "authenticate")

        result = resolve_principal(make_guard_context(principal=principal), tokens)

        assert result is principal
        spy.assert_not_called()

    def test_authenticates_and_attaches(
        self,
        tokens: TokenStrategy,
        make_guard_context: Callable[..., GuardContext],
        make_principal: Callable[..., Principal],
    ) -> None:
        principal = make_principal()
        context = make_guard_context(
            {"authorization": f"Bearer {tokens.issue(principal)}"}
        )

        assert resolve_principal(context, tokens) == principal
        assert context.principal == principal

    def test_invalid_token_leaves_context_empty(
        self, tokens: TokenStrategy, make_guard_context: Callable[..., GuardContext]
    ) -> None:
        context = make_guard_context({"authorization": "Bearer a.b.c"})

        assert resolve_principal(context, tokens) is None
        assert context.principal is None


@pytest.mark.unit
class TestAuthenticationGuard:
    def test_satisfies_protocol(self, tokens: TokenStrategy) -> None:
        assert isinstance(AuthenticationGuard(tokens), Guard)

    def test_valid_token_allows(
        self,
        tokens: TokenStrategy,
        make_guard_context: Callable[..., GuardContext],
        make_principal: Callable[..., Principal],
    ) -> None:
        context = make_guard_context(
            {"authorization": f"Bearer {tokens.issue(make_principal())}"}
        )

        assert AuthenticationGuard(tokens).can_activate(context) is True
        assert context.principal is not None

    @pytest.mark.parametrize(
        "headers",
        [{}, {"authorization": "Bearer "}, {"authorization": "Bearer nope"}],
    )
    def test_missing_or_invalid_token_denies(
        self,
        tokens: TokenStrategy,
        make_guard_context: Callable[..., GuardContext],
        headers: dict[str, str],
    ) -> None:
        assert AuthenticationGuard(tokens).can_activate(make_guard_context(headers)) is False


@pytest.mark.unit
class TestRoleGuard:
    @pytest.mark.parametrize(
        ("roles", "required", "expected"),
        [
            (["user"], ["admin"], False),
            (["admin", "user"], ["admin"], True),
            (["user"], ["admin", "user"], True),
            (["user"], [], True),
            ([], ["admin"], False),
        ],
    )
    def test_any_role_matches(
        self,
        make_guard_context: Callable[..., GuardContext],
        make_principal: Callable[..., Principal],
        roles: list[str],
        required: list[str],
        expected: bool,
    ) -> None:
        principal = make_principal()
        principal.roles = roles
        context = make_guard_context(principal=principal)

        assert RoleGuard().can_activate(context, {"roles": required}) is expected

    def test_no_options_allows_any_principal(
        self,
        make_guard_context: Callable[..., GuardContext],
        make_principal: Callable[..., Principal],
    ) -> None:
        context = make_guard_context(principal=make_principal())

        assert RoleGuard().can_activate(context) is True

    def test_without_principal_denies(
        self, make_guard_context: Callable[..., GuardContext]
    ) -> None:
        assert RoleGuard().can_activate(make_guard_context(), {"roles": []}) is False


@pytest.mark.unit
class TestPolicyGuard:
    @pytest.fixture
    def policies(self) -> PolicyRegistry:
        registry = PolicyRegistry()
        registry.register(
            FunctionPolicy(
                "premium",
                lambda principal, context: (principal.metadata or {}).get("plan")
                == "premium",
            )
        )
        registry.register(FunctionPolicy("always", lambda principal, context: True))
        return registry

    async def test_all_policies_pass(
        self,
        tokens: TokenStrategy,
        policies: PolicyRegistry,
        make_guard_context: Callable[..., GuardContext],
        make_principal: Callable[..., Principal],
    ) -> None:
        context = make_guard_context(
            principal=make_principal(metadata={"plan": "premium"})
        )

        result = await PolicyGuard(tokens, policies).can_activate(
            context, {"policies": ["always", "premium"]}
        )

        assert result is True

    async def test_failing_policy_denies(
        self,
        tokens: TokenStrategy,
        policies: PolicyRegistry,
        make_guard_context: Callable[..., GuardContext],
        make_principal: Callable[..., Principal],
    ) -> None:
        context = make_guard_context(principal=make_principal(metadata={"plan": "free"}))

        result = await PolicyGuard(tokens, policies).can_activate(
            context, {"policies": ["premium"]}
        )

        assert result is False

    async def test_unknown_policy_denies(
        self,
        tokens: TokenStrategy,
        policies: PolicyRegistry,
        make_guard_context: Callable[..., GuardContext],
        make_principal: Callable[..., Principal],
        mocker: MockerFixture,
    ) -> None:
        mock_logger = mocker.patch("src.auth.guards.logger")
        context = make_guard_context(principal=make_principal())

        result = await PolicyGuard(tokens, policies).can_activate(
            context, {"policies": ["always", "does-not-exist"]}
        )

        assert result is False
        mock_logger.warning.assert_called_once()

    async def test_policies_stop_at_first_failure(
        self,
        tokens: TokenStrategy,
        policies: PolicyRegistry,
        make_guard_context: Callable[..., GuardContext],
        make_principal: Callable[..., Principal],
        mocker: MockerFixture,
    ) -> None:
        later = mocker.Mock(return_value=True)
        policies.register(FunctionPolicy("later", later))
        context = make_guard_context(principal=make_principal())

        await PolicyGuard(tokens, policies).can_activate(
            context, {"policies": ["premium", "later"]}
        )

        later.assert_not_called()

    async def test_lazily_authenticates_from_token(
        self,
        tokens: TokenStrategy,
        policies: PolicyRegistry,
        make_guard_context: Callable[..., GuardContext],
        make_principal: Callable[..., Principal],
    ) -> None:
        principal = make_principal(metadata={"plan": "premium"})
        context = make_guard_context({"authorization": f"Bearer {tokens.issue(principal)}"})

        result = await PolicyGuard(tokens, policies).can_activate(
            context, {"policies": ["premium"]}
        )

        assert result is True
        assert context.principal == principal

    async def test_without_credentials_denies(
        self,
        tokens: TokenStrategy,
        policies: PolicyRegistry,
        make_guard_context: Callable[..., GuardContext],
    ) -> None:
        result = await PolicyGuard(tokens, policies).can_activate(
            make_guard_context(), {"policies": ["always"]}
        )

        assert result is False

    async def test_empty_policy_list_allows_authenticated(
        self,
        tokens: TokenStrategy,
        policies: PolicyRegistry,
        make_guard_context: Callable[..., GuardContext],
        make_principal: Callable[..., Principal],
    ) -> None:
        context = make_guard_context(principal=make_principal())

        assert await PolicyGuard(tokens, policies).can_activate(context) is True
