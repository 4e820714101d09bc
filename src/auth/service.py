"""Facade over the authentication strategies and the policy registry."""

from typing import Any

from src.auth.external import ExternalCodeStrategy
from src.auth.policies import Policy, PolicyRegistry, evaluate_policy
from src.auth.principal import Principal
from src.auth.sessions import SessionStrategy
from src.auth.tokens import TokenStrategy
from src.core.exceptions import UnknownPolicyError


class AuthService:
    """Single entry point for application code that authenticates or authorizes.

    Args:
        tokens: Bearer token strategy.
        sessions: Session strategy.
        external: External-code strategy.
        policies: Shared policy registry.
    """

    def __init__(
        self,
        tokens: TokenStrategy,
        sessions: SessionStrategy,
        external: ExternalCodeStrategy,
        policies: PolicyRegistry,
    ) -> None:
        self.tokens = tokens
        self.sessions = sessions
        self.external = external
        self.policies = policies

    def issue_token(self, principal: Principal) -> str:
        return self.tokens.issue(principal)

    def authenticate_token(self, token: str) -> Principal | None:
        return self.tokens.authenticate(token)

    def authenticate_session(self, session_id: str) -> Principal | None:
        return self.sessions.authenticate(session_id)

    async def authenticate_external(self, code: str) -> Principal | None:
        return await self.external.authenticate(code)

    def create_session(self, principal: Principal, ttl_seconds: int | None = None) -> str:
        return self.sessions.create_session(principal, ttl_seconds)

    def destroy_session(self, session_id: str) -> bool:
        return self.sessions.destroy_session(session_id)

    def register_policy(self, policy: Policy) -> None:
        self.policies.register(policy)

    async def assert_policies(
        self,
        principal: Principal,
        policy_names: list[str],
        context: dict[str, Any] | None = None,
    ) -> bool:
        """Evaluate ``policy_names`` in order against ``principal``.

        Returns:
            bool: False at the first failing policy, True if all pass.

        Raises:
            UnknownPolicyError: If a name was never registered.
        """
        for policy_name in policy_names:
            policy = self.policies.get(policy_name)
            if policy is None:
                raise UnknownPolicyError(policy_name)
            if not await evaluate_policy(policy, principal, context):
                return False
        return True
