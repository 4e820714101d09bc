"""Application-scoped owner of the pipeline's shared services.

The policy registry, the session table and the rate-limit store are mutable
and shared across requests. They live on one ``SecurityApplication`` built at
startup and are handed to the guards and middlewares that need them; nothing
reaches them through module globals.
"""

from dataclasses import dataclass, field

from loguru import logger

from src.auth.external import ExternalCodeStrategy
from src.auth.guards import AuthenticationGuard, PolicyGuard, RoleGuard
from src.auth.policies import PolicyRegistry
from src.auth.service import AuthService
from src.auth.sessions import SessionStrategy
from src.auth.tokens import TokenStrategy
from src.core.config import Settings
from src.pipeline.enhancers import EnhancerRegistry
from src.pipeline.executor import RequestPipeline
from src.pipeline.resolver import InstanceRegistry
from src.security.audit import AuditLogger
from src.security.csrf import CsrfProtector
from src.security.headers import CorsGuard, CspGuard
from src.security.rate_limit import AdaptiveRateLimiter, RateLimitStore
from src.security.sanitizer import InputSanitizer


@dataclass
class SecurityApplication:
    """Everything a request needs to pass through the pipeline."""

    auth: AuthService
    policies: PolicyRegistry
    rate_limits: RateLimitStore
    instances: InstanceRegistry
    enhancers: EnhancerRegistry = field(default_factory=EnhancerRegistry)

    @property
    def pipeline(self) -> RequestPipeline:
        return RequestPipeline(self.enhancers)


def create_security_application(settings: Settings) -> SecurityApplication:
    """Build the shared services and register the built-in guards and middlewares.

    Built-in components are registered under their ``name`` attribute, e.g.
    ``"AuthenticationGuard"`` or ``"AdaptiveRateLimiter"``.

    Args:
        settings: Application settings.

    Returns:
        SecurityApplication: Ready to have routes declared on ``enhancers``.
    """
    auth_config = settings.auth_config
    security_config = settings.security_config

    if settings.uses_default_token_secret and settings.environment == "production":
        logger.warning("Bearer tokens are signed with the default secret")

    policies = PolicyRegistry()
    tokens = TokenStrategy(auth_config.token_secret.get_secret_value())
    auth = AuthService(
        tokens=tokens,
        sessions=SessionStrategy(ttl_seconds=auth_config.session_ttl_seconds),
        external=ExternalCodeStrategy(),
        policies=policies,
    )
    rate_limits = RateLimitStore(max_keys=security_config.rate_limit_max_keys)

    instances = InstanceRegistry()
    components = [
        AuthenticationGuard(tokens),
        RoleGuard(),
        PolicyGuard(tokens, policies),
        InputSanitizer(),
        CsrfProtector(
            header_name=security_config.csrf_header_name,
            cookie_name=security_config.csrf_cookie_name,
        ),
        AdaptiveRateLimiter(
            window_ms=security_config.rate_limit_window_ms,
            base_limit=security_config.rate_limit_base_limit,
            penalty_multiplier=security_config.rate_limit_penalty_multiplier,
            store=rate_limits,
        ),
        CorsGuard(
            origins=security_config.cors_origins,
            methods=security_config.cors_methods,
            headers=security_config.cors_headers,
            credentials=security_config.cors_credentials,
        ),
        CspGuard(security_config.csp_directives),
        AuditLogger(),
    ]
    for component in components:
        instances.register(component.name, component)

    logger.info(
        "Security application ready",
        components=[component.name for component in components],
    )
    return SecurityApplication(
        auth=auth,
        policies=policies,
        rate_limits=rate_limits,
        instances=instances,
    )
