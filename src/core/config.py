"""Centralized configuration management with environment-aware defaults.

This module implements the configuration system using Pydantic Settings,
providing type-safe configuration with validation and environment variable
support.

Configuration sources (in order of precedence):
1. Environment variables (nested values use the ``__`` delimiter,
   e.g. ``SECURITY_CONFIG__RATE_LIMIT_BASE_LIMIT=50``)
2. .env file in project root
3. Default values in model definitions
"""

import os
from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_TOKEN_SECRET = "changeme"


class LogConfig(BaseModel):
    """Logging configuration."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    log_formatter_type: Literal["console", "json"] | None = Field(
        default=None,
        description="Log output formatter. Auto-detected if not specified.",
    )
    sensitive_fields: list[str] = Field(
        default_factory=lambda: [
            "password",
            "token",
            "secret",
            "api_key",
            "authorization",
            "cookie",
        ],
        description="Field names to redact",
    )


class ObservabilityConfig(BaseModel):
    """OpenTelemetry tracing configuration."""

    enable_tracing: bool = Field(
        default=False,
        description="Enable OpenTelemetry tracing",
    )
    exporter_type: Literal["console", "otlp", "none"] = Field(
        default="console",
        description="Trace exporter type. Defaults to console for development.",
    )
    exporter_endpoint: str | None = Field(
        default=None,
        description="OTLP exporter endpoint",
    )
    trace_sample_rate: float = Field(
        default=1.0,
        ge=0.0,
        le=1.0,
        description="Trace sampling rate (0.0 to 1.0)",
    )

    @field_validator("exporter_endpoint", mode="before")
    @classmethod
    def empty_str_to_none(cls, v: str | None) -> str | None:
        """Convert empty strings to None for nullable fields."""
        if v == "":
            return None
        return v


class AuthConfig(BaseModel):
    """Authentication strategy configuration."""

    token_secret: SecretStr = Field(
        default=SecretStr(DEFAULT_TOKEN_SECRET),
        description="Shared HMAC-SHA256 secret for bearer tokens",
    )
    session_ttl_seconds: int = Field(
        default=3600,
        gt=0,
        description="Lifetime of server-side sessions in seconds",
    )


class SecurityConfig(BaseModel):
    """Security middleware configuration."""

    rate_limit_window_ms: int = Field(
        default=60_000,
        gt=0,
        description="Rate-limit window length in milliseconds",
    )
    rate_limit_base_limit: int = Field(
        default=100,
        gt=0,
        description="Base request budget per window",
    )
    rate_limit_penalty_multiplier: int = Field(
        default=2,
        ge=1,
        description="Multiplier applied to the budget and to the lockout window",
    )
    rate_limit_max_keys: int = Field(
        default=10_000,
        gt=0,
        description="Maximum number of distinct rate-limit buckets kept in memory",
    )
    csrf_header_name: str = Field(
        default="x-csrf-token",
        description="Request header carrying the CSRF token",
    )
    csrf_cookie_name: str = Field(
        default="csrf_token",
        description="Cookie carrying the CSRF token",
    )
    cors_origins: list[str] = Field(
        default_factory=lambda: ["*"],
        description="Allowed CORS origins; '*' allows any origin",
    )
    cors_methods: list[str] = Field(
        default_factory=lambda: ["GET", "POST"],
        description="Methods advertised in Access-Control-Allow-Methods",
    )
    cors_headers: list[str] = Field(
        default_factory=lambda: ["Content-Type", "Authorization"],
        description="Headers advertised in Access-Control-Allow-Headers",
    )
    cors_credentials: bool = Field(
        default=False,
        description="Value of Access-Control-Allow-Credentials",
    )
    csp_directives: dict[str, list[str]] = Field(
        default_factory=lambda: {
            "default-src": ["'self'"],
            "script-src": ["'self'"],
            "object-src": ["'none'"],
        },
        description="Content-Security-Policy directives",
    )


class Settings(BaseSettings):
    """Main settings class for the application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        env_nested_delimiter="__",
    )

    # Application settings
    app_name: str = Field(default="Bastion", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Environment the application is running in",
    )
    debug: bool = Field(default=True, description="Debug mode flag")

    # API settings
    api_host: str = Field(default="127.0.0.1", description="API host")
    api_port: int = Field(default=8000, description="API port")
    docs_url: str | None = Field(default="/docs", description="Swagger UI URL")
    openapi_url: str | None = Field(
        default="/openapi.json", description="OpenAPI schema URL"
    )

    log_config: LogConfig = Field(
        default_factory=LogConfig, description="Logging configuration"
    )
    observability_config: ObservabilityConfig = Field(
        default_factory=ObservabilityConfig, description="Observability configuration"
    )
    auth_config: AuthConfig = Field(
        default_factory=AuthConfig, description="Authentication configuration"
    )
    security_config: SecurityConfig = Field(
        default_factory=SecurityConfig, description="Security middleware configuration"
    )

    def model_post_init(self, __context: object) -> None:
        """Post initialization to set environment-based defaults."""
        super().model_post_init(__context)

        if self.log_config.log_formatter_type is None:
            self.log_config.log_formatter_type = self._detect_formatter()

        if (
            self.environment == "production"
            and self.observability_config.trace_sample_rate == 1.0
        ):
            self.observability_config.trace_sample_rate = 0.1

    def _detect_formatter(self) -> Literal["console", "json"]:
        """Auto-detect log formatter based on environment."""
        if os.getenv("K_SERVICE") or os.getenv("AWS_EXECUTION_ENV"):
            return "json"
        if self.environment == "development":
            return "console"
        return "json"

    @property
    def uses_default_token_secret(self) -> bool:
        """Whether the bearer-token secret was left at its insecure default."""
        return self.auth_config.token_secret.get_secret_value() == DEFAULT_TOKEN_SECRET

    @field_validator("docs_url", "openapi_url", mode="before")
    @classmethod
    def empty_str_to_none(cls, v: str | None) -> str | None:
        """Convert empty strings to None for nullable fields."""
        _ = cls
        if v == "":
            return None
        return v


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
