"""Core infrastructure package for shared application functionality.

- **config**: Centralized configuration management with environment support
- **context**: Correlation IDs, request IDs and header lookup
- **exceptions**: Structured exception hierarchy with error codes
- **error_context**: Sensitive data redaction for logs and audit entries
- **logging**: Structured logging with Loguru
- **observability**: Distributed tracing with OpenTelemetry
- **types**: Type aliases for better code clarity
"""
