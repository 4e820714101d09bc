"""ASGI middleware and exception handlers shared by every route.

- **SecurityHeadersMiddleware**: Adds static hardening headers
- **RequestContextMiddleware**: Propagates correlation IDs
- **error_handler**: Maps exceptions to the standard error response
"""
