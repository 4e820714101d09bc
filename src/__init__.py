"""Bastion - request authorization and security enforcement for Python services.

Bastion decides whether a request handler may run and wraps the handlers that
may run in a defense-in-depth middleware chain.

Architecture Overview:
- **Core Layer**: Configuration, logging, tracing, the exception hierarchy
- **Auth Layer**: Principals, authentication strategies, policies and guards
- **Security Layer**: Sanitizer, CSRF, adaptive rate limiting, CORS/CSP, audit
- **Pipeline Layer**: Enhancer registration, guard chain, request pipeline
- **API Layer**: FastAPI adapter exposing secured routes

Every request runs guard after guard, then middleware after middleware; the
handler executes only if nothing denied the request along the way.
"""
