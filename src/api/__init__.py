"""HTTP API layer built on FastAPI.

- **main**: Application factory, lifespan and routes
- **security**: Bridges Starlette requests into the security pipeline
- **middleware**: Correlation ids, security headers and error handling
- **schemas**: Request, response and error models
- **utils**: orjson-backed responses
"""
