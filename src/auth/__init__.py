"""Authentication strategies, guards and authorization policies.

- **principal**: The authenticated identity model
- **tokens**: HMAC-signed bearer tokens
- **sessions**: In-memory sessions with lazy expiry
- **external**: Exchange of third-party authorization codes
- **policies**: Named policies and their registry
- **guards**: Authentication, role and policy guards
- **service**: Facade combining the strategies above
"""
