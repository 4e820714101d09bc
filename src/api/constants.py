"""API-related constants."""

# HTTP Headers
CORRELATION_ID_HEADER = "X-Correlation-ID"
RETRY_AFTER_HEADER = "Retry-After"

# Content types
JSON_CONTENT_TYPES = {"application/json", "text/json"}

# Security
DEFAULT_HSTS_MAX_AGE = 31536000  # 1 year in seconds

# Controllers the routes are declared under
ACCOUNT_CONTROLLER = "account"
ADMIN_CONTROLLER = "admin"
BILLING_CONTROLLER = "billing"
COMMENTS_CONTROLLER = "comments"

PREMIUM_PLAN_POLICY = "premium-plan"
