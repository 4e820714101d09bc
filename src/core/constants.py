"""Core application constants."""

# Time constants
MILLISECONDS_PER_SECOND = 1000

# Security and redaction
REDACTED = "[REDACTED]"

# Header names used across the pipeline (lower-case, HTTP headers are
# matched case-insensitively)
AUTHORIZATION_HEADER = "authorization"
FORWARDED_FOR_HEADER = "x-forwarded-for"
ORIGIN_HEADER = "origin"
REQUEST_ID_HEADER = "x-request-id"

# Metadata keys of a SecurityContext
COOKIES_KEY = "cookies"
RESPONSE_HEADERS_KEY = "response_headers"
