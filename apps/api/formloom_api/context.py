"""Request context management for observability.

Context variables for request tracking across async boundaries. The JSON
log formatter reads these so every log line carries the caller identity.
"""

from contextvars import ContextVar

# Request ID - unique per HTTP request
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# Authenticated user for the current request
user_id_var: ContextVar[str] = ContextVar("user_id", default="")

# Organization the current request operates on (set by access checks)
organization_id_var: ContextVar[str] = ContextVar("organization_id", default="")
