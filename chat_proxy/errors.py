"""Error taxonomy for the chat proxy.

Each error carries the HTTP status and the client-visible message it maps
to. Internal detail (provider messages, stack traces) travels separately in
``detail`` and is only ever logged.
"""

from typing import Optional

GENERIC_FAILURE_MESSAGE = (
    "Sorry, I encountered an error processing your request. Please try again."
)


class ChatProxyError(Exception):
    """Base class for errors that map to a JSON error response."""

    status_code: int = 500
    message: str = "Internal server error"
    outcome: str = "error"

    def __init__(self, message: Optional[str] = None, detail: Optional[str] = None) -> None:
        if message is not None:
            self.message = message
        self.detail = detail or self.message
        super().__init__(self.detail)


class ValidationError(ChatProxyError):
    """The client sent a message that fails validation."""

    status_code = 400
    outcome = "validation_error"
    message = "Invalid request"


class RateLimitError(ChatProxyError):
    """The client exceeded the per-window request limit."""

    status_code = 429
    outcome = "rate_limited"
    message = "Too many requests. Please try again later."

    def __init__(self, identity: str, detail: Optional[str] = None) -> None:
        self.identity = identity
        super().__init__(detail=detail)


class ConfigurationError(ChatProxyError):
    """The backend credential is missing."""

    status_code = 500
    outcome = "configuration_error"
    message = "Server configuration error. Please contact administrator."


class BackendAuthError(ChatProxyError):
    """The backend rejected our API key."""

    status_code = 500
    outcome = "backend_auth_error"
    message = "Invalid API key configuration"


class BackendQuotaError(ChatProxyError):
    """The backend quota is exhausted."""

    status_code = 503
    outcome = "backend_quota_error"
    message = "Service temporarily unavailable due to quota limits"


class BackendEmptyResponseError(ChatProxyError):
    """The backend returned no text."""

    status_code = 500
    outcome = "backend_empty_response"
    message = GENERIC_FAILURE_MESSAGE


class BackendFailureError(ChatProxyError):
    """Any other backend failure."""

    status_code = 500
    outcome = "backend_error"
    message = GENERIC_FAILURE_MESSAGE
