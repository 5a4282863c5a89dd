"""Chat message validation."""

from dataclasses import dataclass
from typing import Any, Optional

from chat_proxy.errors import ValidationError

MAX_MESSAGE_LENGTH = 1000

MESSAGE_REQUIRED = "Message is required and must be a string"
MESSAGE_TOO_LONG = "Message too long. Please keep it under 1000 characters."
MESSAGE_EMPTY = "Message cannot be empty"


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating a single message."""

    is_valid: bool
    error: Optional[str] = None


def validate_message(message: Any) -> ValidationResult:
    """Check a candidate chat message.

    Checks run in order and stop at the first failure: type, raw length
    (untrimmed), then emptiness after stripping whitespace. A valid message
    is not transformed; callers forward the original string.

    Args:
        message: The ``message`` field from the request body, of any type.

    Returns:
        A ValidationResult with the failure reason when invalid.
    """
    if not isinstance(message, str):
        return ValidationResult(False, MESSAGE_REQUIRED)

    if len(message) > MAX_MESSAGE_LENGTH:
        return ValidationResult(False, MESSAGE_TOO_LONG)

    if not message.strip():
        return ValidationResult(False, MESSAGE_EMPTY)

    return ValidationResult(True)


def require_valid_message(message: Any) -> str:
    """Return the message unchanged, or raise ValidationError with the reason."""
    result = validate_message(message)
    if not result.is_valid:
        raise ValidationError(result.error)
    return message
