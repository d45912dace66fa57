"""Error taxonomy and user-facing error text.

Tool-level errors are raised inside handlers and converted into failed
:class:`~codeloom.tools.ToolResult` values by the executor.  Provider
errors are translated into actionable messages before they reach the
presentation layer.
"""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from codeloom.message import ApiError, ApiErrorResponse


class CodeloomError(Exception):
    """Base for all codeloom errors."""


class ToolRegistrationError(CodeloomError):
    """A tool definition was rejected when it was registered."""


class ToolParseError(CodeloomError):
    """Tool-call arguments were not a JSON object."""


class UnknownToolError(CodeloomError):
    def __init__(self, name: str):
        super().__init__(f"Unknown tool: {name}")
        self.name = name


class MissingArgumentError(CodeloomError):
    def __init__(self, argument: str):
        super().__init__(f"Missing required argument: {argument}")
        self.argument = argument


class InvalidArgumentError(CodeloomError):
    def __init__(self, argument: str, reason: str):
        super().__init__(f"Invalid argument {argument}: {reason}")
        self.argument = argument
        self.reason = reason


class RepositoryError(CodeloomError):
    """A project repository operation failed.

    The collaborator's message is carried through unchanged.
    """


class ProviderError(CodeloomError):
    """A model provider request failed.

    Args:
        message: Actionable, user-facing description.
        status_code: HTTP status, when the failure came from a response.
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class NetworkError(ProviderError):
    """The request never produced a response (timeout, connection reset)."""


INVALID_API_KEY = "Invalid API key. Please check your API key in Settings."
INSUFFICIENT_CREDITS = (
    "Insufficient credits. Please add credits to your account."
)
RATE_LIMITED = "Rate limit exceeded. Please try again later."
SERVICE_UNAVAILABLE = (
    "Service temporarily unavailable. Please try again later."
)
MODEL_NOT_FOUND = (
    "Model not found. The selected model may not be available. "
    "Please try a different model."
)
TIMED_OUT = "The request timed out. Please try again."

_STATUS_MESSAGES = {
    401: INVALID_API_KEY,
    402: INSUFFICIENT_CREDITS,
    429: RATE_LIMITED,
    503: SERVICE_UNAVAILABLE,
}


def extract_error_message(body: Any) -> str | None:
    """Pull ``error.message`` out of a provider error body.

    Accepts the full ``{"error": {...}}`` document, the inner error
    object (which is what the openai SDK keeps on ``APIError.body``) or
    a bare ``{"error": "text"}``.
    """
    try:
        envelope = ApiErrorResponse.model_validate(body)
        error = envelope.error or ApiError.model_validate(body)
    except ValidationError:
        if isinstance(body, dict) and isinstance(body.get("error"), str):
            return body["error"] or None
        return None
    return error.message or None


def describe_http_error(status_code: int, body: Any = None) -> str:
    """Translate an HTTP failure into text a user can act on."""
    if status_code in _STATUS_MESSAGES:
        return _STATUS_MESSAGES[status_code]

    raw = extract_error_message(body)
    if raw is None:
        return f"Request failed with status {status_code}"

    lowered = raw.lower()
    if "does not exist" in lowered or "not found" in lowered:
        return MODEL_NOT_FOUND
    if "api key" in lowered:
        return INVALID_API_KEY
    return raw


def describe_network_error(exc: BaseException, timed_out: bool = False) -> str:
    if timed_out:
        return TIMED_OUT
    detail = str(exc).strip()
    return f"Network error: {detail}" if detail else "Network error"
