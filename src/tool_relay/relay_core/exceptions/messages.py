"""Render terminal errors as short, categorized messages for the user."""

from typing import Any, Optional

from .exceptions import NetworkError, SchemaError

SCHEMA_MESSAGE = "Tool configuration error. Please check the MCP server status and restart the app."
CREDENTIAL_MESSAGE = "Invalid API key. Please check the API key in your settings."
RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please try again later."
QUOTA_MESSAGE = "API quota exceeded. Please check your billing or try a local model."
NETWORK_MESSAGE = "Network error. Please check your internet connection."
BAD_REQUEST_MESSAGE = "Bad request. Please check your provider settings or try disabling tools."
FALLBACK_MESSAGE = "Chat request failed"

_QUOTA_CODES = {"insufficient_quota", "RESOURCE_EXHAUSTED", "quota_exceeded"}


def _status_of(exc: BaseException) -> Optional[int]:
    # openai uses status_code, google-genai uses an integer code
    status = getattr(exc, "status_code", None)
    if status is None:
        status = getattr(exc, "code", None)
    return status if isinstance(status, int) else None


def _error_code_of(exc: BaseException) -> Optional[str]:
    for attr in ("code", "status"):
        value: Any = getattr(exc, attr, None)
        if isinstance(value, str):
            return value
    body = getattr(exc, "body", None)
    if isinstance(body, dict):
        code = body.get("code") or body.get("type")
        if isinstance(code, str):
            return code
    return None


def describe_error(exc: BaseException) -> str:
    """Map an exception onto a short user-facing message.

    Known provider signatures (tool schema rejection, invalid credentials, rate
    limits, exhausted quota, network failures, bad requests) are matched on
    structured attributes. Anything else falls back to the raw message text.

    Args:
        exc: The exception that ended the turn.

    Returns:
        The message to show to the user.
    """
    if isinstance(exc, SchemaError):
        return SCHEMA_MESSAGE

    if isinstance(exc, (NetworkError, ConnectionError)):
        return NETWORK_MESSAGE

    status = _status_of(exc)
    code = _error_code_of(exc)

    if code in _QUOTA_CODES:
        return QUOTA_MESSAGE
    if status in (401, 403):
        return CREDENTIAL_MESSAGE
    if status == 429:
        return RATE_LIMIT_MESSAGE
    if status == 400:
        return BAD_REQUEST_MESSAGE

    return str(exc) or FALLBACK_MESSAGE
