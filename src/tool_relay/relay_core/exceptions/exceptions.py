"""
Custom exception classes for the tool relay.

This module defines the hierarchy of errors raised while confirming, repairing,
executing and streaming tool calls.
"""

from typing import Optional


class ToolRelayError(Exception):
    """Base exception for all relay errors."""

    kind: str = "relay"


class OperationCancelledError(ToolRelayError):
    """Raised when the turn's cancellation token fires before an operation settles."""

    kind = "cancelled"


class ConfirmationTimeoutError(ToolRelayError):
    """Raised when a confirmation request received no answer in time."""

    kind = "timeout"


class DuplicateRequestError(ToolRelayError):
    """Raised when a confirmation or execution is already outstanding for an id."""

    kind = "duplicate_request"


class NetworkError(ToolRelayError):
    """Raised when the remote tool endpoint or the model provider cannot be reached."""

    kind = "network"


class RemoteError(ToolRelayError):
    """Raised when the remote endpoint reports an application error."""

    kind = "remote"

    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class SchemaError(ToolRelayError):
    """Raised when the model provider rejects the attached tool definitions."""

    kind = "schema"

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RepairFailedError(ToolRelayError):
    """Raised when a malformed tool call cannot be coerced into a valid one."""

    kind = "repair_failed"


class InvalidTransitionError(ToolRelayError):
    """Raised when a tool call state machine receives an event its state does not accept."""

    kind = "invalid_transition"


class ToolRegistrationError(ToolRelayError):
    """Raised when a remote tool cannot be registered."""

    kind = "registration"
