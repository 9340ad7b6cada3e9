"""Export the relay exception hierarchy and the user-facing error renderer."""

from .exceptions import (
    ToolRelayError,
    OperationCancelledError,
    ConfirmationTimeoutError,
    DuplicateRequestError,
    NetworkError,
    RemoteError,
    SchemaError,
    RepairFailedError,
    InvalidTransitionError,
    ToolRegistrationError,
)
from .messages import describe_error

__all__ = [
    "ToolRelayError",
    "OperationCancelledError",
    "ConfirmationTimeoutError",
    "DuplicateRequestError",
    "NetworkError",
    "RemoteError",
    "SchemaError",
    "RepairFailedError",
    "InvalidTransitionError",
    "ToolRegistrationError",
    "describe_error",
]
