"""Confirmation handshake and auto-approval policies."""

from .channel import ConfirmationChannel, DEFAULT_CONFIRMATION_TIMEOUT
from .policy import (
    AutoApproveRule,
    allow_list_policy,
    default_auto_approve,
    marker_policy,
    never_approve,
)

__all__ = [
    "ConfirmationChannel",
    "DEFAULT_CONFIRMATION_TIMEOUT",
    "AutoApproveRule",
    "allow_list_policy",
    "default_auto_approve",
    "marker_policy",
    "never_approve",
]
