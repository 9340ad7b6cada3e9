"""Correlation identifiers for tool invocations and JSON-RPC requests."""

import itertools
import time
import uuid

_rpc_counter = itertools.count(1)


def new_correlation_id() -> str:
    """Return a unique id linking a tool call to its confirmation, execution and events."""
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:12]}"


def next_request_id() -> int:
    """Return the next JSON-RPC request id for this process."""
    return next(_rpc_counter)
