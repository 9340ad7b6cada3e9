"""Remote tool execution."""

from .executor import ToolExecutor, normalize_output
from .transport import ToolTransport, HttpJsonRpcTransport, build_call_envelope

__all__ = [
    "ToolExecutor",
    "normalize_output",
    "ToolTransport",
    "HttpJsonRpcTransport",
    "build_call_envelope",
]
