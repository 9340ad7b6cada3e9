"""Auto-approval predicates deciding which tool calls skip human confirmation."""

from typing import Any, Callable, Iterable, Mapping, Optional, Sequence

AutoApproveRule = Callable[[str, Mapping[str, Any]], bool]

DEFAULT_MARKERS: Sequence[str] = ("list", "get")
DEFAULT_SKIP_FLAG = "skip_confirmation"


def marker_policy(markers: Iterable[str] = DEFAULT_MARKERS, skip_flag: Optional[str] = DEFAULT_SKIP_FLAG) -> AutoApproveRule:
    """Approve tools whose name contains a read-only marker, or calls carrying a truthy skip flag.

    The substring match is coarse: a mutating tool whose name happens to contain
    ``get`` is approved too. Prefer :func:`allow_list_policy` where the tool set is known.
    """
    lowered = tuple(marker.lower() for marker in markers)

    def rule(name: str, args: Mapping[str, Any]) -> bool:
        if skip_flag and isinstance(args, Mapping) and args.get(skip_flag):
            return True
        tool_name = (name or "").lower()
        return any(marker in tool_name for marker in lowered)

    return rule


def allow_list_policy(names: Iterable[str], skip_flag: Optional[str] = DEFAULT_SKIP_FLAG) -> AutoApproveRule:
    """Approve exactly the named tools, plus calls carrying a truthy skip flag."""
    allowed = frozenset(names)

    def rule(name: str, args: Mapping[str, Any]) -> bool:
        if skip_flag and isinstance(args, Mapping) and args.get(skip_flag):
            return True
        return name in allowed

    return rule


def never_approve(name: str, args: Mapping[str, Any]) -> bool:
    return False


default_auto_approve: AutoApproveRule = marker_policy()
