"""
Sanitizing of MCP tool input schemas for the Google Gemini API.

Gemini validates function declarations more strictly than the MCP servers
describing them: keywords outside its OpenAPI subset are rejected, and so is a
``required`` entry naming a property that is not declared.
"""

from functools import singledispatch
from typing import Any, Dict, Set, cast

UNSUPPORTED_KEYWORDS = frozenset({"additionalProperties", "$schema", "$id", "examples", "const"})


def sanitize(schema: Dict[str, Any]) -> Dict[str, Any]:
    """
    Performs all necessary, recursive sanitization steps on a tool schema.

    Args:
        schema: The tool input schema to sanitize.

    Returns:
        A sanitized schema dictionary ready for a Gemini function declaration.
    """
    return cast(Dict[str, Any], _recursive_sanitize(schema, set()))


@singledispatch
def _recursive_sanitize(schema: Any, seen: Set[int]) -> Any:
    # Scalars are kept as they are.
    return schema


@_recursive_sanitize.register(dict)
def _(schema: dict, seen: Set[int]) -> dict:
    obj_id = id(schema)
    if obj_id in seen:
        return schema
    seen.add(obj_id)

    pruned = _prune_required(schema)
    result = {}
    for key, value in pruned.items():
        if key in UNSUPPORTED_KEYWORDS:
            continue
        if key == "properties" and isinstance(value, dict):
            # Property names are user data, never keywords.
            result[key] = {name: _recursive_sanitize(prop, seen) for name, prop in value.items()}
        else:
            result[key] = _recursive_sanitize(value, seen)

    seen.remove(obj_id)
    return result


@_recursive_sanitize.register(list)
def _(schema: list, seen: Set[int]) -> list:
    obj_id = id(schema)
    if obj_id in seen:
        return schema
    seen.add(obj_id)

    result = [_recursive_sanitize(item, seen) for item in schema]

    seen.remove(obj_id)
    return result


def _prune_required(params: Dict[str, Any]) -> Dict[str, Any]:
    """Drop ``required`` entries that name undeclared properties, keeping their order."""
    if "required" not in params or not isinstance(params.get("properties"), dict):
        return params

    pruned = params.copy()
    declared = pruned["properties"]
    required = [name for name in pruned["required"] if name in declared]
    if required:
        pruned["required"] = required
    else:
        pruned.pop("required")
    return pruned
