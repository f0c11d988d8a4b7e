"""Kind inspection for parsed JSON trees.

Report documents arrive as plain ``json.loads`` output. Every access point in the
query engine checks the kind of a node before using it instead of assuming shape.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any


class JsonKind(str, Enum):
    NULL = "null"
    BOOLEAN = "boolean"
    NUMBER = "number"
    STRING = "string"
    ARRAY = "array"
    OBJECT = "object"


def json_kind(value: Any) -> JsonKind:
    if value is None:
        return JsonKind.NULL
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return JsonKind.BOOLEAN
    if isinstance(value, (int | float)):
        return JsonKind.NUMBER
    if isinstance(value, str):
        return JsonKind.STRING
    if isinstance(value, list):
        return JsonKind.ARRAY
    if isinstance(value, dict):
        return JsonKind.OBJECT
    raise TypeError(f"Unsupported JSON node type: {type(value).__name__}")


def get_str(obj: Any, key: str) -> str | None:
    """Return ``obj[key]`` when ``obj`` is an object and the member is a string."""
    if not isinstance(obj, dict):
        return None
    value = obj.get(key)
    return value if isinstance(value, str) else None


def get_int(obj: Any, key: str) -> int | None:
    if not isinstance(obj, dict):
        return None
    value = obj.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def get_bool(obj: Any, key: str) -> bool:
    return isinstance(obj, dict) and obj.get(key) is True


def describe_node(path: str, value: Any) -> dict[str, Any]:
    """Build a table-of-contents entry for ``value`` addressed by ``path``."""
    kind = json_kind(value)
    entry: dict[str, Any] = {"path": path, "type": kind.value}
    if kind is JsonKind.ARRAY:
        entry["count"] = len(value)
        entry["pageable"] = True
    elif kind is JsonKind.OBJECT:
        entry["propertyCount"] = len(value)
    return entry


def stringify_scalar(value: Any) -> str | None:
    """Render a scalar the way ``where`` compares it: JSON literals for bools and numbers."""
    if value is None or isinstance(value, (dict | list)):
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int | float)):
        return json.dumps(value)
    return str(value)
