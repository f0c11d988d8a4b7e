from typing import Any

from crash_lens.core.nodes import get_int, get_str

_PLACEHOLDER_FUNCTIONS = frozenset({"[runtime]", "[managedmethod]"})
_PLACEHOLDER_PREFIXES = ("[jit code @", "[native code @")
SOURCE_FIELDS = ("sourceFile", "sourceUrl", "sourceRawUrl")


def is_meaningful_frame(frame: Any) -> bool:
    """Return False for placeholder frames such as ``[Runtime]`` or ``[JIT Code @ 0x...]``."""
    function = get_str(frame, "function")
    if function is None or not function.strip():
        return False
    normalized = function.strip().lower()
    if normalized in _PLACEHOLDER_FUNCTIONS:
        return False
    return not normalized.startswith(_PLACEHOLDER_PREFIXES)


def has_source_location(frame: Any) -> bool:
    return any((get_str(frame, name) or "").strip() for name in SOURCE_FIELDS)


def positive_line_number(frame: Any) -> int | None:
    line = get_int(frame, "lineNumber")
    return line if line is not None and line > 0 else None
