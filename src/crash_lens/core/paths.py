"""Dot-path parsing and resolution over report documents.

Grammar: ``root ("." name ("[" digits "]")?)*`` with ``root`` one of ``analysis`` or
``metadata``. There is no wildcard or predicate syntax.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from crash_lens.core.errors import InvalidPathError

MAX_PATH_CHARS = 512
MAX_SEGMENTS = 64
ROOTS = ("analysis", "metadata")

_SEGMENT_RE = re.compile(r"^(?P<name>[A-Za-z0-9_$@\-]+)(?:\[(?P<index>[0-9]+)\])?$")


@dataclass(frozen=True)
class PathSegment:
    name: str
    index: int | None = None

    def __str__(self) -> str:
        return self.name if self.index is None else f"{self.name}[{self.index}]"


def parse_path(path: str) -> list[PathSegment]:
    """Split ``path`` into segments.

    Leading and trailing whitespace is trimmed before parsing; whitespace inside the path
    is still rejected by the segment grammar.
    """
    if path is None or not path.strip():
        raise InvalidPathError("Path is required.")
    if len(path) > MAX_PATH_CHARS:
        raise InvalidPathError(f"Path exceeds maximum length ({MAX_PATH_CHARS}).")

    raw_segments = path.strip().split(".")
    if len(raw_segments) > MAX_SEGMENTS:
        raise InvalidPathError(f"Path exceeds maximum segment count ({MAX_SEGMENTS}).")

    segments: list[PathSegment] = []
    for position, raw in enumerate(raw_segments):
        if not raw:
            raise InvalidPathError("Path contains an empty segment.")
        match = _SEGMENT_RE.match(raw)
        if position == 0 and (match is None or match.group("name") not in ROOTS):
            raise InvalidPathError("Only 'analysis.*' and 'metadata.*' paths are supported.")
        if match is None:
            raise InvalidPathError(f"Segment '{raw}' is not a valid path segment.")
        index = match.group("index")
        if position == 0 and index is not None:
            raise InvalidPathError("The path root cannot be indexed.")
        segments.append(PathSegment(match.group("name"), int(index) if index is not None else None))
    return segments


def format_path(segments: list[PathSegment]) -> str:
    return ".".join(str(s) for s in segments)


def child_path(base: str, key: str | int) -> str:
    if isinstance(key, int):
        return f"{base}[{key}]"
    return f"{base}.{key}"


def walk(root: Any, segments: list[PathSegment]) -> Any:
    """Walk parsed segments from the document root, bounds-checking every step."""
    current = root
    for segment in segments:
        if not isinstance(current, dict):
            raise InvalidPathError(
                f"Segment '{segment.name}' cannot be resolved because the current node is not an object."
            )
        if segment.name not in current:
            raise InvalidPathError(f"Property '{segment.name}' not found.")
        current = current[segment.name]
        if segment.index is None:
            continue
        if not isinstance(current, list):
            raise InvalidPathError(f"Segment '{segment.name}' is not an array and cannot be indexed.")
        if segment.index >= len(current):
            raise InvalidPathError(
                f"Index {segment.index} is out of range for '{segment.name}' (length {len(current)})."
            )
        current = current[segment.index]
    return current


def resolve_path(document: Any, path: str) -> Any:
    return walk(document, parse_path(path))


def try_resolve(document: Any, path: str) -> tuple[bool, Any]:
    """Resolve ``path`` without raising; returns ``(found, value)``."""
    try:
        return True, resolve_path(document, path)
    except InvalidPathError:
        return False, None
