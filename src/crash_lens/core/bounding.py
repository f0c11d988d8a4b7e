"""Size-bounded serialization of section responses.

When a response does not fit the caller's character budget it is replaced by a
``too_large`` error carrying guidance: a table of contents of the section's children,
narrower paths to try, example follow-up calls and a head/tail preview. Guidance is
shrunk step by step until it fits.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from crash_lens.core.nodes import describe_node
from crash_lens.core.paths import child_path

logger = logging.getLogger(__name__)

MAX_TOC_ENTRIES = 64
MAX_SUGGESTED_PATHS = 10
TOP_SUGGESTIONS = 5
PREVIEW_MIN_CHARS = 64
PREVIEW_MAX_CHARS = 2048

HIGH_VALUE_FIELDS = (
    "exception",
    "faultingThread",
    "callStack",
    "all",
    "items",
    "summary",
    "type",
    "message",
    "stackTrace",
    "innerException",
    "threads",
    "modules",
    "assemblies",
    "environment",
    "memory",
    "security",
    "synchronization",
    "findings",
)

GENERIC_TOO_LARGE = '{"error": {"code": "too_large", "message": "Error response exceeded maxChars."}}'


def serialize(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False)


def _try_serialize(payload: Any) -> str | None:
    try:
        return serialize(payload)
    except (TypeError, ValueError, RecursionError):
        logger.debug("Response payload could not be serialized", exc_info=True)
        return None


def _minimal_error(path: str, max_chars: int) -> str:
    error = {"code": "too_large", "message": "Error response exceeded maxChars."}
    text = _try_serialize({"path": path, "error": error})
    if text is None or len(text) > max_chars:
        return GENERIC_TOO_LARGE
    return text


def serialize_error(path: str, code: str, message: str, max_chars: int, extra: dict[str, Any] | None = None) -> str:
    payload: dict[str, Any] = {"path": path, "error": {"code": code, "message": message}}
    if extra:
        payload["extra"] = extra
    text = _try_serialize(payload)
    if text is not None and len(text) <= max_chars:
        return text
    return _minimal_error(path, max_chars)


def _children(path: str, value: Any) -> list[tuple[str, Any]]:
    if isinstance(value, dict):
        return [(child_path(path, key), child) for key, child in value.items()]
    if isinstance(value, list):
        return [(child_path(path, i), child) for i, child in enumerate(value)]
    return []


def build_local_toc(path: str, value: Any) -> tuple[list[dict[str, Any]], bool]:
    """Describe the immediate children of ``value``; returns ``(entries, truncated)``."""
    children = _children(path, value)
    entries = [describe_node(child, node) for child, node in children[:MAX_TOC_ENTRIES]]
    return entries, len(children) > MAX_TOC_ENTRIES


def suggest_paths(path: str, value: Any) -> list[str]:
    """Rank narrower paths: well-known fields first, then discovery order, then the base path."""
    suggestions: list[str] = []
    if isinstance(value, dict):
        for name in HIGH_VALUE_FIELDS:
            if name in value:
                suggestions.append(child_path(path, name))
        for key in value:
            candidate = child_path(path, key)
            if candidate not in suggestions:
                suggestions.append(candidate)
    elif isinstance(value, list):
        suggestions.extend(child_path(path, i) for i in range(min(len(value), MAX_SUGGESTED_PATHS)))

    if not suggestions:
        suggestions.append(path)
        if isinstance(value, list) and value:
            suggestions.append(child_path(path, 0))
    return suggestions[:MAX_SUGGESTED_PATHS]


def _ranked_keys(obj: dict[str, Any], count: int) -> list[str]:
    keys = [name for name in HIGH_VALUE_FIELDS if name in obj]
    keys.extend(k for k in obj if k not in keys)
    return keys[:count]


def build_examples(path: str, value: Any, suggestions: list[str], estimated_chars: int) -> list[str]:
    examples: list[str] = []
    if isinstance(value, list):
        examples.append(f'report_get(path="{path}", limit=5)')
        first = value[0] if value else None
        if isinstance(first, dict) and first:
            fields = ", ".join(f'"{k}"' for k in _ranked_keys(first, 3))
            examples.append(f'report_get(path="{path}", limit=20, select=[{fields}])')
    elif isinstance(value, dict):
        examples.append(f'report_get(path="{path}", pageKind="object", limit=10)')
        if value:
            fields = ", ".join(f'"{k}"' for k in _ranked_keys(value, 3))
            examples.append(f'report_get(path="{path}", select=[{fields}])')
    else:
        examples.append(f'report_get(path="{path}", maxChars={min(2_000_000, estimated_chars + 1_000)})')

    for suggestion in suggestions:
        if len(examples) >= 3:
            break
        if suggestion != path:
            examples.append(f'report_get(path="{suggestion}")')
            break
    return examples[:3]


def build_preview(text: str, max_chars: int) -> str:
    size = max(PREVIEW_MIN_CHARS, min(PREVIEW_MAX_CHARS, max_chars // 8))
    if len(text) <= size:
        return text
    head = size // 2
    tail = size - head
    return f"{text[:head]}\n... [truncated preview, total {len(text)} chars] ...\n{text[-tail:]}"


def bound_response(response: dict[str, Any], max_chars: int, *, path: str, value: Any) -> str:
    """Serialize ``response`` or, when it exceeds ``max_chars``, a ``too_large`` error with guidance.

    ``value`` is the resolved section the response was built from; guidance describes it.
    """
    text = _try_serialize(response)
    if text is not None and len(text) <= max_chars:
        return text

    estimated = len(text) if text is not None else 0
    message = f"Response exceeds maxChars ({max_chars}). Narrow the path, reduce limit, or use select."
    toc, toc_truncated = build_local_toc(path, value)
    suggestions = suggest_paths(path, value)
    examples = build_examples(path, value, suggestions, estimated)
    preview = build_preview(text or "", max_chars)

    full: dict[str, Any] = {"estimatedChars": estimated, "toc": toc}
    if toc_truncated:
        full["tocTruncated"] = True
    full.update({"suggestedPaths": suggestions, "examples": examples, "preview": preview})
    without_toc = {k: v for k, v in full.items() if k not in ("toc", "tocTruncated")}
    top_only = {"estimatedChars": estimated, "suggestedPaths": suggestions[:TOP_SUGGESTIONS]}

    for extra in (full, without_toc, top_only):
        payload = {"path": path, "error": {"code": "too_large", "message": message}, "extra": extra}
        candidate = _try_serialize(payload)
        if candidate is not None and len(candidate) <= max_chars:
            logger.debug("Section %s exceeded %d chars (%d); returned guidance", path, max_chars, estimated)
            return candidate

    return _minimal_error(path, max_chars)
