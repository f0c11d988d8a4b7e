"""Paging, filtering and projection of resolved report sections."""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any

from crash_lens.core.cursor import Cursor, decode_cursor, encode_cursor, query_fingerprint
from crash_lens.core.errors import InvalidArgumentError, InvalidCursorError
from crash_lens.core.nodes import stringify_scalar
from crash_lens.models import WhereClause

DEFAULT_LIMIT = 50
MAX_LIMIT = 200
MAX_SELECT_FIELDS = 32
MAX_FIELD_CHARS = 64
PAGE_KIND_VALUES = ("array", "object", "auto")


@dataclass(frozen=True)
class Page:
    kind: str
    value: list[Any] | dict[str, Any]
    offset: int
    total: int
    limit: int
    next_cursor: str | None
    filtered_total: int | None = None

    def to_json_dict(self) -> dict[str, Any]:
        page: dict[str, Any] = {"kind": self.kind, "offset": self.offset, "total": self.total}
        if self.filtered_total is not None:
            page["filteredTotal"] = self.filtered_total
        page["limit"] = self.limit
        page["nextCursor"] = self.next_cursor
        return page


def clamp_limit(limit: int | None) -> int:
    if limit is None:
        return DEFAULT_LIMIT
    return max(1, min(int(limit), MAX_LIMIT))


def normalize_page_kind(page_kind: str | None) -> str:
    if page_kind is None or not page_kind.strip():
        return "array"
    normalized = page_kind.strip().lower()
    if normalized not in PAGE_KIND_VALUES:
        raise InvalidArgumentError(f"pageKind must be one of {', '.join(PAGE_KIND_VALUES)}; got '{page_kind}'.")
    return normalized


def normalize_select(select: list[str] | None) -> list[str] | None:
    """Validate and de-duplicate a select list, keeping first-seen order."""
    if not select:
        return None
    fields: list[str] = []
    for name in select:
        if not isinstance(name, str) or not name.strip():
            raise InvalidArgumentError("select entries must be non-empty field names.")
        name = name.strip()
        if len(name) > MAX_FIELD_CHARS:
            raise InvalidArgumentError(f"select field '{name[:16]}…' exceeds maximum length ({MAX_FIELD_CHARS}).")
        if "." in name or "[" in name or "]" in name:
            raise InvalidArgumentError(f"select field '{name}' must be a top-level field name (no '.' or '[').")
        if name not in fields:
            fields.append(name)
    if len(fields) > MAX_SELECT_FIELDS:
        raise InvalidArgumentError(f"select supports at most {MAX_SELECT_FIELDS} fields.")
    return fields


def validate_where(where: WhereClause | None) -> WhereClause | None:
    if where is None:
        return None
    if not where.field or not where.field.strip():
        raise InvalidArgumentError("where.field is required.")
    if len(where.field) > MAX_FIELD_CHARS:
        raise InvalidArgumentError(f"where.field exceeds maximum length ({MAX_FIELD_CHARS}).")
    return where


def matches_where(element: Any, where: WhereClause) -> bool:
    if not isinstance(element, dict) or where.field not in element:
        return False
    actual = stringify_scalar(element[where.field])
    expected = stringify_scalar(where.equals)
    if actual is None or expected is None:
        return False
    if where.case_insensitive:
        return actual.casefold() == expected.casefold()
    return actual == expected


def project(value: Any, select: list[str] | None) -> Any:
    """Restrict an object to ``select`` fields; other values are cloned unchanged."""
    if not select or not isinstance(value, dict):
        return copy.deepcopy(value)
    return {name: copy.deepcopy(value[name]) for name in select if name in value}


def _resolve_cursor(
    token: str,
    *,
    path: str,
    kind: str,
    fingerprint: str,
    default_fingerprint: str,
    length: int,
) -> Cursor:
    cursor = decode_cursor(token)
    if cursor.path != path:
        raise InvalidCursorError(f"Cursor path '{cursor.path}' does not match requested path '{path}'.")
    if cursor.kind != kind:
        raise InvalidCursorError(f"Cursor kind '{cursor.kind}' does not match page kind '{kind}'.")
    # Cursors minted before query hashing existed only ever described the default query.
    cursor_hash = cursor.query_hash if cursor.query_hash is not None else default_fingerprint
    if cursor_hash != fingerprint:
        raise InvalidCursorError("Cursor does not match the current query (select/where/pageKind).")
    if cursor.offset < 0 or cursor.offset > length:
        raise InvalidCursorError("Cursor offset is out of range.")
    return cursor


def page_array(
    path: str,
    items: list[Any],
    *,
    limit: int | None = None,
    cursor: str | None = None,
    select: list[str] | None = None,
    where: WhereClause | None = None,
) -> Page:
    filtered = [item for item in items if matches_where(item, where)] if where is not None else items
    fingerprint = query_fingerprint("array", select, where)

    offset = 0
    resolved_limit = clamp_limit(limit)
    if cursor:
        decoded = _resolve_cursor(
            cursor,
            path=path,
            kind="array",
            fingerprint=fingerprint,
            default_fingerprint=query_fingerprint("array"),
            length=len(filtered),
        )
        offset = decoded.offset
        resolved_limit = clamp_limit(decoded.limit)

    end = min(len(filtered), offset + resolved_limit)
    value = [project(item, select) for item in filtered[offset:end]]
    next_cursor = None
    if end < len(filtered):
        next_cursor = encode_cursor(Cursor(path, end, resolved_limit, "array", fingerprint))

    return Page(
        kind="array",
        value=value,
        offset=offset,
        total=len(items),
        limit=resolved_limit,
        next_cursor=next_cursor,
        filtered_total=len(filtered) if where is not None else None,
    )


def page_object(
    path: str,
    obj: dict[str, Any],
    *,
    limit: int | None = None,
    cursor: str | None = None,
    select: list[str] | None = None,
) -> Page:
    keys = [name for name in select if name in obj] if select else sorted(obj)
    fingerprint = query_fingerprint("object", select)

    offset = 0
    resolved_limit = clamp_limit(limit)
    if cursor:
        decoded = _resolve_cursor(
            cursor,
            path=path,
            kind="object",
            fingerprint=fingerprint,
            default_fingerprint=query_fingerprint("object"),
            length=len(keys),
        )
        offset = decoded.offset
        resolved_limit = clamp_limit(decoded.limit)

    end = min(len(keys), offset + resolved_limit)
    value = {name: copy.deepcopy(obj[name]) for name in keys[offset:end]}
    next_cursor = None
    if end < len(keys):
        next_cursor = encode_cursor(Cursor(path, end, resolved_limit, "object", fingerprint))

    return Page(
        kind="object",
        value=value,
        offset=offset,
        total=len(obj),
        limit=resolved_limit,
        next_cursor=next_cursor,
    )
