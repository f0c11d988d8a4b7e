"""Section-addressable access to canonical crash report documents.

A report document is shaped as ``{"metadata": {...}, "analysis": {...}}``. Callers fetch
small subtrees by dot-path (``analysis.exception``, ``analysis.threads.all[0]``) with
cursor paging for arrays and objects, field projection and a single equality filter.
Every response is serialized within a character budget; request errors come back as a
structured envelope instead of an exception.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from crash_lens.core.bounding import bound_response, serialize_error
from crash_lens.core.errors import InvalidArgumentError, InvalidCursorError, SectionQueryError
from crash_lens.core.paging import (
    clamp_limit,
    normalize_page_kind,
    normalize_select,
    page_array,
    page_object,
    project,
    validate_where,
)
from crash_lens.core.paths import MAX_PATH_CHARS, resolve_path
from crash_lens.models import WhereClause

logger = logging.getLogger(__name__)

DEFAULT_MAX_CHARS = 20_000
MIN_MAX_CHARS = 1_000
MAX_MAX_CHARS = 2_000_000
NESTED_TOO_DEEPLY = "Report section is nested too deeply to process."


def clamp_max_chars(max_chars: int | None) -> int:
    if max_chars is None:
        return DEFAULT_MAX_CHARS
    return max(MIN_MAX_CHARS, min(int(max_chars), MAX_MAX_CHARS))


def _wants_object_page(value: dict[str, Any], page_kind: str, limit: int | None, cursor: str | None) -> bool:
    if page_kind == "object":
        return True
    if page_kind != "auto":
        return False
    # auto pages an object once it has more properties than fit on one page
    return bool(cursor) or len(value) > clamp_limit(limit)


def get_section(
    document: Any,
    path: str,
    *,
    limit: int | None = None,
    cursor: str | None = None,
    max_chars: int | None = None,
    page_kind: str | None = None,
    select: list[str] | None = None,
    where: WhereClause | None = None,
) -> str:
    """Resolve ``path`` in ``document`` and return a bounded JSON response string.

    ``path`` is trimmed first, and the trimmed form is what responses and cursors carry.
    """
    budget = clamp_max_chars(max_chars)
    path = (path or "").strip()
    if len(path) > MAX_PATH_CHARS:
        # don't echo an oversized path back into the envelope
        return serialize_error(
            path[:MAX_PATH_CHARS], "invalid_path", f"Path exceeds maximum length ({MAX_PATH_CHARS}).", budget
        )

    try:
        kind = normalize_page_kind(page_kind)
        fields = normalize_select(select)
        where = validate_where(where)
        value = resolve_path(document, path)

        if isinstance(value, list):
            page = page_array(path, value, limit=limit, cursor=cursor, select=fields, where=where)
            response: dict[str, Any] = {"path": path, "value": page.value, "page": page.to_json_dict()}
            return bound_response(response, budget, path=path, value=value)

        if where is not None:
            raise InvalidArgumentError("where is only supported for array values.")

        if isinstance(value, dict) and _wants_object_page(value, kind, limit, cursor):
            page = page_object(path, value, limit=limit, cursor=cursor, select=fields)
            response = {"path": path, "value": page.value, "page": page.to_json_dict()}
            return bound_response(response, budget, path=path, value=value)

        if cursor:
            raise InvalidCursorError("Cursor supplied for a value that is not paged.")

        response = {"path": path, "value": project(value, fields)}
        return bound_response(response, budget, path=path, value=value)
    except SectionQueryError as exc:
        logger.debug("Section request for %s failed: %s (%s)", path, exc, exc.code)
        return serialize_error(path, exc.code, str(exc), budget)
    except RecursionError:
        logger.debug("Section %s is nested too deeply to copy", path)
        return serialize_error(path, "invalid_argument", NESTED_TOO_DEEPLY, budget)


def get_section_json(
    report_json: str,
    path: str,
    *,
    limit: int | None = None,
    cursor: str | None = None,
    max_chars: int | None = None,
    page_kind: str | None = None,
    select: list[str] | None = None,
    where: WhereClause | None = None,
) -> str:
    """Parse ``report_json`` and delegate to :func:`get_section`."""
    try:
        document = json.loads(report_json)
    except (TypeError, ValueError, RecursionError) as exc:
        return serialize_error(
            (path or "").strip()[:MAX_PATH_CHARS],
            "invalid_argument",
            f"Report JSON could not be parsed: {exc}",
            clamp_max_chars(max_chars),
        )
    return get_section(
        document,
        path,
        limit=limit,
        cursor=cursor,
        max_chars=max_chars,
        page_kind=page_kind,
        select=select,
        where=where,
    )
