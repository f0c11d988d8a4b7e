"""Cursor-based pagination tokens for section queries.

Cursors are opaque base64url-encoded JSON records carrying the path, offset, limit and
page kind of the page that follows, plus a fingerprint of the query shape (select,
where and page kind) so a token can only resume the exact query that minted it.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import json
from dataclasses import dataclass
from typing import Any

from crash_lens.core.errors import InvalidCursorError
from crash_lens.core.nodes import stringify_scalar
from crash_lens.models import WhereClause

MAX_CURSOR_CHARS = 4096
PAGE_KINDS = ("array", "object")
_FINGERPRINT_CHARS = 16


@dataclass(frozen=True)
class Cursor:
    path: str
    offset: int
    limit: int
    kind: str = "array"
    query_hash: str | None = None


def query_fingerprint(kind: str, select: list[str] | None = None, where: WhereClause | None = None) -> str:
    """Hash the canonical form of a query shape into a short hex digest."""
    where_part = ""
    if where is not None:
        where_part = json.dumps(
            [where.field, stringify_scalar(where.equals), bool(where.case_insensitive)],
            separators=(",", ":"),
            ensure_ascii=False,
        )
    select_part = json.dumps(list(select or []), separators=(",", ":"), ensure_ascii=False)
    canonical = f"kind={kind}|where={where_part}|select={select_part}"
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:_FINGERPRINT_CHARS]


def encode_cursor(cursor: Cursor) -> str:
    payload: dict[str, Any] = {
        "path": cursor.path,
        "offset": cursor.offset,
        "limit": cursor.limit,
        "kind": cursor.kind,
    }
    if cursor.query_hash is not None:
        payload["queryHash"] = cursor.query_hash
    raw = json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def decode_cursor(token: str) -> Cursor:
    """Decode a cursor token, validating every field.

    Raises ``InvalidCursorError`` if the token is malformed or any field is out of shape.
    """
    if len(token) > MAX_CURSOR_CHARS:
        raise InvalidCursorError(f"Cursor exceeds maximum length ({MAX_CURSOR_CHARS}).")
    try:
        padded = token + "=" * (-len(token) % 4)
        payload = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8"))
    except (ValueError, UnicodeError, binascii.Error) as exc:
        raise InvalidCursorError(f"Malformed cursor: {exc}") from exc

    if not isinstance(payload, dict):
        raise InvalidCursorError("Cursor payload is invalid.")

    path = payload.get("path")
    offset = payload.get("offset")
    limit = payload.get("limit")
    kind = payload.get("kind", "array")
    query_hash = payload.get("queryHash")

    if not isinstance(path, str) or not path.strip():
        raise InvalidCursorError("Cursor payload is invalid.")
    if isinstance(offset, bool) or not isinstance(offset, int):
        raise InvalidCursorError("Cursor offset is invalid.")
    if isinstance(limit, bool) or not isinstance(limit, int):
        raise InvalidCursorError("Cursor limit is invalid.")
    if kind not in PAGE_KINDS:
        raise InvalidCursorError(f"Cursor kind '{kind}' is invalid.")
    if query_hash is not None and not isinstance(query_hash, str):
        raise InvalidCursorError("Cursor query hash is invalid.")

    return Cursor(path=path, offset=offset, limit=limit, kind=kind, query_hash=query_hash)
