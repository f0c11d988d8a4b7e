"""Tests for the cursor codec and query fingerprint."""

from __future__ import annotations

import base64
import json

import pytest

from crash_lens.core.cursor import Cursor, decode_cursor, encode_cursor, query_fingerprint
from crash_lens.core.errors import InvalidCursorError
from crash_lens.models import WhereClause


def _raw_token(payload: object) -> str:
    return base64.urlsafe_b64encode(json.dumps(payload).encode()).decode().rstrip("=")


class TestCursorCodec:
    def test_encode_decode(self) -> None:
        cursor = Cursor("analysis.threads.all", 2, 2, "array", "abcd")
        assert decode_cursor(encode_cursor(cursor)) == cursor

    def test_token_is_url_safe(self) -> None:
        token = encode_cursor(Cursor("analysis.modules", 100, 50, "array", query_fingerprint("array")))
        assert "=" not in token
        assert "+" not in token
        assert "/" not in token

    def test_missing_kind_defaults_to_array(self) -> None:
        cursor = decode_cursor(_raw_token({"path": "analysis.modules", "offset": 1, "limit": 5}))
        assert cursor.kind == "array"
        assert cursor.query_hash is None

    @pytest.mark.parametrize(
        "token",
        [
            "not base64!!",
            _raw_token([1, 2, 3]),
            _raw_token({"path": "", "offset": 0, "limit": 1}),
            _raw_token({"path": "analysis.x", "offset": "0", "limit": 1}),
            _raw_token({"path": "analysis.x", "offset": True, "limit": 1}),
            _raw_token({"path": "analysis.x", "offset": 0, "limit": 1, "kind": "table"}),
            _raw_token({"path": "analysis.x", "offset": 0, "limit": 1, "queryHash": 7}),
        ],
    )
    def test_malformed_tokens(self, token: str) -> None:
        with pytest.raises(InvalidCursorError):
            decode_cursor(token)

    def test_overlong_token(self) -> None:
        with pytest.raises(InvalidCursorError, match=r"maximum length \(4096\)"):
            decode_cursor("a" * 4097)


class TestQueryFingerprint:
    def test_is_stable(self) -> None:
        assert query_fingerprint("array", ["a"]) == query_fingerprint("array", ["a"])

    def test_distinguishes_query_shapes(self) -> None:
        base = query_fingerprint("array")
        assert query_fingerprint("object") != base
        assert query_fingerprint("array", ["a"]) != query_fingerprint("array", ["b"])
        where = WhereClause(field="state", equals="Running")
        assert query_fingerprint("array", where=where) != base
        assert query_fingerprint("array", where=where) != query_fingerprint(
            "array", where=WhereClause(field="state", equals="Running", case_insensitive=False)
        )
