"""Tests for size-bounded responses and too_large guidance."""

from __future__ import annotations

import json
from typing import Any

import pytest

from crash_lens.core.bounding import (
    GENERIC_TOO_LARGE,
    bound_response,
    build_local_toc,
    build_preview,
    serialize_error,
    suggest_paths,
)
from crash_lens.core.sections import get_section


def _large_document(count: int = 400) -> dict[str, Any]:
    frames = [{"frameNumber": i, "function": f"Namespace.Type.Method{i}", "module": "App.dll"} for i in range(20)]
    threads = [{"threadId": f"0x{i:x}", "callStack": frames} for i in range(count)]
    return {"analysis": {"threads": {"all": threads}, "exception": {"type": "X"}}}


class TestBoundResponse:
    def test_small_response_is_returned_as_is(self) -> None:
        text = bound_response({"path": "analysis.x", "value": 1}, 1000, path="analysis.x", value=1)
        assert json.loads(text) == {"path": "analysis.x", "value": 1}

    @pytest.mark.parametrize("max_chars", [1_000, 2_500, 8_000, 20_000])
    def test_never_exceeds_budget(self, max_chars: int) -> None:
        document = _large_document()
        text = get_section(document, "analysis.threads", max_chars=max_chars)
        assert len(text) <= max_chars
        body = json.loads(text)
        assert body["error"]["code"] == "too_large"

    def test_guidance_describes_the_section(self) -> None:
        document = _large_document()
        body = json.loads(get_section(document, "analysis.threads.all", limit=200, max_chars=20_000))
        assert body["error"]["message"].startswith("Response exceeds maxChars (20000).")
        extra = body["extra"]
        assert extra["estimatedChars"] > 20_000
        assert extra["suggestedPaths"][0] == "analysis.threads.all[0]"
        assert any("limit=5" in example for example in extra["examples"])

    def test_high_value_fields_are_suggested_first(self) -> None:
        value = {"zeta": 1, "exception": {}, "alpha": 2}
        assert suggest_paths("analysis", value)[:3] == ["analysis.exception", "analysis.zeta", "analysis.alpha"]

    def test_scalar_suggests_base_path(self) -> None:
        assert suggest_paths("analysis.x", "long text") == ["analysis.x"]

    def test_falls_back_to_generic_error(self) -> None:
        path = "analysis." + "x" * 300
        text = bound_response({"path": path, "value": "y" * 5000}, 90, path=path, value="y" * 5000)
        assert text == GENERIC_TOO_LARGE


class TestGuidanceParts:
    def test_local_toc_is_capped(self) -> None:
        entries, truncated = build_local_toc("analysis.modules", list(range(100)))
        assert len(entries) == 64
        assert truncated is True
        assert entries[0] == {"path": "analysis.modules[0]", "type": "number"}

    def test_preview_has_head_and_tail(self) -> None:
        text = "a" * 5000 + "z" * 5000
        preview = build_preview(text, 8_000)
        assert preview.startswith("a" * 100)
        assert preview.endswith("z" * 100)
        assert "[truncated preview, total 10000 chars]" in preview

    def test_preview_of_short_text_is_unchanged(self) -> None:
        assert build_preview("short", 20_000) == "short"


def test_serialize_error_shape() -> None:
    body = json.loads(serialize_error("analysis.x", "invalid_argument", "bad", 1000))
    assert body == {"path": "analysis.x", "error": {"code": "invalid_argument", "message": "bad"}}
