"""Tests for the report index builder."""

from __future__ import annotations

import json
from typing import Any

from crash_lens.core.index import HOW_TO_EXPAND, build_index, build_index_json, build_summary
from tests.conftest import make_deep_report_json


class TestBuildIndex:
    def test_has_all_parts(self, document: dict[str, Any]) -> None:
        index = build_index(document)
        assert set(index) == {"metadata", "summary", "toc", "howToExpand"}
        assert index["metadata"]["dumpId"] == "dump-001"
        assert index["howToExpand"] == list(HOW_TO_EXPAND)

    def test_summary_has_only_facts(self, document: dict[str, Any]) -> None:
        summary = build_summary(document["analysis"])
        assert summary == {
            "crashType": "Managed exception",
            "exceptionType": "System.NullReferenceException",
            "severity": "critical",
            "threadCount": 5,
            "moduleCount": 3,
            "assemblyCount": 2,
            "warnings": ["Symbols missing for libfoo.so"],
        }

    def test_toc_lists_analysis_children_then_nested_paths(self, document: dict[str, Any]) -> None:
        toc = build_index(document)["toc"]
        paths = [entry["path"] for entry in toc]
        assert paths[: len(document["analysis"])] == [f"analysis.{name}" for name in document["analysis"]]
        assert "analysis.threads.all" in paths
        assert "analysis.assemblies.items" in paths
        assert "analysis.security" not in paths
        assert len(paths) == len(set(paths))

    def test_toc_entries_describe_shape(self, document: dict[str, Any]) -> None:
        toc = {entry["path"]: entry for entry in build_index(document)["toc"]}
        assert toc["analysis.modules"] == {"path": "analysis.modules", "type": "array", "count": 3, "pageable": True}
        assert toc["analysis.exception"] == {"path": "analysis.exception", "type": "object", "propertyCount": 2}
        assert toc["analysis.threads.faultingThread"]["type"] == "null"

    def test_hints_name_agent_and_cli_forms(self) -> None:
        for hint in HOW_TO_EXPAND:
            assert "report_get(" in hint
            assert "crash-lens get" in hint

    def test_document_without_analysis(self) -> None:
        index = build_index({"metadata": {"dumpId": "x"}})
        assert index["toc"] == []
        assert "summary" not in index


class TestBuildIndexJson:
    def test_serializes_index(self, report_json: str) -> None:
        assert json.loads(build_index_json(report_json))["metadata"]["dumpId"] == "dump-001"

    def test_malformed_input_is_returned_unchanged(self) -> None:
        assert build_index_json("{oops") == "{oops"
        assert build_index_json("[1, 2]") == "[1, 2]"

    def test_deeply_nested_input_is_returned_unchanged(self) -> None:
        report_json = make_deep_report_json()
        assert build_index_json(report_json) is report_json
