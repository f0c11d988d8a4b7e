"""Shared fixtures and helpers for tests."""

import json
from pathlib import Path
from typing import Any

import pytest

from crash_lens.store.memory import InMemoryReportStore

_REPO_ROOT = Path(__file__).parent.parent


# ---------------------------------------------------------------------------
# Auto-marker: tag tests as "unit" or "integration" based on directory
# ---------------------------------------------------------------------------


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        test_path = Path(str(item.fspath))
        rel = test_path.relative_to(_REPO_ROOT / "tests")
        parts = rel.parts
        if parts and parts[0] == "integration":
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


# ---------------------------------------------------------------------------
# Report builders
# ---------------------------------------------------------------------------


def make_frame(
    number: int,
    function: str = "App.Program.Main",
    *,
    line: int | None = 10,
    source_file: str | None = None,
    source_url: str | None = None,
    source_raw_url: str | None = None,
    managed: bool = True,
) -> dict[str, Any]:
    frame: dict[str, Any] = {
        "frameNumber": number,
        "function": function,
        "module": "App.dll",
        "isManaged": managed,
    }
    if line is not None:
        frame["lineNumber"] = line
    if source_file is not None:
        frame["sourceFile"] = source_file
    if source_url is not None:
        frame["sourceUrl"] = source_url
    if source_raw_url is not None:
        frame["sourceRawUrl"] = source_raw_url
    return frame


def make_thread(
    thread_id: str, frames: list[dict[str, Any]] | None = None, *, faulting: bool = False
) -> dict[str, Any]:
    return {
        "threadId": thread_id,
        "state": "Running",
        "isFaulting": faulting,
        "callStack": frames if frames is not None else [],
    }


def make_document(thread_count: int = 5) -> dict[str, Any]:
    threads = [make_thread(f"0x{i + 1:x}", [make_frame(0, f"Worker{i}.Run")]) for i in range(thread_count)]
    return {
        "metadata": {"dumpId": "dump-001", "generatedAt": "2026-01-02T03:04:05Z", "version": "1.4.0"},
        "analysis": {
            "summary": {
                "crashType": "Managed exception",
                "severity": "critical",
                "threadCount": thread_count,
                "moduleCount": 3,
                "assemblyCount": 2,
                "description": "The process crashed because of a null reference.",
                "recommendations": ["Check the caller for null arguments."],
                "warnings": ["Symbols missing for libfoo.so"],
            },
            "exception": {"type": "System.NullReferenceException", "message": "Object reference not set."},
            "environment": {"platform": {"os": "Linux", "architecture": "x64"}, "runtime": {"version": "8.0.1"}},
            "threads": {
                "osThreadCount": thread_count,
                "faultingThread": None,
                "all": threads,
            },
            "modules": [
                {"name": "libcoreclr.so", "baseAddress": "0x7f00", "hasSymbols": True},
                {"name": "libSystem.Native.so", "baseAddress": "0x7f10", "hasSymbols": False},
                {"name": "App.dll", "baseAddress": "0x7f20", "hasSymbols": True},
            ],
            "assemblies": {
                "count": 2,
                "items": [
                    {"name": "App", "assemblyVersion": "1.0.0.0", "path": "/app/App.dll"},
                    {"name": "System.Private.CoreLib", "assemblyVersion": "8.0.0.0", "path": "/usr/share/dotnet"},
                ],
            },
            "timeline": {"capturedAtUtc": ""},
        },
    }


def make_deep_report_json(depth: int = 200_000) -> str:
    """Well-formed report text whose analysis nests deeper than the interpreter can recurse."""
    return '{"analysis": {"deep": ' + "[" * depth + "]" * depth + "}}"


def make_deep_list(depth: int = 100_000) -> list[Any]:
    nested: list[Any] = []
    for _ in range(depth):
        nested = [nested]
    return nested


@pytest.fixture
def document() -> dict[str, Any]:
    return make_document()


@pytest.fixture
def report_json(document: dict[str, Any]) -> str:
    return json.dumps(document)


@pytest.fixture
def report_store(document: dict[str, Any]) -> InMemoryReportStore:
    return InMemoryReportStore({"dump-001": json.dumps(document)})


@pytest.fixture
def report_file(tmp_path: Path, document: dict[str, Any]) -> Path:
    path = tmp_path / "dump-001.json"
    path.write_text(json.dumps(document), encoding="utf-8")
    return path
