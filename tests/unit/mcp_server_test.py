"""Tests for the FastMCP server tools."""

from __future__ import annotations

import json
from typing import Any

import pytest

from crash_lens.config import EnricherSettings
from crash_lens.enrich.enricher import SourceContextEnricher
from crash_lens.mcp.server import create_mcp_server
from crash_lens.models import WhereClause
from crash_lens.store.memory import InMemoryReportStore
from tests.conftest import make_deep_report_json


async def _tool(store: InMemoryReportStore, name: str) -> Any:
    server = create_mcp_server(store, SourceContextEnricher(EnricherSettings()))
    tools = await server.get_tools()
    return tools[name].fn


class TestMcpServer:
    @pytest.mark.asyncio
    async def test_server_name_and_tools(self, report_store: InMemoryReportStore) -> None:
        server = create_mcp_server(report_store)
        assert server.name == "crash-lens"
        tools = await server.get_tools()
        assert set(tools) == {"list_reports", "report_index", "report_get", "report_enrich"}

    @pytest.mark.asyncio
    async def test_list_reports(self, report_store: InMemoryReportStore) -> None:
        assert await (await _tool(report_store, "list_reports"))() == ["dump-001"]

    @pytest.mark.asyncio
    async def test_report_index(self, report_store: InMemoryReportStore) -> None:
        text = await (await _tool(report_store, "report_index"))(report_id="dump-001")
        assert json.loads(text)["metadata"]["dumpId"] == "dump-001"

    @pytest.mark.asyncio
    async def test_report_get_with_where(self, report_store: InMemoryReportStore) -> None:
        report_get = await _tool(report_store, "report_get")
        text = await report_get(
            report_id="dump-001",
            path="analysis.modules",
            select=["name"],
            where=WhereClause(field="name", equals="app.dll"),
        )
        body = json.loads(text)
        assert body["value"] == [{"name": "App.dll"}]
        assert body["page"]["filteredTotal"] == 1

    @pytest.mark.asyncio
    async def test_report_get_pages(self, report_store: InMemoryReportStore) -> None:
        report_get = await _tool(report_store, "report_get")
        first = json.loads(await report_get(report_id="dump-001", path="analysis.threads.all", limit=3))
        rest = json.loads(
            await report_get(report_id="dump-001", path="analysis.threads.all", cursor=first["page"]["nextCursor"])
        )
        assert [t["threadId"] for t in rest["value"]] == ["0x4", "0x5"]
        assert rest["page"]["nextCursor"] is None

    @pytest.mark.asyncio
    async def test_unknown_report(self, report_store: InMemoryReportStore) -> None:
        report_get = await _tool(report_store, "report_get")
        assert await report_get(report_id="nope", path="analysis") == "Error: report 'nope' not found."

    @pytest.mark.asyncio
    async def test_report_enrich(self, report_store: InMemoryReportStore) -> None:
        text = await (await _tool(report_store, "report_enrich"))(report_id="dump-001")
        assert json.loads(text) == {"path": "analysis.sourceContext", "value": []}

    @pytest.mark.asyncio
    async def test_report_enrich_deeply_nested_report(self, report_store: InMemoryReportStore) -> None:
        report_store.add("deep", make_deep_report_json())
        text = await (await _tool(report_store, "report_enrich"))(report_id="deep")
        body = json.loads(text)
        assert body["path"] == "analysis.sourceContext"
        assert body["error"]["code"] == "invalid_argument"
