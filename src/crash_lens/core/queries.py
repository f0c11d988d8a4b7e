"""Report-level use cases shared by the CLI, MCP and REST surfaces."""

from __future__ import annotations

import json

from crash_lens.core.bounding import bound_response, serialize_error
from crash_lens.core.index import build_index_json
from crash_lens.core.ports.reports import ReportStore
from crash_lens.core.sections import NESTED_TOO_DEEPLY, clamp_max_chars, get_section_json
from crash_lens.enrich.enricher import SourceContextEnricher
from crash_lens.models import WhereClause

SOURCE_CONTEXT_PATH = "analysis.sourceContext"


async def query_reports(store: ReportStore) -> list[str]:
    return await store.list_reports()


async def query_index(store: ReportStore, report_id: str) -> str:
    return build_index_json(await store.load_report(report_id))


async def query_section(
    store: ReportStore,
    report_id: str,
    path: str,
    *,
    limit: int | None = None,
    cursor: str | None = None,
    max_chars: int | None = None,
    page_kind: str | None = None,
    select: list[str] | None = None,
    where: WhereClause | None = None,
) -> str:
    report_json = await store.load_report(report_id)
    return get_section_json(
        report_json,
        path,
        limit=limit,
        cursor=cursor,
        max_chars=max_chars,
        page_kind=page_kind,
        select=select,
        where=where,
    )


async def query_source_context(
    store: ReportStore,
    report_id: str,
    enricher: SourceContextEnricher,
    *,
    max_chars: int | None = None,
) -> str:
    """Run an enrichment pass and return the summary entries as a bounded response."""
    report_json = await store.load_report(report_id)
    budget = clamp_max_chars(max_chars)
    try:
        document = json.loads(report_json)
    except (ValueError, RecursionError) as exc:
        message = f"Report JSON could not be parsed: {exc}"
        return serialize_error(SOURCE_CONTEXT_PATH, "invalid_argument", message, budget)
    analysis = document.get("analysis") if isinstance(document, dict) else None
    entries = []
    if isinstance(analysis, dict):
        try:
            result = await enricher.enrich(analysis)
        except RecursionError:
            return serialize_error(SOURCE_CONTEXT_PATH, "invalid_argument", NESTED_TOO_DEEPLY, budget)
        entries = [entry.to_json_dict() for entry in result.entries]
    response = {"path": SOURCE_CONTEXT_PATH, "value": entries}
    return bound_response(response, budget, path=SOURCE_CONTEXT_PATH, value=entries)
