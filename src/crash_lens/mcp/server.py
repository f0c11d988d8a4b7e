"""FastMCP server exposing crash report tools."""

from __future__ import annotations

from fastmcp import FastMCP

from crash_lens.config import EnricherSettings
from crash_lens.core.ports.reports import ReportNotFoundError, ReportStore
from crash_lens.core.queries import query_index, query_reports, query_section, query_source_context
from crash_lens.enrich.enricher import SourceContextEnricher
from crash_lens.models import WhereClause

_INSTRUCTIONS = (
    "Read large crash reports section by section. Start with report_index, then expand paths with report_get. "
    "Follow page.nextCursor to continue a page; keep the same select/where/pageKind when you do."
)


def _not_found(report_id: str) -> str:
    return f"Error: report '{report_id}' not found."


def create_mcp_server(store: ReportStore, enricher: SourceContextEnricher | None = None) -> FastMCP:
    """Create a FastMCP server wired to the given report store."""

    mcp = FastMCP("crash-lens", instructions=_INSTRUCTIONS)
    source_enricher = enricher or SourceContextEnricher(EnricherSettings.from_env())

    @mcp.tool()
    async def list_reports() -> list[str]:
        """List available report ids."""
        return await query_reports(store)

    @mcp.tool()
    async def report_index(report_id: str) -> str:
        """Return the report's metadata, factual summary, table of contents and expansion hints."""
        try:
            return await query_index(store, report_id)
        except ReportNotFoundError:
            return _not_found(report_id)

    @mcp.tool()
    async def report_get(
        report_id: str,
        path: str,
        limit: int | None = None,
        cursor: str | None = None,
        max_chars: int | None = None,
        page_kind: str | None = None,
        select: list[str] | None = None,
        where: WhereClause | None = None,
    ) -> str:
        """Fetch one section of a report by dot-path, e.g. ``analysis.threads.all[0]``.

        Arrays (and objects with ``page_kind`` "object" or "auto") are paged; pass the returned
        ``page.nextCursor`` back as ``cursor`` to continue.
        """
        try:
            return await query_section(
                store,
                report_id,
                path,
                limit=limit,
                cursor=cursor,
                max_chars=max_chars,
                page_kind=page_kind,
                select=select,
                where=where,
            )
        except ReportNotFoundError:
            return _not_found(report_id)

    @mcp.tool()
    async def report_enrich(report_id: str, max_chars: int | None = None) -> str:
        """Attach source code context to the report's most relevant frames and return the entries."""
        try:
            return await query_source_context(store, report_id, source_enricher, max_chars=max_chars)
        except ReportNotFoundError:
            return _not_found(report_id)

    return mcp
