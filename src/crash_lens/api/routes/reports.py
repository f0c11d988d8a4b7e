from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from crash_lens.api.dependencies import get_enricher, get_report_store
from crash_lens.api.schemas import ReportListResponse
from crash_lens.core.ports.reports import ReportNotFoundError, ReportStore
from crash_lens.core.queries import query_index, query_reports, query_section, query_source_context
from crash_lens.enrich.enricher import SourceContextEnricher
from crash_lens.models import WhereClause

router = APIRouter(prefix="/reports", tags=["reports"])


def _json(text: str) -> Response:
    # envelopes are already serialized and size-bounded; re-encoding would change their length
    return Response(content=text, media_type="application/json")


def _not_found(report_id: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Report '{report_id}' not found.")


@router.get("", response_model=ReportListResponse)
async def list_reports(store: ReportStore = Depends(get_report_store)) -> ReportListResponse:
    return ReportListResponse(reports=await query_reports(store))


@router.get("/{report_id}/index")
async def report_index(report_id: str, store: ReportStore = Depends(get_report_store)) -> Response:
    try:
        return _json(await query_index(store, report_id))
    except ReportNotFoundError as exc:
        raise _not_found(report_id) from exc


@router.get("/{report_id}/section")
async def report_section(
    report_id: str,
    path: str,
    limit: int | None = None,
    cursor: str | None = None,
    max_chars: Annotated[int | None, Query(alias="maxChars")] = None,
    page_kind: Annotated[str | None, Query(alias="pageKind")] = None,
    select: Annotated[list[str] | None, Query()] = None,
    where_field: Annotated[str | None, Query(alias="whereField")] = None,
    where_equals: Annotated[str | None, Query(alias="whereEquals")] = None,
    case_insensitive: Annotated[bool, Query(alias="caseInsensitive")] = True,
    store: ReportStore = Depends(get_report_store),
) -> Response:
    """Fetch one section of a report. Request errors are returned as a JSON envelope with status 200."""
    if (where_field is None) != (where_equals is None):
        raise HTTPException(
            status_code=422,
            detail="whereField and whereEquals must be given together.",
        )
    where = None
    if where_field is not None and where_equals is not None:
        where = WhereClause(field=where_field, equals=where_equals, case_insensitive=case_insensitive)
    try:
        text = await query_section(
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
    except ReportNotFoundError as exc:
        raise _not_found(report_id) from exc
    return _json(text)


@router.get("/{report_id}/source-context")
async def report_source_context(
    report_id: str,
    max_chars: Annotated[int | None, Query(alias="maxChars")] = None,
    store: ReportStore = Depends(get_report_store),
    enricher: SourceContextEnricher = Depends(get_enricher),
) -> Response:
    """Run a source context pass over the report and return the summary entries."""
    try:
        return _json(await query_source_context(store, report_id, enricher, max_chars=max_chars))
    except ReportNotFoundError as exc:
        raise _not_found(report_id) from exc
