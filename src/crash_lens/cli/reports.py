import asyncio
import json
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from crash_lens.config import EnricherSettings
from crash_lens.core.index import build_index_json
from crash_lens.core.sections import get_section_json
from crash_lens.enrich.enricher import SourceContextEnricher
from crash_lens.models import WhereClause

console = Console()
err_console = Console(stderr=True)


def _read_report(report: Path) -> str:
    if not report.is_file():
        err_console.print(f"[red]Report file not found: {report}[/red]")
        raise typer.Exit(1)
    return report.read_text(encoding="utf-8")


def _emit(text: str) -> None:
    # plain print keeps the JSON intact for pipes; rich would wrap long lines
    typer.echo(text)


def index(
    report: Annotated[Path, typer.Argument(help="Path to a canonical report JSON file.")],
) -> None:
    """Print the report index: metadata, summary, table of contents and expansion hints."""
    _emit(build_index_json(_read_report(report)))


def get(
    report: Annotated[Path, typer.Argument(help="Path to a canonical report JSON file.")],
    path: Annotated[str, typer.Argument(help="Dot-path such as analysis.threads.all[0].")],
    limit: Annotated[int | None, typer.Option(help="Page size (1-200, default 50).")] = None,
    cursor: Annotated[str | None, typer.Option(help="Cursor from a previous page.nextCursor.")] = None,
    max_chars: Annotated[int | None, typer.Option("--max-chars", help="Response size budget.")] = None,
    page_kind: Annotated[str | None, typer.Option("--page-kind", help="array, object or auto.")] = None,
    select: Annotated[list[str] | None, typer.Option("--select", help="Field to keep (repeatable).")] = None,
    where_field: Annotated[str | None, typer.Option("--where-field", help="Field compared by --where-equals.")] = None,
    where_equals: Annotated[str | None, typer.Option("--where-equals", help="Value the field must equal.")] = None,
    case_sensitive: Annotated[bool, typer.Option("--case-sensitive", help="Compare case-sensitively.")] = False,
) -> None:
    """Print one section of a report."""
    where = None
    if where_field is not None or where_equals is not None:
        if where_field is None or where_equals is None:
            err_console.print("[red]--where-field and --where-equals must be given together.[/red]")
            raise typer.Exit(2)
        where = WhereClause(field=where_field, equals=where_equals, case_insensitive=not case_sensitive)

    _emit(
        get_section_json(
            _read_report(report),
            path,
            limit=limit,
            cursor=cursor,
            max_chars=max_chars,
            page_kind=page_kind,
            select=select or None,
            where=where,
        )
    )


def enrich(
    report: Annotated[Path, typer.Argument(help="Path to a canonical report JSON file.")],
    source_root: Annotated[
        list[str] | None, typer.Option("--source-root", help="Local source root (repeatable).")
    ] = None,
    output: Annotated[Path | None, typer.Option("--output", "-o", help="Write the enriched report here.")] = None,
) -> None:
    """Attach source code context to the report's most relevant stack frames."""
    report_json = _read_report(report)
    try:
        document = json.loads(report_json)
    except ValueError as exc:
        err_console.print(f"[red]Report is not valid JSON: {exc}[/red]")
        raise typer.Exit(1) from exc
    analysis = document.get("analysis") if isinstance(document, dict) else None
    if not isinstance(analysis, dict):
        err_console.print("[red]Report has no analysis object.[/red]")
        raise typer.Exit(1)

    settings = EnricherSettings.from_env()
    if source_root:
        settings = settings.with_roots(source_root)
    enricher = SourceContextEnricher(settings)

    async def _run() -> None:
        result = await enricher.enrich(analysis)
        document["analysis"] = result.analysis
        text = json.dumps(document, indent=2, ensure_ascii=False)
        if output is None:
            _emit(text)
            return
        output.write_text(text, encoding="utf-8")
        table = Table(show_lines=False)
        for header in ("thread", "frame", "function", "line", "status"):
            table.add_column(header)
        for entry in result.entries:
            table.add_row(
                entry.thread_id, str(entry.frame_number), entry.function, str(entry.line_number), str(entry.status)
            )
        console.print(table)
        summary = f"{len(result.entries)} entries, {result.embedded_count} embedded"
        console.print(f"[green]Wrote {output} ({summary})[/green]")

    asyncio.run(_run())
