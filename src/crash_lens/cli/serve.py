from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

serve_app = typer.Typer(help="Start servers.")
console = Console()

ReportsDirOption = Annotated[
    Path | None, typer.Option("--reports-dir", help="Directory of <id>.json reports (default $CRASH_LENS_REPORTS_DIR).")
]


@serve_app.command("api")
def api(
    host: str = "127.0.0.1",
    port: int = 8000,
    reports_dir: ReportsDirOption = None,
) -> None:
    """Start the FastAPI REST API server."""
    import uvicorn

    from crash_lens.api.app import create_app
    from crash_lens.api.dependencies import configure_report_store
    from crash_lens.store.files import DirectoryReportStore

    if reports_dir is not None:
        configure_report_store(DirectoryReportStore(reports_dir))
    app = create_app()
    console.print(f"[green]Starting API server on {host}:{port}[/green]")
    uvicorn.run(app, host=host, port=port)


@serve_app.command("mcp")
def mcp(
    transport: str = "stdio",
    reports_dir: ReportsDirOption = None,
) -> None:
    """Start the MCP server."""
    from crash_lens.config import get_reports_dir
    from crash_lens.mcp.server import create_mcp_server
    from crash_lens.store.files import DirectoryReportStore

    store = DirectoryReportStore(reports_dir or get_reports_dir())
    server = create_mcp_server(store)
    # stdout belongs to the protocol on stdio
    Console(stderr=True).print(
        f"[green]Starting MCP server (transport: {transport}, reports: {store.directory})[/green]"
    )
    server.run(transport=transport)  # type: ignore[arg-type]
