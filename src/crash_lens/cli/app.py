import logging
from typing import Annotated

import typer

from crash_lens.cli.reports import enrich, get, index
from crash_lens.cli.serve import serve_app

app = typer.Typer(
    name="crash-lens",
    help="Crash Lens CLI: browse crash reports section by section and attach source context.",
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)


@app.callback()
def configure(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


app.command("index")(index)
app.command("get")(get)
app.command("enrich")(enrich)
app.add_typer(serve_app, name="serve")


def main() -> None:
    app()
