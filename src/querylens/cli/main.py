"""
QueryLens CLI - SQL analysis for BigQuery, Snowflake and Databricks.

Usage:
    querylens analyze query.sql --platform snowflake
    querylens lineage query.sql
    querylens migrate query.sql --from bigquery --to databricks
    querylens fix query.sql
    querylens convert query.sql --to dataform -p snowflake
    querylens cost query.sql --seed 1
"""

from __future__ import annotations

import logging
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from querylens import __version__
from querylens.cli.commands import analyze, convert, cost, fix, lineage, migrate

app = typer.Typer(
    name="querylens",
    help="SQL analyzer, lineage extractor and dialect migrator (BigQuery, Snowflake, Databricks)",
    no_args_is_help=True,
)

console = Console()
error_console = Console(stderr=True)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"QueryLens version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Log engine warnings and debug output to stderr."),
    ] = False,
) -> None:
    """QueryLens - SQL analysis for BigQuery, Snowflake and Databricks."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=error_console, show_path=False)],
    )


analyze.register(app)
lineage.register(app)
migrate.register(app)
fix.register(app)
cost.register(app)
convert.register(app)


if __name__ == "__main__":
    app()
