"""Migration command."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from querylens.cli.commands.common import PLATFORM_HELP, parse_platform, read_sql, write_text
from querylens.engine import AnalysisService
from querylens.migration.models import MigrationSeverity
from querylens.output.renderers import render_json

console = Console()

_SEVERITY_STYLES = {
    MigrationSeverity.ERROR: "red bold",
    MigrationSeverity.WARNING: "yellow",
    MigrationSeverity.INFO: "blue",
}


def register(app: typer.Typer) -> None:
    """Register the migrate command on the given Typer app."""

    @app.command()
    def migrate(
        sql_file: Annotated[
            Path,
            typer.Argument(help="SQL file to migrate", exists=True, readable=True, dir_okay=False),
        ],
        source: Annotated[
            str,
            typer.Option("--from", "-s", help=f"Source dialect. {PLATFORM_HELP}"),
        ],
        target: Annotated[
            str,
            typer.Option("--to", "-t", help=f"Target dialect. {PLATFORM_HELP}"),
        ],
        output: Annotated[
            Optional[Path],
            typer.Option("--output", "-o", help="Write the converted query to this file"),
        ] = None,
        json_output: Annotated[
            bool,
            typer.Option("--json", "-j", help="Output the migration result as JSON"),
        ] = False,
    ) -> None:
        """
        Translate a query between BigQuery, Snowflake and Databricks.

        Examples:

            $ querylens migrate query.sql --from bigquery --to snowflake
            $ querylens migrate query.sql --from sf --to dbx -o query.databricks.sql
        """
        result = AnalysisService().migrate(
            read_sql(sql_file),
            parse_platform(source),
            parse_platform(target),
        )

        if output is not None:
            write_text(output, result.converted_query)

        if json_output:
            console.print_json(render_json(result))
            return

        if output is None:
            console.print(Syntax(result.converted_query, "sql", word_wrap=True))
        else:
            console.print(f"[green]Converted query written to {output}[/green]")

        score = result.compatibility_score
        style = "green" if score >= 80 else "yellow" if score >= 60 else "red"
        console.print(
            Panel(
                f"[{style}]{score}/100[/{style}]",
                title=(
                    f"Compatibility: {result.source_platform.display_name} → "
                    f"{result.target_platform.display_name}"
                ),
                expand=False,
            )
        )

        if result.issues:
            table = Table()
            table.add_column("Line", justify="right")
            table.add_column("Severity")
            table.add_column("Message")
            table.add_column("Suggestion", style="dim")
            for issue in result.issues:
                sev_style = _SEVERITY_STYLES[issue.severity]
                table.add_row(
                    str(issue.line) if issue.line is not None else "",
                    f"[{sev_style}]{issue.severity.value.upper()}[/{sev_style}]",
                    issue.message,
                    issue.suggestion,
                )
            console.print(table)
