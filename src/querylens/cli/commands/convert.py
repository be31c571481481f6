"""Model conversion command."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax

from querylens.cli.commands.common import (
    PLATFORM_HELP,
    error_console,
    parse_platform,
    read_sql,
    write_text,
)
from querylens.converter.models import ModelType
from querylens.engine import AnalysisService
from querylens.output.renderers import render_json

console = Console()


def parse_model_type(value: str) -> ModelType:
    try:
        return ModelType.from_string(value)
    except ValueError as e:
        raise typer.BadParameter(str(e)) from None


def register(app: typer.Typer) -> None:
    """Register the convert command on the given Typer app."""

    @app.command()
    def convert(
        sql_file: Annotated[
            Path,
            typer.Argument(help="SQL file to convert", exists=True, readable=True, dir_okay=False),
        ],
        model_type: Annotated[
            str,
            typer.Option("--to", "-t", help="Model framework: dbt or dataform"),
        ] = "dbt",
        platform: Annotated[
            Optional[str],
            typer.Option("--platform", "-p", help=PLATFORM_HELP),
        ] = None,
        output_dir: Annotated[
            Optional[Path],
            typer.Option(
                "--output-dir", "-o", help="Write the model and its documentation into this directory",
                file_okay=False,
            ),
        ] = None,
        json_output: Annotated[
            bool,
            typer.Option("--json", "-j", help="Output the conversion result as JSON"),
        ] = False,
    ) -> None:
        """
        Turn a query into a dbt or Dataform model with documentation.

        Examples:

            $ querylens convert query.sql --to dbt -p bigquery
            $ querylens convert query.sql --to dataform -o definitions/
        """
        result = AnalysisService().convert(
            read_sql(sql_file),
            parse_model_type(model_type),
            parse_platform(platform),
        )

        if json_output:
            console.print_json(render_json(result))
        if not result.success:
            error_console.print(f"[red]Error:[/red] {result.error}")
            raise typer.Exit(code=1)

        if output_dir is not None:
            try:
                output_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                error_console.print(f"[red]Error:[/red] Could not create {output_dir}: {e}")
                raise typer.Exit(code=1)
            write_text(output_dir / result.model_filename, result.model)
            write_text(output_dir / result.documentation_filename, result.documentation)

        if json_output:
            return

        if output_dir is not None:
            console.print(
                f"[green]Wrote {result.model_filename} and "
                f"{result.documentation_filename} to {output_dir}[/green]"
            )
            return

        doc_lexer = "yaml" if result.model_type == ModelType.DBT else "markdown"
        console.print(
            Panel(
                Syntax(result.model, "sql", word_wrap=True),
                title=f"{result.model_filename} ({result.materialization.value})",
            )
        )
        console.print(
            Panel(
                Syntax(result.documentation, doc_lexer, word_wrap=True),
                title=result.documentation_filename,
            )
        )
