"""Syntax fixing and formatting commands: fix, format."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console

from querylens.cli.commands.common import PLATFORM_HELP, parse_platform, read_sql, write_text
from querylens.engine import AnalysisService
from querylens.fixer.models import FixIssue, FixSeverity
from querylens.output.renderers import render_json

console = Console()
error_console = Console(stderr=True)

_SEVERITY_STYLES = {
    FixSeverity.ERROR: "red bold",
    FixSeverity.WARNING: "yellow",
    FixSeverity.INFO: "blue",
}


def _print_issue(issue: FixIssue) -> None:
    sev_style = _SEVERITY_STYLES[issue.severity]
    location = f" [dim](line {issue.line})[/dim]" if issue.line else ""
    marker = " [green](fixed)[/green]" if issue.auto_fixed else ""
    error_console.print(
        f"[{sev_style}][{issue.severity.value.upper()}][/{sev_style}] {issue.message}{location}{marker}"
    )
    error_console.print(f"   [dim]{issue.suggestion}[/dim]")


def register(app: typer.Typer) -> None:
    """Register fix and format commands on the given Typer app."""

    @app.command()
    def fix(
        sql_file: Annotated[
            Path,
            typer.Argument(help="SQL file to fix", exists=True, readable=True, dir_okay=False),
        ],
        platform: Annotated[
            Optional[str],
            typer.Option("--platform", "-p", help=PLATFORM_HELP),
        ] = None,
        write: Annotated[
            bool,
            typer.Option("--write", "-w", help="Rewrite the file in place"),
        ] = False,
        json_output: Annotated[
            bool,
            typer.Option("--json", "-j", help="Output the fix result as JSON"),
        ] = False,
    ) -> None:
        """
        Repair common syntax mistakes.

        The fixed query goes to stdout and the issues to stderr, so the
        output can be piped.

        Examples:

            $ querylens fix broken.sql -p snowflake > fixed.sql
            $ querylens fix broken.sql --write
        """
        result = AnalysisService().fix(read_sql(sql_file), parse_platform(platform))

        if write and result.changed:
            write_text(sql_file, result.fixed_query)

        if json_output:
            console.print_json(render_json(result))
            return

        for issue in result.issues:
            _print_issue(issue)

        if write:
            state = "updated" if result.changed else "unchanged"
            error_console.print(f"[dim]{sql_file} {state}[/dim]")
        else:
            console.print(result.fixed_query, markup=False, highlight=False)

    @app.command("format")
    def format_command(
        sql_file: Annotated[
            Path,
            typer.Argument(help="SQL file to format", exists=True, readable=True, dir_okay=False),
        ],
        platform: Annotated[
            Optional[str],
            typer.Option("--platform", "-p", help=PLATFORM_HELP),
        ] = None,
        fix_syntax: Annotated[
            bool,
            typer.Option("--fix/--no-fix", help="Run the syntax fixer before formatting"),
        ] = True,
    ) -> None:
        """
        Validate and reformat a query.

        Examples:

            $ querylens format query.sql --platform databricks
        """
        result = AnalysisService().enhance(read_sql(sql_file), parse_platform(platform), fix_syntax)

        for issue in result.issues:
            _print_issue(issue)

        console.print(result.formatted_query, markup=False, highlight=False)
