"""Analysis commands: analyze, rules."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from querylens.analyzer.catalog import RuleCatalog, default_catalog, load_catalog, save_catalog
from querylens.analyzer.models import AnalysisResult, Category, Severity
from querylens.cli.commands.common import PLATFORM_HELP, parse_platform, read_sql
from querylens.engine import FAIL_ON_CHOICES, AnalysisService, BatchReport
from querylens.exceptions import CatalogError
from querylens.output.renderers import OutputFormat, render, render_batch_markdown

console = Console()
error_console = Console(stderr=True)

_SEVERITY_STYLES = {
    Severity.HIGH: "red bold",
    Severity.MEDIUM: "yellow",
    Severity.LOW: "blue",
}


def _score_style(score: int) -> str:
    if score >= 80:
        return "green"
    if score >= 60:
        return "yellow"
    return "red"


def _print_result(result: AnalysisResult, title: str) -> None:
    if not result.valid:
        console.print(Panel("[yellow]Nothing to analyze: the query is empty.[/yellow]", title=title))
        return

    summary = result.summary
    table = Table(title=title, show_header=True)
    table.add_column("Category")
    table.add_column("Score", justify="right")
    table.add_column("Issues", justify="right")
    scores = {
        Category.BEST_PRACTICES: summary.best_practices_score,
        Category.PERFORMANCE: summary.performance_score,
        Category.MODULARIZATION: summary.modularization_score,
        Category.COST: summary.cost_score,
    }
    for category, score in scores.items():
        style = _score_style(score)
        table.add_row(category.value, f"[{style}]{score}[/{style}]", str(len(result.issues_for(category))))
    style = _score_style(summary.score)
    table.add_row("[bold]Overall[/bold]", f"[bold {style}]{summary.score}[/bold {style}]", str(len(result.issues)))
    console.print(table)

    if not result.issues:
        console.print("[green]No issues found![/green]")
        return

    console.print(f"\n[bold]Found {len(result.issues)} issue(s):[/bold]\n")
    for issue in result.issues:
        sev_style = _SEVERITY_STYLES[issue.severity]
        location = f" [dim](line {issue.line})[/dim]" if issue.line else ""
        console.print(
            f"[{sev_style}][{issue.severity.value.upper()}][/{sev_style}] "
            f"[cyan]{issue.id}[/cyan] {issue.message}{location}"
        )
        if issue.description:
            console.print(f"   [dim]{issue.description}[/dim]")
        if issue.recommendation:
            console.print(f"   [bold]Fix:[/bold] [green]{issue.recommendation}[/green]")
        console.print()


def _print_batch(batch: BatchReport) -> None:
    table = Table(title="QueryLens Batch Report")
    table.add_column("Query", style="cyan")
    table.add_column("Score", justify="right")
    table.add_column("High", justify="right")
    table.add_column("Medium", justify="right")
    table.add_column("Low", justify="right")

    for report in batch.reports:
        if report.result.valid:
            style = _score_style(report.score)
            score = f"[{style}]{report.score}[/{style}]"
        else:
            score = "[dim]n/a[/dim]"
        table.add_row(
            report.query_id or "-",
            score,
            str(report.count(Severity.HIGH)),
            str(report.count(Severity.MEDIUM)),
            str(report.count(Severity.LOW)),
        )

    console.print(table)
    verdict = "[red bold]FAILED[/red bold]" if batch.has_failures else "[green bold]PASSED[/green bold]"
    console.print(
        f"\n{verdict} [dim](fail on: {batch.fail_on}, "
        f"average score: {batch.average_score})[/dim]"
    )


def register(app: typer.Typer) -> None:
    """Register analysis commands on the given Typer app."""

    @app.command()
    def analyze(
        files: Annotated[
            list[Path],
            typer.Argument(
                help="SQL file(s) to analyze",
                exists=True,
                readable=True,
                dir_okay=False,
                resolve_path=True,
            ),
        ],
        platform: Annotated[
            Optional[str],
            typer.Option("--platform", "-p", help=PLATFORM_HELP),
        ] = None,
        catalog_path: Annotated[
            Optional[Path],
            typer.Option("--catalog", "-c", help="Rule catalog (JSON or YAML) replacing the built-in rules"),
        ] = None,
        json_output: Annotated[
            bool,
            typer.Option("--json", "-j", help="Output results as JSON"),
        ] = False,
        output_format: Annotated[
            OutputFormat,
            typer.Option("--format", "-f", help="Output format"),
        ] = OutputFormat.TEXT,
        fail_on: Annotated[
            str,
            typer.Option("--fail-on", help="With several files: lowest severity that fails (high, medium, low, none)"),
        ] = "high",
    ) -> None:
        """
        Analyze SQL for best-practice, performance, modularization and cost issues.

        Examples:

            $ querylens analyze query.sql --platform snowflake
            $ querylens analyze models/*.sql -p bigquery --fail-on medium
        """
        resolved = parse_platform(platform)
        if fail_on not in FAIL_ON_CHOICES:
            raise typer.BadParameter(f"must be one of {', '.join(FAIL_ON_CHOICES)}", param_hint="--fail-on")

        catalog: RuleCatalog | None = None
        if catalog_path is not None:
            try:
                catalog = load_catalog(catalog_path)
            except CatalogError as e:
                error_console.print(f"[red]Error:[/red] {e.message}")
                raise typer.Exit(code=1)

        fmt = OutputFormat.JSON if json_output else output_format
        service = AnalysisService()

        if len(files) == 1:
            report = service.analyze(read_sql(files[0]), resolved, catalog, file_path=str(files[0]))
            if fmt == OutputFormat.JSON:
                console.print_json(render(report.result, OutputFormat.JSON))
            elif fmt == OutputFormat.MARKDOWN:
                console.print(render(report.result, OutputFormat.MARKDOWN), markup=False)
            else:
                _print_result(report.result, f"QueryLens: {files[0].name} ({resolved.display_name})")
            return

        batch = service.analyze_batch(
            [(path.name, read_sql(path)) for path in files],
            resolved,
            catalog,
            fail_on=fail_on,
        )
        if fmt == OutputFormat.JSON:
            payload = {
                "summary": batch.to_summary_dict(),
                "reports": [r.to_dict() for r in batch.reports],
            }
            console.print_json(json.dumps(payload, default=str))
        elif fmt == OutputFormat.MARKDOWN:
            console.print(render_batch_markdown(batch), markup=False)
        else:
            _print_batch(batch)

        if batch.has_failures:
            raise typer.Exit(code=1)

    @app.command()
    def rules(
        platform: Annotated[
            Optional[str],
            typer.Option("--platform", "-p", help=PLATFORM_HELP),
        ] = None,
        export: Annotated[
            Optional[Path],
            typer.Option("--export", "-e", help="Write the default catalog to this JSON or YAML file"),
        ] = None,
    ) -> None:
        """List the built-in rules for a platform, or export them as a catalog."""
        resolved = parse_platform(platform)
        catalog = default_catalog(resolved)

        if export is not None:
            try:
                save_catalog(catalog, export)
            except CatalogError as e:
                error_console.print(f"[red]Error:[/red] {e.message}")
                raise typer.Exit(code=1)
            console.print(f"[green]Exported {len(catalog)} rules to {export}[/green]")
            return

        console.print(f"[bold]{resolved.display_name} Rules:[/bold]\n")

        table = Table()
        table.add_column("Rule ID", style="cyan")
        table.add_column("Category")
        table.add_column("Severity")
        table.add_column("Name")

        for category, definition in catalog.rules():
            sev_style = _SEVERITY_STYLES[definition.severity]
            table.add_row(
                definition.id,
                category.value,
                f"[{sev_style}]{definition.severity.value.upper()}[/{sev_style}]",
                definition.name,
            )

        console.print(table)
        console.print(f"\n[dim]{len(catalog)} rules available[/dim]")
