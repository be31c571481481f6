"""Lineage command."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.table import Table
from rich.tree import Tree

from querylens.cli.commands.common import PLATFORM_HELP, parse_platform, read_sql
from querylens.engine import AnalysisService
from querylens.output.renderers import render_json

console = Console()


def register(app: typer.Typer) -> None:
    """Register the lineage command on the given Typer app."""

    @app.command()
    def lineage(
        sql_file: Annotated[
            Path,
            typer.Argument(help="SQL file to extract lineage from", exists=True, readable=True, dir_okay=False),
        ],
        platform: Annotated[
            Optional[str],
            typer.Option("--platform", "-p", help=PLATFORM_HELP),
        ] = None,
        json_output: Annotated[
            bool,
            typer.Option("--json", "-j", help="Output the schema graph as JSON"),
        ] = False,
    ) -> None:
        """
        Extract tables, columns and their relationships from a query.

        Examples:

            $ querylens lineage model.sql
            $ querylens lineage model.sql --json > graph.json
        """
        resolved = parse_platform(platform)
        graph = AnalysisService().extract_schema(read_sql(sql_file), resolved)

        if json_output:
            console.print_json(render_json(graph))
            return

        if graph.is_empty:
            console.print("[yellow]No tables found.[/yellow]")
            return

        tree = Tree(f"[bold]{sql_file.name}[/bold]")
        for table in graph.tables:
            label = f"[cyan]{table.display_name}[/cyan]"
            if table.is_cte:
                label += " [dim](CTE)[/dim]"
            branch = tree.add(label)
            for column in table.columns:
                branch.add(column.name)
        console.print(tree)

        if graph.relationships:
            rels = Table(title="Relationships")
            rels.add_column("Source", style="cyan")
            rels.add_column("Target", style="cyan")
            rels.add_column("Kind")
            rels.add_column("Columns", style="dim")
            for rel in graph.relationships:
                columns = f"{rel.source_column} = {rel.target_column}" if rel.has_columns else ""
                rels.add_row(rel.source, rel.target, rel.kind.value, columns)
            console.print(rels)

        console.print(
            f"\n[dim]{len(graph.tables)} table(s), {len(graph.relationships)} relationship(s)[/dim]"
        )
