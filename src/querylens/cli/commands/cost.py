"""Cost estimation command."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.table import Table

from querylens.cli.commands.common import PLATFORM_HELP, parse_platform, read_sql
from querylens.cost.estimator import CostEstimator
from querylens.cost.variance import RandomVariance
from querylens.output.renderers import render_json
from querylens.platforms import Platform

console = Console()

_UNIT_LABELS = {
    Platform.BIGQUERY: "Processing units",
    Platform.SNOWFLAKE: "Credits",
    Platform.DATABRICKS: "DBUs",
}


def register(app: typer.Typer) -> None:
    """Register the cost command on the given Typer app."""

    @app.command()
    def cost(
        sql_file: Annotated[
            Path,
            typer.Argument(help="SQL file to estimate", exists=True, readable=True, dir_okay=False),
        ],
        platform: Annotated[
            Optional[str],
            typer.Option("--platform", "-p", help=PLATFORM_HELP),
        ] = None,
        seed: Annotated[
            Optional[int],
            typer.Option("--seed", help="Seed the size jitter for reproducible estimates"),
        ] = None,
        json_output: Annotated[
            bool,
            typer.Option("--json", "-j", help="Output the estimate as JSON"),
        ] = False,
    ) -> None:
        """
        Estimate what a query costs to run.

        Estimates are heuristic and include a random size jitter unless
        --seed (or QUERYLENS_COST_SEED) is given.

        Examples:

            $ querylens cost report.sql -p snowflake --seed 7
        """
        resolved = parse_platform(platform)
        variance = RandomVariance(seed) if seed is not None else None
        estimate = CostEstimator(variance=variance).estimate(read_sql(sql_file), resolved)

        if json_output:
            console.print_json(render_json(estimate))
            return

        table = Table(title=f"Cost estimate ({resolved.display_name})", show_header=False)
        table.add_column("Metric", style="bold")
        table.add_column("Value")
        table.add_row("Complexity", estimate.complexity.value)
        table.add_row(_UNIT_LABELS[resolved], f"{estimate.processing_units:g}")
        table.add_row("Estimated cost", f"${estimate.estimated_cost:.4f}")
        table.add_row("Data scanned", estimate.data_scanned)
        table.add_row("Execution time", estimate.execution_time)
        console.print(table)

        if estimate.recommendations:
            console.print("\n[bold]Recommendations:[/bold]")
            for recommendation in estimate.recommendations:
                console.print(f"  • {recommendation}")
