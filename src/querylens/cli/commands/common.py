"""Helpers shared by the command modules."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from querylens.config import get_config
from querylens.platforms import Platform

error_console = Console(stderr=True)

PLATFORM_HELP = "SQL dialect: bigquery, snowflake or databricks (A/B/C also accepted)"


def parse_platform(value: Optional[str]) -> Platform:
    """Resolve a --platform value, falling back to the configured default."""
    if value is None:
        return get_config().default_platform
    try:
        return Platform.from_string(value)
    except ValueError as e:
        raise typer.BadParameter(str(e)) from None


def read_sql(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        error_console.print(f"[red]Error:[/red] Could not read {path}: {e}")
        raise typer.Exit(code=1)


def write_text(path: Path, text: str) -> None:
    try:
        path.write_text(text, encoding="utf-8")
    except OSError as e:
        error_console.print(f"[red]Error:[/red] Could not write {path}: {e}")
        raise typer.Exit(code=1)
