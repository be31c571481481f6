"""Renderers turning results into text, JSON or Markdown."""

from querylens.output.renderers import (
    OutputFormat,
    render,
    render_batch_markdown,
    render_json,
    render_lineage_text,
    render_markdown,
    render_migration_markdown,
    render_text,
)

__all__ = [
    "OutputFormat",
    "render",
    "render_batch_markdown",
    "render_json",
    "render_lineage_text",
    "render_markdown",
    "render_migration_markdown",
    "render_text",
]
