"""
Output renderers for different formats.

Separates presentation logic from analysis logic. Every result model
serializes itself through ``to_dict()``; the renderers here only decide
layout.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol

from querylens.analyzer.models import Category, Severity

if TYPE_CHECKING:
    from querylens.analyzer.models import AnalysisResult, Issue
    from querylens.engine import BatchReport
    from querylens.lineage.models import SchemaGraph
    from querylens.migration.models import MigrationResult


class OutputFormat(str, Enum):
    """Supported output formats."""

    TEXT = "text"
    JSON = "json"
    MARKDOWN = "markdown"


class Serializable(Protocol):
    def to_dict(self) -> dict[str, Any]: ...


_SEVERITY_ICONS = {
    Severity.HIGH: "🔴",
    Severity.MEDIUM: "🟡",
    Severity.LOW: "🔵",
}


def _severity_icon(severity: Severity) -> str:
    return _SEVERITY_ICONS.get(severity, "•")


def _location(issue: "Issue") -> str | None:
    if issue.line is None:
        return None
    if issue.column is None:
        return f"line {issue.line}"
    return f"line {issue.line}, column {issue.column}"


def render(result: "AnalysisResult", format: OutputFormat = OutputFormat.TEXT) -> str:
    """
    Render analysis result in the specified format.

    Args:
        result: Analysis result to render
        format: Output format (text, json, markdown)

    Returns:
        Formatted string
    """
    if format == OutputFormat.TEXT:
        return render_text(result)
    elif format == OutputFormat.JSON:
        return render_json(result)
    elif format == OutputFormat.MARKDOWN:
        return render_markdown(result)
    else:
        raise ValueError(f"Unknown output format: {format}")


# =============================================================================
# JSON renderer
# =============================================================================


def render_json(result: Serializable, indent: int = 2) -> str:
    """
    Render any result model as JSON.

    Suitable for CI integration and log aggregation.
    """
    return json.dumps(result.to_dict(), indent=indent, default=str)


# =============================================================================
# Text renderer (terminal)
# =============================================================================


def render_text(result: "AnalysisResult") -> str:
    """Render an analysis result as plain terminal text."""
    lines: list[str] = []

    lines.append("=" * 60)
    lines.append(f"QueryLens Analysis Report ({result.platform.display_name})")
    lines.append("=" * 60)
    lines.append("")

    if not result.valid:
        lines.append("Nothing to analyze: the query is empty.")
        lines.append("")
        lines.append("=" * 60)
        return "\n".join(lines)

    summary = result.summary
    lines.append(f"Overall Score: {summary.score}/100")
    lines.append(f"  Best Practices: {summary.best_practices_score}")
    lines.append(f"  Performance:    {summary.performance_score}")
    lines.append(f"  Modularization: {summary.modularization_score}")
    lines.append(f"  Cost:           {summary.cost_score}")
    lines.append("")

    if not result.issues:
        lines.append("✓ No issues found")

    for category in Category:
        issues = result.issues_for(category)
        if not issues:
            continue
        lines.append("-" * 60)
        lines.append(category.value.upper())
        lines.append("-" * 60)

        for issue in issues:
            lines.append("")
            lines.append(f"{_severity_icon(issue.severity)} [{issue.id}] {issue.message}")
            location = _location(issue)
            if location:
                lines.append(f"    Location: {location}")
            if issue.description:
                lines.append(f"    {issue.description}")
            if issue.recommendation:
                lines.append(f"    Recommendation: {issue.recommendation}")
            if issue.estimated_impact:
                lines.append(f"    Impact: {issue.estimated_impact}")
            if issue.estimated_savings:
                lines.append(f"    Savings: {issue.estimated_savings}")
        lines.append("")

    lines.append("")
    lines.append("=" * 60)

    return "\n".join(lines)


def render_lineage_text(graph: "SchemaGraph") -> str:
    """Tables with their columns, then one line per relationship."""
    if graph.is_empty:
        return "No tables found."

    lines: list[str] = ["Tables:"]
    for table in graph.tables:
        marker = " (CTE)" if table.is_cte else ""
        lines.append(f"  {table.display_name}{marker}")
        for column in table.columns:
            lines.append(f"    - {column.name}")

    if graph.relationships:
        lines.append("")
        lines.append("Relationships:")
        for rel in graph.relationships:
            source = f"{rel.source}.{rel.source_column}" if rel.source_column else rel.source
            target = f"{rel.target}.{rel.target_column}" if rel.target_column else rel.target
            lines.append(f"  {source} -> {target} [{rel.kind.value}]")

    return "\n".join(lines)


# =============================================================================
# Markdown renderer
# =============================================================================


def render_markdown(result: "AnalysisResult") -> str:
    """
    Render analysis result as Markdown.

    Suitable for PR comments and documentation.
    """
    lines: list[str] = []

    lines.append("# QueryLens Analysis Report")
    lines.append("")

    if not result.valid:
        lines.append("⚠️ **Nothing to analyze: the query is empty**")
        return "\n".join(lines) + "\n"

    high = result.issues_by_severity(Severity.HIGH)
    medium = result.issues_by_severity(Severity.MEDIUM)
    if high:
        lines.append("🔴 **High severity issues found**")
    elif medium:
        lines.append("🟡 **Medium severity issues found**")
    elif result.issues:
        lines.append("🔵 **Minor issues found**")
    else:
        lines.append("✅ **No issues found**")
    lines.append("")

    summary = result.summary
    lines.append("## Summary")
    lines.append("")
    lines.append("| Score | Value |")
    lines.append("|-------|-------|")
    lines.append(f"| Overall | **{summary.score}** |")
    lines.append(f"| Best Practices | {summary.best_practices_score} |")
    lines.append(f"| Performance | {summary.performance_score} |")
    lines.append(f"| Modularization | {summary.modularization_score} |")
    lines.append(f"| Cost | {summary.cost_score} |")
    lines.append("")

    if result.issues:
        lines.append("## Issues")
        lines.append("")
        for category in Category:
            issues = result.issues_for(category)
            if not issues:
                continue
            lines.append(f"### {category.value}")
            lines.append("")
            for issue in issues:
                lines.append(f"- {_severity_icon(issue.severity)} **{issue.message}** (`{issue.id}`)")
                location = _location(issue)
                if location:
                    lines.append(f"  - Location: {location}")
                if issue.recommendation:
                    lines.append(f"  - {issue.recommendation}")
            lines.append("")

    return "\n".join(lines)


def render_migration_markdown(result: "MigrationResult") -> str:
    """Converted query plus an issues table."""
    source = result.source_platform.display_name
    target = result.target_platform.display_name
    lines = [
        f"# Migration: {source} → {target}",
        "",
        f"**Compatibility score:** {result.compatibility_score}/100",
        "",
        "```sql",
        result.converted_query,
        "```",
        "",
    ]

    if result.issues:
        lines.append("| Line | Severity | Message | Suggestion |")
        lines.append("|------|----------|---------|------------|")
        for issue in result.issues:
            line = issue.line if issue.line is not None else ""
            lines.append(f"| {line} | {issue.severity.value} | {issue.message} | {issue.suggestion} |")
        lines.append("")

    return "\n".join(lines)


def render_batch_markdown(batch: "BatchReport") -> str:
    """One row per query with its score and issue counts."""
    status = "❌ **Failed**" if batch.has_failures else "✅ **Passed**"
    lines = [
        "# QueryLens Batch Report",
        "",
        f"{status} (fail on: `{batch.fail_on}`, average score: {batch.average_score})",
        "",
        "| Query | Score | High | Medium | Low |",
        "|-------|-------|------|--------|-----|",
    ]
    for report in batch.reports:
        name = report.query_id or report.file_path or "-"
        score = report.score if report.result.valid else "n/a"
        lines.append(
            f"| {name} | {score} | {report.count(Severity.HIGH)} "
            f"| {report.count(Severity.MEDIUM)} | {report.count(Severity.LOW)} |"
        )
    lines.append("")
    return "\n".join(lines)
