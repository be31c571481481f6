"""
Tests for output renderers.

These tests verify:
- Analysis results render as text, JSON and Markdown
- Lineage, migration and batch renderers
"""

from __future__ import annotations

import json

import pytest

from querylens.analyzer import analyze
from querylens.engine import AnalysisService
from querylens.lineage import extract_schema
from querylens.migration import migrate
from querylens.output import (
    OutputFormat,
    render,
    render_batch_markdown,
    render_json,
    render_lineage_text,
    render_migration_markdown,
)
from querylens.platforms import Platform


@pytest.fixture
def result():
    return analyze("SELECT * FROM huge_table", Platform.BIGQUERY)


class TestAnalysisRenderers:
    """render() for each format."""

    def test_text(self, result):
        output = render(result, OutputFormat.TEXT)

        assert "QueryLens Analysis Report (BigQuery)" in output
        assert "Overall Score: 94/100" in output
        assert "BEST PRACTICES" in output
        assert "[BP001]" in output
        assert "[COST001]" in output

    def test_text_clean(self):
        output = render(analyze("SELECT id FROM t WHERE id = 1", Platform.DATABRICKS))

        assert "No issues found" in output

    def test_text_invalid(self):
        output = render(analyze("", Platform.BIGQUERY))

        assert "Nothing to analyze" in output
        assert "Overall Score" not in output

    def test_json(self, result):
        data = json.loads(render(result, OutputFormat.JSON))

        assert data["valid"] is True
        assert data["summary"]["score"] == 94
        assert [i["id"] for i in data["cost"]] == ["COST001"]

    def test_markdown(self, result):
        output = render(result, OutputFormat.MARKDOWN)

        assert output.startswith("# QueryLens Analysis Report")
        assert "High severity issues found" in output
        assert "| Overall | **94** |" in output
        assert "### Cost" in output

    def test_unknown_format(self, result):
        with pytest.raises(ValueError):
            render(result, "xml")


class TestOtherRenderers:
    """Lineage, migration and batch output."""

    def test_lineage_text(self):
        graph = extract_schema("SELECT o.id, c.name FROM orders o JOIN customers c ON o.customer_id = c.id", "bigquery")

        output = render_lineage_text(graph)

        assert output.startswith("Tables:")
        assert "  orders (o)" in output
        assert "    - customer_id" in output
        assert "  c.id -> o.customer_id [join]" in output

    def test_lineage_text_empty(self):
        assert render_lineage_text(extract_schema("", "bigquery")) == "No tables found."

    def test_lineage_json(self):
        graph = extract_schema("SELECT o.id FROM orders o", "bigquery")

        data = json.loads(render_json(graph))

        assert [t["id"] for t in data["tables"]] == ["o"]

    def test_migration_markdown(self):
        result = migrate("SELECT * FROM t", "bigquery", "snowflake")

        output = render_migration_markdown(result)

        assert output.startswith("# Migration: BigQuery → Snowflake")
        assert "**Compatibility score:**" in output
        assert "```sql\nSELECT * FROM t\n```" in output
        assert "| Line | Severity | Message | Suggestion |" in output

    def test_batch_markdown(self):
        batch = AnalysisService().analyze_batch(
            [("wide", "SELECT * FROM huge_table"), ("empty", "")],
            "bigquery",
        )

        output = render_batch_markdown(batch)

        assert "❌ **Failed**" in output
        assert "| wide | 94 | 1 | 1 | 0 |" in output
        assert "| empty | n/a | 0 | 0 | 0 |" in output
