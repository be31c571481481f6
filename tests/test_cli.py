"""
Tests for the command-line interface.

These tests verify:
- Every command runs against SQL files on disk
- JSON output is machine-readable
- Files are written by --export, --output and --write
- Bad input and failing batches exit non-zero
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from querylens import __version__
from querylens.analyzer.catalog import default_catalog, load_catalog
from querylens.cli.main import app
from querylens.platforms import Platform

runner = CliRunner()


@pytest.fixture
def wide_sql(tmp_path: Path) -> Path:
    path = tmp_path / "wide.sql"
    path.write_text("SELECT * FROM huge_table")
    return path


@pytest.fixture
def clean_sql(tmp_path: Path) -> Path:
    path = tmp_path / "clean.sql"
    path.write_text("SELECT id FROM t WHERE id = 1")
    return path


@pytest.fixture
def broken_sql(tmp_path: Path) -> Path:
    path = tmp_path / "broken.sql"
    path.write_text("select id form users")
    return path


# =============================================================================
# Top level
# =============================================================================


class TestApp:
    """Global options."""

    def test_version(self):
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert f"QueryLens version {__version__}" in result.output

    def test_unknown_platform(self, wide_sql):
        result = runner.invoke(app, ["analyze", str(wide_sql), "--platform", "oracle"])

        assert result.exit_code != 0

    def test_missing_file(self, tmp_path):
        result = runner.invoke(app, ["analyze", str(tmp_path / "nope.sql")])

        assert result.exit_code != 0


# =============================================================================
# analyze / rules
# =============================================================================


class TestAnalyzeCommand:
    """querylens analyze."""

    def test_json(self, wide_sql):
        result = runner.invoke(app, ["analyze", str(wide_sql), "-p", "bigquery", "--json"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["summary"]["score"] == 94

    def test_text(self, wide_sql):
        result = runner.invoke(app, ["analyze", str(wide_sql), "-p", "a"])

        assert result.exit_code == 0
        assert "Overall" in result.output
        assert "BP001" in result.output

    def test_markdown(self, wide_sql):
        result = runner.invoke(app, ["analyze", str(wide_sql), "-p", "bigquery", "--format", "markdown"])

        assert result.exit_code == 0
        assert "# QueryLens Analysis Report" in result.output

    def test_platform_from_environment(self, wide_sql, monkeypatch):
        monkeypatch.setenv("QUERYLENS_DEFAULT_PLATFORM", "snowflake")

        result = runner.invoke(app, ["analyze", str(wide_sql), "--json"])

        assert json.loads(result.output)["platform"] == "snowflake"

    def test_batch_fails_on_high(self, wide_sql, clean_sql):
        result = runner.invoke(app, ["analyze", str(wide_sql), str(clean_sql), "-p", "bigquery", "--json"])

        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["summary"]["total_queries"] == 2
        assert data["summary"]["has_failures"] is True
        assert [r["query_id"] for r in data["reports"]] == ["wide.sql", "clean.sql"]

    def test_batch_passes_with_none(self, wide_sql, clean_sql):
        result = runner.invoke(
            app,
            ["analyze", str(wide_sql), str(clean_sql), "-p", "bigquery", "--fail-on", "none"],
        )

        assert result.exit_code == 0
        assert "PASSED" in result.output

    def test_bad_fail_on(self, wide_sql):
        result = runner.invoke(app, ["analyze", str(wide_sql), "--fail-on", "critical"])

        assert result.exit_code != 0

    def test_custom_catalog(self, wide_sql, tmp_path):
        catalog = default_catalog(Platform.BIGQUERY)
        catalog.disable("BP001")
        catalog.disable("COST001")
        catalog.disable("BP002")
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps(catalog.to_dict()))

        result = runner.invoke(app, ["analyze", str(wide_sql), "-p", "bigquery", "-c", str(path), "--json"])

        assert result.exit_code == 0
        assert json.loads(result.output)["summary"]["score"] == 100

    def test_broken_catalog(self, wide_sql, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text("{not json")

        result = runner.invoke(app, ["analyze", str(wide_sql), "-c", str(path)])

        assert result.exit_code == 1


class TestRulesCommand:
    """querylens rules."""

    def test_list(self):
        result = runner.invoke(app, ["rules", "-p", "snowflake"])

        assert result.exit_code == 0
        assert "BP003" in result.output
        assert "rules available" in result.output

    def test_export(self, tmp_path):
        path = tmp_path / "rules.yaml"

        result = runner.invoke(app, ["rules", "-p", "bigquery", "--export", str(path)])

        assert result.exit_code == 0
        exported = load_catalog(path)
        assert [d.id for _, d in exported.rules()] == [d.id for _, d in default_catalog("bigquery").rules()]


# =============================================================================
# lineage / migrate
# =============================================================================


class TestLineageCommand:
    """querylens lineage."""

    def test_json(self, tmp_path):
        path = tmp_path / "join.sql"
        path.write_text("SELECT o.id, c.name FROM orders o JOIN customers c ON o.customer_id = c.id")

        result = runner.invoke(app, ["lineage", str(path), "--json"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert [t["id"] for t in data["tables"]] == ["o", "c"]
        assert data["relationships"][0]["kind"] == "join"

    def test_no_tables(self, tmp_path):
        path = tmp_path / "empty.sql"
        path.write_text("")

        result = runner.invoke(app, ["lineage", str(path)])

        assert result.exit_code == 0
        assert "No tables found." in result.output


class TestMigrateCommand:
    """querylens migrate."""

    def test_json(self, tmp_path):
        path = tmp_path / "dates.sql"
        path.write_text("SELECT DATE_ADD(order_date, INTERVAL 7 DAY) AS due FROM orders")

        result = runner.invoke(app, ["migrate", str(path), "--from", "bigquery", "--to", "snowflake", "--json"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["converted_query"] == "SELECT DATEADD(DAY, 7, order_date) AS due FROM orders"
        assert data["target_platform"] == "snowflake"

    def test_output_file(self, clean_sql, tmp_path):
        out = tmp_path / "converted.sql"

        result = runner.invoke(app, ["migrate", str(clean_sql), "-s", "a", "-t", "c", "-o", str(out)])

        assert result.exit_code == 0
        assert out.read_text() == "SELECT id FROM t WHERE id = 1"

    def test_requires_target(self, clean_sql):
        result = runner.invoke(app, ["migrate", str(clean_sql), "--from", "bigquery"])

        assert result.exit_code != 0


class TestConvertCommand:
    """querylens convert."""

    def test_json(self, clean_sql):
        result = runner.invoke(app, ["convert", str(clean_sql), "--to", "dbt", "-p", "bigquery", "--json"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["success"] is True
        assert data["model_name"] == "stg_t"
        assert data["materialization"] == "view"

    def test_output_dir(self, clean_sql, tmp_path):
        out = tmp_path / "definitions"

        result = runner.invoke(app, ["convert", str(clean_sql), "--to", "dataform", "-o", str(out)])

        assert result.exit_code == 0
        assert 'FROM ${ref("t")}' in (out / "stg_t.sqlx").read_text()
        assert (out / "stg_t.md").read_text().startswith("# stg_t\n")

    def test_panels(self, clean_sql):
        result = runner.invoke(app, ["convert", str(clean_sql)])

        assert result.exit_code == 0
        assert "stg_t.sql" in result.output
        assert "schema.yml" in result.output

    def test_unknown_model_type(self, clean_sql):
        result = runner.invoke(app, ["convert", str(clean_sql), "--to", "looker"])

        assert result.exit_code == 2

    def test_empty_query(self, tmp_path):
        path = tmp_path / "empty.sql"
        path.write_text("  \n")

        result = runner.invoke(app, ["convert", str(path)])

        assert result.exit_code == 1


# =============================================================================
# fix / format / cost
# =============================================================================


class TestFixCommands:
    """querylens fix and querylens format."""

    def test_fix_json(self, broken_sql):
        result = runner.invoke(app, ["fix", str(broken_sql), "-p", "bigquery", "--json"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["fixed_query"] == "SELECT id FROM users;"
        assert data["fixed"] is True

    def test_fix_write(self, broken_sql):
        result = runner.invoke(app, ["fix", str(broken_sql), "-p", "bigquery", "--write"])

        assert result.exit_code == 0
        assert broken_sql.read_text() == "SELECT id FROM users;"

    def test_fix_write_leaves_clean_file(self, tmp_path):
        path = tmp_path / "ok.sql"
        path.write_text("SELECT id FROM users;")

        result = runner.invoke(app, ["fix", str(path), "-p", "bigquery", "--write"])

        assert result.exit_code == 0
        assert path.read_text() == "SELECT id FROM users;"

    def test_format(self, broken_sql):
        result = runner.invoke(app, ["format", str(broken_sql), "-p", "bigquery"])

        assert result.exit_code == 0
        assert "FROM users" in result.output


class TestCostCommand:
    """querylens cost."""

    def test_seeded_json_is_reproducible(self, wide_sql):
        args = ["cost", str(wide_sql), "-p", "bigquery", "--seed", "3", "--json"]

        first = json.loads(runner.invoke(app, args).output)
        second = json.loads(runner.invoke(app, args).output)

        assert first == second
        assert first["platform"] == "bigquery"

    def test_table(self, wide_sql):
        result = runner.invoke(app, ["cost", str(wide_sql), "-p", "snowflake", "--seed", "1"])

        assert result.exit_code == 0
        assert "Credits" in result.output
        assert "Recommendations:" in result.output
