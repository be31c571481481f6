"""
Tests for cross-dialect migration.

These tests verify:
- Identity migration for the same platform
- Directional rewrites and detections
- DDL clause relocation
- Comment retargeting and the common pass
- Score bounds and failing passes
"""

from __future__ import annotations

from querylens.migration import MigrationSeverity, Migrator, migrate
from querylens.migration.models import PassResult
from querylens.platforms import Platform


class TestIdentity:
    def test_same_platform_is_untouched(self):
        sql = "SELECT * FROM t"

        result = migrate(sql, "bigquery", "A")

        assert result.converted_query == sql
        assert result.issues == ()
        assert result.compatibility_score == 100
        assert not result.changed


class TestBigQuery:
    """BigQuery as the source dialect."""

    def test_date_add_to_snowflake(self):
        result = migrate(
            "SELECT DATE_ADD(order_date, INTERVAL 7 DAY) AS due FROM orders",
            Platform.BIGQUERY,
            Platform.SNOWFLAKE,
        )

        assert "DATEADD(DAY, 7, order_date)" in result.converted_query
        assert result.compatibility_score < 100
        assert result.issues[0].line == 1

    def test_backticks_to_snowflake(self):
        result = migrate(
            "SELECT id FROM `proj.ds.orders` WHERE id = 1",
            Platform.BIGQUERY,
            Platform.SNOWFLAKE,
        )

        assert result.converted_query == 'SELECT id FROM "proj"."ds"."orders" WHERE id = 1'

    def test_partition_moved_for_databricks(self):
        result = migrate(
            "CREATE TABLE events (id INT, ts DATE) PARTITION BY ts;",
            Platform.BIGQUERY,
            Platform.DATABRICKS,
        )

        assert result.converted_query == "CREATE TABLE events (id INT, ts DATE) PARTITIONED BY (ts);"
        assert result.compatibility_score == 97

    def test_partition_without_semicolon_is_flagged(self):
        sql = "CREATE TABLE events (id INT) PARTITION BY ts"

        result = migrate(sql, Platform.BIGQUERY, Platform.DATABRICKS)

        assert result.converted_query == sql
        assert result.compatibility_score == 92
        assert result.issues_by_severity(MigrationSeverity.WARNING)

    def test_window_partition_is_untouched(self):
        sql = "SELECT ROW_NUMBER() OVER (PARTITION BY id ORDER BY ts) AS rn FROM t;"

        result = migrate(sql, Platform.BIGQUERY, Platform.DATABRICKS)

        assert result.converted_query == sql
        assert result.compatibility_score == 100


class TestSnowflake:
    """Snowflake as the source dialect."""

    def test_colon_access_to_bigquery(self):
        result = migrate("SELECT payload:name FROM events", Platform.SNOWFLAKE, Platform.BIGQUERY)

        assert result.converted_query == "SELECT JSON_EXTRACT(payload, '$.name') FROM events"

    def test_casts_are_not_json_access(self):
        sql = "SELECT amount::NUMBER FROM t"

        result = migrate(sql, Platform.SNOWFLAKE, Platform.BIGQUERY)

        assert result.converted_query == sql


class TestDatabricks:
    """Databricks as the source dialect."""

    def test_three_part_name_to_bigquery(self):
        result = migrate("SELECT * FROM main.sales.orders", Platform.DATABRICKS, Platform.BIGQUERY)

        assert result.converted_query == "SELECT * FROM `main.sales.orders`"
        # 1 for the table name, 5 for SELECT *
        assert result.compatibility_score == 94


class TestCommonPass:
    """Direction-independent handling."""

    def test_comment_retargeted(self):
        result = migrate(
            "-- bigquery specific logic\nSELECT id FROM t",
            Platform.BIGQUERY,
            Platform.SNOWFLAKE,
        )

        assert result.converted_query.split("\n")[0] == "-- snowflake specific (migrated) logic"

    def test_comment_lines_are_not_rewritten(self):
        sql = "-- DATE_ADD(d, INTERVAL 1 DAY)\nSELECT id FROM t"

        result = migrate(sql, Platform.BIGQUERY, Platform.SNOWFLAKE)

        assert result.converted_query == sql

    def test_limit_note_for_snowflake(self):
        result = migrate("SELECT id FROM t LIMIT 5", Platform.DATABRICKS, Platform.SNOWFLAKE)

        assert any(i.message == "LIMIT clause usage" for i in result.issues)

    def test_score_is_clamped(self):
        sql = "\n".join(["SELECT * FROM t WHERE x = REGEXP_CONTAINS(a, 'b')"] * 20)

        result = migrate(sql, Platform.BIGQUERY, Platform.DATABRICKS)

        assert result.compatibility_score == 0


class TestFailingPass:
    """A pass that raises is skipped and its output discarded."""

    def test_failing_pass_is_logged(self, caplog):
        def exploding_pass(lines, issues):
            issues.append("never kept")
            raise RuntimeError("kaboom")

        def upper_pass(lines, issues):
            return PassResult(lines=tuple(line.upper() for line in lines), deduction=2)

        migrator = Migrator(passes={
            (Platform.BIGQUERY, Platform.SNOWFLAKE): (upper_pass, exploding_pass),
        })

        result = migrator.migrate("select id from t", Platform.BIGQUERY, Platform.SNOWFLAKE)

        assert result.converted_query == "SELECT ID FROM T"
        assert result.compatibility_score == 98
        assert "exploding_pass" in caplog.text
        assert "kaboom" in caplog.text

    def test_pair_without_passes_runs_common_pass(self):
        migrator = Migrator(passes={})

        result = migrator.migrate("SELECT * FROM t", Platform.SNOWFLAKE, Platform.DATABRICKS)

        assert result.compatibility_score == 95
