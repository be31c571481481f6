"""
Tests for query to model conversion.

These tests verify:
- Source tables, columns and tests are read from the query text
- Model naming and materialization choices
- dbt output: config block, ref() rewriting, schema.yml
- Dataform output: config block, ref() rewriting, Markdown docs
- Incremental filters land inside the final WHERE clause
- Failures come back as results instead of exceptions
"""

from __future__ import annotations

import json
import logging

import pytest
import yaml

from querylens.converter import (
    ConversionResult,
    Materialization,
    ModelConverter,
    ModelType,
    convert,
)
from querylens.converter.heuristics import (
    extract_columns,
    extract_tables,
    insert_filter,
    parse_column,
    plan_model,
    suggest_materialization,
    suggest_model_name,
)
from querylens.platforms import Platform

AGGREGATE = (
    "SELECT customer_id, SUM(total) AS revenue\n"
    "FROM `proj.sales.orders`\n"
    "GROUP BY customer_id;"
)
INCREMENTAL = (
    "SELECT o.order_id, o.updated_at, c.name\n"
    "FROM orders o\n"
    "JOIN customers c ON o.customer_id = c.id\n"
    "WHERE o.updated_at >= '2024-01-01'\n"
    "ORDER BY o.updated_at"
)


# =============================================================================
# Heuristics
# =============================================================================


class TestTables:
    def test_quoted_reference(self):
        tables = extract_tables(AGGREGATE)

        assert [t.name for t in tables] == ["proj.sales.orders"]
        assert tables[0].raw == "`proj.sales.orders`"
        assert tables[0].short_name == "orders"

    def test_ctes_are_not_sources(self):
        sql = (
            "WITH recent AS (SELECT * FROM orders WHERE x > 1) "
            "SELECT * FROM recent JOIN users u ON recent.user_id = u.id"
        )

        assert [t.name for t in extract_tables(sql)] == ["orders", "users"]

    def test_from_inside_extract_is_ignored(self):
        sql = "SELECT EXTRACT(YEAR FROM created_at) AS yr FROM events"

        assert [t.name for t in extract_tables(sql)] == ["events"]

    def test_table_functions_are_ignored(self):
        assert extract_tables("SELECT * FROM UNNEST(arr)") == []

    def test_repeated_table_listed_once(self):
        sql = "SELECT * FROM a JOIN b ON a.id = b.id JOIN a a2 ON a2.id = b.id"

        assert [t.name for t in extract_tables(sql)] == ["a", "b"]


class TestColumns:
    def test_aliased_expression(self):
        column = parse_column("SUM(total) AS revenue")

        assert column.name == "revenue"
        assert column.data_type == "number"
        assert column.description == "Derived from: SUM(total)"

    def test_qualified_reference(self):
        column = parse_column("o.order_id")

        assert column.name == "order_id"
        assert column.data_type is None

    @pytest.mark.parametrize("item", ["*", "o.*"])
    def test_star_is_skipped(self, item):
        assert parse_column(item) is None

    def test_first_top_level_select(self):
        sql = "SELECT DISTINCT a, (SELECT MAX(b) FROM t2) AS top_b FROM t1"

        assert [c.name for c in extract_columns(sql)] == ["a", "top_b"]


class TestNaming:
    def test_aggregation(self):
        assert plan_model(AGGREGATE).name == "agg_orders"

    def test_join(self):
        assert plan_model(INCREMENTAL).name == "int_orders_customers"

    def test_window(self):
        sql = "SELECT id, ROW_NUMBER() OVER (PARTITION BY user_id ORDER BY ts) AS rn FROM events"

        assert suggest_model_name(sql, extract_tables(sql)) == "mart_events"

    def test_staging_is_lowercased(self):
        sql = "SELECT id FROM Analytics.Raw_Events"

        assert suggest_model_name(sql, extract_tables(sql)) == "stg_raw_events"

    def test_no_tables(self):
        assert suggest_model_name("SELECT 1", []) == "stg_model"


class TestMaterialization:
    @pytest.mark.parametrize(
        "sql, expected",
        [
            ("SELECT id FROM t", Materialization.VIEW),
            (AGGREGATE, Materialization.TABLE),
            (INCREMENTAL, Materialization.INCREMENTAL),
            ("SELECT a.id FROM a JOIN b ON a.id = b.id", Materialization.VIEW),
        ],
    )
    def test_choice(self, sql, expected):
        assert suggest_materialization(sql) == expected

    def test_incremental_keys(self):
        plan = plan_model(INCREMENTAL)

        assert plan.unique_key() == "order_id"
        assert plan.incremental_field() == "updated_at"

    def test_incremental_field_falls_back_to_id(self):
        assert plan_model("SELECT name FROM t").incremental_field() == "id"


class TestInsertFilter:
    def test_adds_where_before_group_by(self):
        result = insert_filter("SELECT a FROM t GROUP BY a", "AND x > 1")

        assert result == "SELECT a FROM t\nWHERE 1=1\nAND x > 1\nGROUP BY a"

    def test_extends_existing_where(self):
        result = insert_filter("SELECT a FROM t WHERE a = 1 ORDER BY a", "AND x > 1")

        assert result == "SELECT a FROM t WHERE a = 1\nAND x > 1\nORDER BY a"

    def test_subquery_where_is_not_used(self):
        result = insert_filter("SELECT * FROM (SELECT * FROM t WHERE a = 1) s", "AND x > 1")

        assert result == "SELECT * FROM (SELECT * FROM t WHERE a = 1) s\nWHERE 1=1\nAND x > 1"


# =============================================================================
# dbt
# =============================================================================


class TestDbt:
    def test_model(self):
        result = convert(AGGREGATE, "dbt", "bigquery")

        assert result.success
        assert result.model_type == ModelType.DBT
        assert result.materialization == Materialization.TABLE
        assert result.model.startswith("{{ config(\n    materialized='table',\n")
        assert "schema='aggregations'" in result.model
        assert "tags=['aggregation']" in result.model
        assert "FROM {{ ref('orders') }}" in result.model
        assert "`proj.sales.orders`\nGROUP" not in result.model
        assert not result.model.rstrip().endswith(";")

    def test_filenames(self):
        result = convert(AGGREGATE, ModelType.DBT, Platform.BIGQUERY)

        assert result.model_filename == "agg_orders.sql"
        assert result.documentation_filename == "schema.yml"

    def test_schema_yml(self):
        result = convert(AGGREGATE, "dbt", "bigquery")

        doc = yaml.safe_load(result.documentation)
        model = doc["models"][0]

        assert doc["version"] == 2
        assert model["name"] == "agg_orders"
        assert model["description"] == "Model generated by QueryLens from a BigQuery query"
        assert model["config"]["materialized"] == "table"
        assert model["meta"] == {"upstream_tables": ["proj.sales.orders"]}

        customer, revenue = model["columns"]
        assert customer["data_tests"] == ["not_null", "unique"]
        assert customer["meta"] == {"suggested_tests": ["relationships"]}
        assert revenue["data_type"] == "number"
        assert "data_tests" not in revenue

    def test_resolved_relationship(self):
        sql = "SELECT c.customer_id FROM customers c JOIN orders o ON o.customer_id = c.customer_id"

        result = convert(sql, "dbt", "snowflake")

        column = yaml.safe_load(result.documentation)["models"][0]["columns"][0]
        assert {"relationships": {"to": "ref('customers')", "field": "id"}} in column["data_tests"]

    def test_incremental(self):
        result = convert(INCREMENTAL, "dbt", "snowflake")

        assert result.materialization == Materialization.INCREMENTAL
        assert result.config["unique_key"] == "order_id"
        assert result.config["incremental_strategy"] == "merge"
        assert "unique_key='order_id'" in result.model
        assert "JOIN {{ ref('customers') }} c" in result.model
        assert (
            "WHERE o.updated_at >= '2024-01-01'\n"
            "{% if is_incremental() %}\n"
            "  AND updated_at > (SELECT MAX(updated_at) FROM {{ this }})\n"
            "{% endif %}\n"
            "ORDER BY o.updated_at"
        ) in result.model


# =============================================================================
# Dataform
# =============================================================================


class TestDataform:
    def test_model(self):
        result = convert(AGGREGATE, "dataform", "bigquery")

        assert result.success
        assert result.model.startswith("config {\n")
        assert '"type": "table"' in result.model
        assert 'FROM ${ref("orders")}' in result.model
        assert result.model_filename == "agg_orders.sqlx"
        assert result.documentation_filename == "agg_orders.md"

    def test_config(self):
        result = convert(AGGREGATE, "dataform", "bigquery")

        assert result.config["tags"] == ["staging", "aggregation"]
        assert result.config["columns"] == {"revenue": "Derived from: SUM(total)"}
        assert result.config["assertions"] == {
            "uniqueKey": ["customer_id"],
            "nonNull": ["customer_id"],
        }

    def test_config_block_is_json(self):
        result = convert(AGGREGATE, "dataform", "bigquery")

        block = result.model[len("config "):result.model.index("\n}\n") + 2]
        assert json.loads(block) == result.config

    def test_incremental(self):
        result = convert(INCREMENTAL, "dataform", "snowflake")

        assert result.config["type"] == "incremental"
        assert result.config["uniqueKey"] == ["order_id"]
        assert result.config["tags"] == ["integration", "incremental"]
        assert (
            "${when(incremental(), `AND updated_at > (SELECT MAX(updated_at) FROM ${self()})`)}"
            in result.model
        )

    def test_documentation(self):
        doc = convert(AGGREGATE, "dataform", "bigquery").documentation

        assert doc.startswith("# agg_orders\n")
        assert "This model is materialized as a **table**." in doc
        assert "- `proj.sales.orders`" in doc
        assert "### revenue\n**Type:** number\n**Description:** Derived from: SUM(total)" in doc
        assert "- uniqueKey: customer_id" in doc


# =============================================================================
# Failures
# =============================================================================


class TestFailures:
    @pytest.mark.parametrize("sql", ["", "   \n"])
    def test_empty_query(self, sql):
        result = convert(sql, "dbt", "bigquery")

        assert not result.success
        assert result.error == "Query is empty"
        assert result.model == ""

    def test_script_is_rejected(self):
        result = convert("SELECT 1 FROM a; SELECT 2 FROM b;", "dataform", "bigquery")

        assert not result.success
        assert result.error == "A model holds a single query, found 2 statements"

    def test_trailing_comment_is_not_a_statement(self):
        assert convert("SELECT id FROM t; -- daily", "dbt", "bigquery").success

    def test_renderer_error_is_returned(self, caplog):
        def boom(plan, platform):
            raise RuntimeError("renderer exploded")

        converter = ModelConverter(renderers={ModelType.DBT: boom})

        with caplog.at_level(logging.WARNING, logger="querylens.converter.converter"):
            result = converter.convert("SELECT id FROM t", "dbt", "bigquery")

        assert not result.success
        assert "renderer exploded" in result.error
        assert "Conversion to dbt failed" in caplog.text

    def test_unknown_model_type(self):
        with pytest.raises(ValueError, match="dbt, dataform"):
            convert("SELECT id FROM t", "looker", "bigquery")

    def test_to_dict(self):
        data = ConversionResult.failure(ModelType.DATAFORM, Platform.SNOWFLAKE, "nope").to_dict()

        assert data["model_type"] == "dataform"
        assert data["platform"] == "snowflake"
        assert data["success"] is False
        json.dumps(data)
