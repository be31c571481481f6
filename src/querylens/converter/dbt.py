"""
dbt model rendering.

Produces the model SQL with a Jinja ``config()`` block and ``ref()`` table
references, and a ``schema.yml`` documenting the model, its columns and
the data tests that can run without further input.
"""

from __future__ import annotations

from typing import Any

import yaml

from querylens.converter.heuristics import (
    TAG_BY_PREFIX,
    ModelPlan,
    insert_filter,
    replace_table_refs,
    schema_for,
    strip_semicolon,
)
from querylens.converter.models import Materialization, RenderedModel, SourceTable
from querylens.platforms import Platform


def dbt_ref(table: SourceTable) -> str:
    return f"{{{{ ref('{table.short_name}') }}}}"


def model_tags(plan: ModelPlan) -> list[str]:
    tags = [tag for prefix, tag in TAG_BY_PREFIX.items() if plan.name.startswith(prefix)]
    if plan.has_group_by and "aggregation" not in tags:
        tags.append("aggregation")
    return tags


def model_config(plan: ModelPlan) -> dict[str, Any]:
    config: dict[str, Any] = {
        "materialized": plan.materialization.value,
        "schema": schema_for(plan.name),
        "tags": model_tags(plan),
    }
    if plan.materialization == Materialization.INCREMENTAL:
        config["unique_key"] = plan.unique_key()
        config["incremental_strategy"] = "merge"
        config["on_schema_change"] = "sync_all_columns"
    return config


def _jinja_value(value: Any) -> str:
    if isinstance(value, list):
        return "[" + ", ".join(f"'{v}'" for v in value) + "]"
    return f"'{value}'"


def render_model(plan: ModelPlan, description: str) -> str:
    config = model_config(plan)
    lines = ["{{ config("]
    for key, value in config.items():
        if value == []:
            continue
        lines.append(f"    {key}={_jinja_value(value)},")
    lines.append(") }}")
    lines.append("")

    lines.append("/*")
    lines.append(f"  Model: {plan.name}")
    lines.append(f"  Description: {description}")
    if plan.tables:
        lines.append("  Sources:")
        lines.extend(f"    - {t.name}" for t in plan.tables)
    if plan.columns:
        lines.append("  Columns:")
        lines.extend(
            f"    - {c.name}" + (f" ({c.data_type})" if c.data_type else "")
            for c in plan.columns
        )
    lines.append("*/")
    lines.append("")

    body = replace_table_refs(strip_semicolon(plan.sql), plan.tables, dbt_ref)
    if plan.materialization == Materialization.INCREMENTAL:
        field = plan.incremental_field()
        body = insert_filter(
            body,
            "{% if is_incremental() %}\n"
            f"  AND {field} > (SELECT MAX({field}) FROM {{{{ this }}}})\n"
            "{% endif %}",
        )
    lines.append(body)
    return "\n".join(lines) + "\n"


def _column_tests(plan: ModelPlan, column_name: str) -> tuple[list[Any], list[str]]:
    """Runnable tests for a column, and suggestions that need more input."""
    runnable: list[Any] = []
    pending: list[str] = []
    suggestion = next((s for s in plan.tests if s.column == column_name), None)
    if suggestion is None:
        return runnable, pending

    for test in suggestion.tests:
        if test == "relationships":
            stem = column_name.lower().replace("_id", "")
            target = next((t for t in plan.tables if stem and stem in t.name.lower()), None)
            if target is None:
                pending.append(test)
            else:
                runnable.append({"relationships": {"to": f"ref('{target.short_name}')", "field": "id"}})
        elif test == "accepted_values":
            pending.append(test)
        else:
            runnable.append(test)
    return runnable, pending


def render_schema(plan: ModelPlan, description: str) -> str:
    """The ``schema.yml`` document for the model."""
    model: dict[str, Any] = {
        "name": plan.name,
        "description": description,
        "config": model_config(plan),
    }

    columns = []
    for column in plan.columns:
        entry: dict[str, Any] = {
            "name": column.name,
            "description": column.description or f"Column {column.name}",
        }
        if column.data_type:
            entry["data_type"] = column.data_type
        runnable, pending = _column_tests(plan, column.name)
        if runnable:
            entry["data_tests"] = runnable
        if pending:
            entry["meta"] = {"suggested_tests": pending}
        columns.append(entry)
    if columns:
        model["columns"] = columns

    model["meta"] = {"upstream_tables": [t.name for t in plan.tables]}

    return yaml.safe_dump({"version": 2, "models": [model]}, sort_keys=False)


def render(plan: ModelPlan, platform: Platform) -> RenderedModel:
    description = f"Model generated by QueryLens from a {platform.display_name} query"
    return RenderedModel(
        model=render_model(plan, description),
        documentation=render_schema(plan, description),
        config=model_config(plan),
    )
