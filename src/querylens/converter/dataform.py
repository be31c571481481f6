"""
Dataform SQLX rendering.

The ``config {}`` block is written as JSON, which SQLX accepts as a
JavaScript object literal. Table references become ``${ref("name")}`` and
incremental models filter new rows with ``${when(incremental(), ...)}``.
"""

from __future__ import annotations

import json
from typing import Any

from querylens.converter.heuristics import (
    ModelPlan,
    insert_filter,
    replace_table_refs,
    schema_for,
    strip_semicolon,
)
from querylens.converter.models import Materialization, RenderedModel, SourceTable
from querylens.platforms import Platform


def dataform_ref(table: SourceTable) -> str:
    return f'${{ref("{table.short_name}")}}'


def model_tags(plan: ModelPlan) -> list[str]:
    tags = ["integration" if plan.has_join else "staging"]
    if plan.has_group_by:
        tags.append("aggregation")
    if plan.materialization == Materialization.INCREMENTAL:
        tags.append("incremental")
    return tags


def model_config(plan: ModelPlan, description: str) -> dict[str, Any]:
    config: dict[str, Any] = {
        "type": plan.materialization.value,
        "schema": schema_for(plan.name),
        "description": description,
        "tags": model_tags(plan),
    }
    if plan.materialization == Materialization.INCREMENTAL:
        config["uniqueKey"] = [plan.unique_key()]

    described = {c.name: c.description for c in plan.columns if c.description}
    if described:
        config["columns"] = described

    # Assert on the first identifier-like column
    key = next(
        (c.name for c in plan.columns
         if "id" in c.name.lower() and "foreign" not in c.name.lower()),
        None,
    )
    if key is not None:
        config["assertions"] = {"uniqueKey": [key], "nonNull": [key]}
    return config


def render_model(plan: ModelPlan, config: dict[str, Any]) -> str:
    body = replace_table_refs(strip_semicolon(plan.sql), plan.tables, dataform_ref)
    if plan.materialization == Materialization.INCREMENTAL:
        field = plan.incremental_field()
        body = insert_filter(
            body,
            f"${{when(incremental(), `AND {field} > (SELECT MAX({field}) FROM ${{self()}})`)}}",
        )
    return f"config {json.dumps(config, indent=2)}\n\n{body}\n"


def render_documentation(plan: ModelPlan, config: dict[str, Any]) -> str:
    """Markdown page describing the model."""
    lines = [
        f"# {plan.name}",
        "",
        "## Description",
        config["description"],
        "",
        "## Materialization",
        f"This model is materialized as a **{plan.materialization.value}**.",
        "",
        "## Tags",
    ]
    lines.extend(f"- {tag}" for tag in config["tags"])
    lines.extend(["", "## Source Tables"])
    if plan.tables:
        lines.extend(f"- `{t.name}`" for t in plan.tables)
    else:
        lines.append("No source tables detected.")

    lines.extend(["", "## Column Details"])
    if not plan.columns:
        lines.append("No columns detected.")
    for column in plan.columns:
        lines.extend(["", f"### {column.name}"])
        if column.data_type:
            lines.append(f"**Type:** {column.data_type}")
        if column.description:
            lines.append(f"**Description:** {column.description}")

    assertions = config.get("assertions")
    if assertions:
        lines.extend(["", "## Assertions"])
        lines.extend(f"- {kind}: {', '.join(cols)}" for kind, cols in assertions.items())
    return "\n".join(lines) + "\n"


def render(plan: ModelPlan, platform: Platform) -> RenderedModel:
    description = f"Model generated by QueryLens from a {platform.display_name} query"
    config = model_config(plan, description)
    return RenderedModel(
        model=render_model(plan, config),
        documentation=render_documentation(plan, config),
        config=config,
    )
