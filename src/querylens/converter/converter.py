"""
Query to model conversion.

The query is inspected once (see heuristics.py) and the resulting plan is
handed to the renderer for the requested framework. Conversion never
raises: an empty query, a multi-statement script or a renderer failure
comes back as a failed ConversionResult.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Callable, Mapping

from querylens.converter import dataform, dbt
from querylens.converter.heuristics import ModelPlan, plan_model
from querylens.converter.models import ConversionResult, ModelType, RenderedModel
from querylens.exceptions import ConversionError
from querylens.platforms import Platform
from querylens.sqltext import split_statements, strip_comments

logger = logging.getLogger(__name__)

Renderer = Callable[[ModelPlan, Platform], RenderedModel]

RENDERERS: Mapping[ModelType, Renderer] = MappingProxyType({
    ModelType.DBT: dbt.render,
    ModelType.DATAFORM: dataform.render,
})


class ModelConverter:
    """
    Turns a query into a dbt or Dataform model.

    Args:
        renderers: Renderer per model type; defaults to RENDERERS
    """

    def __init__(self, renderers: Mapping[ModelType, Renderer] | None = None) -> None:
        self.renderers = renderers if renderers is not None else RENDERERS

    def convert(
        self,
        sql: str,
        model_type: ModelType | str,
        platform: Platform | str,
    ) -> ConversionResult:
        model_type = ModelType.from_string(model_type)
        platform = Platform.from_string(platform)

        if not sql or not sql.strip():
            return ConversionResult.failure(model_type, platform, "Query is empty")

        statements = split_statements(strip_comments(sql))
        if len(statements) > 1:
            return ConversionResult.failure(
                model_type,
                platform,
                f"A model holds a single query, found {len(statements)} statements",
            )

        try:
            plan = plan_model(sql.strip())
            rendered = self.renderers[model_type](plan, platform)
        except Exception as e:
            error = ConversionError(
                f"Conversion to {model_type.value} failed: {e}",
                model_type=model_type.value,
            )
            logger.warning("%s", error.message)
            return ConversionResult.failure(model_type, platform, error.message)

        logger.debug(
            "Converted %s query to %s model %s", platform.value, model_type.value, plan.name
        )

        return ConversionResult(
            success=True,
            model_type=model_type,
            platform=platform,
            model_name=plan.name,
            materialization=plan.materialization,
            model=rendered.model,
            documentation=rendered.documentation,
            config=rendered.config,
            source_tables=tuple(t.name for t in plan.tables),
            columns=plan.columns,
        )


def convert(sql: str, model_type: ModelType | str, platform: Platform | str) -> ConversionResult:
    """Convert ``sql`` with the default renderers. See :class:`ModelConverter`."""
    return ModelConverter().convert(sql, model_type, platform)
