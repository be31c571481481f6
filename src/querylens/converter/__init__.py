"""Conversion of a query into a dbt or Dataform model."""

from querylens.converter.converter import RENDERERS, ModelConverter, convert
from querylens.converter.models import (
    ConversionResult,
    Materialization,
    ModelColumn,
    ModelType,
)

__all__ = [
    "ConversionResult",
    "Materialization",
    "ModelColumn",
    "ModelType",
    "RENDERERS",
    "ModelConverter",
    "convert",
]
