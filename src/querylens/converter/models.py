"""
Data models for converting a query into a dbt or Dataform model.

A ConversionResult carries three texts: the model file itself, the
documentation file (``schema.yml`` for dbt, Markdown for Dataform) and the
model configuration as plain data.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from querylens.platforms import Platform


class ModelType(str, Enum):
    """Transformation frameworks a query can be converted for."""

    DBT = "dbt"
    DATAFORM = "dataform"

    @classmethod
    def from_string(cls, value: "str | ModelType") -> "ModelType":
        if isinstance(value, ModelType):
            return value
        try:
            return cls(value.strip().lower())
        except ValueError:
            valid = ", ".join(m.value for m in cls)
            raise ValueError(f"Unknown model type '{value}'. Expected one of: {valid}") from None


class Materialization(str, Enum):
    VIEW = "view"
    TABLE = "table"
    INCREMENTAL = "incremental"


class ModelColumn(BaseModel):
    """
    An output column of the query.

    ``data_type`` is only guessed for aliased expressions; plain column
    references carry no type.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    data_type: str | None = None
    description: str | None = None


class SourceTable(BaseModel):
    """
    A table read by the query.

    Attributes:
        raw: The reference as written after FROM or JOIN, quotes included
        name: The reference with quotes removed (``proj.ds.orders``)
    """

    model_config = ConfigDict(frozen=True)

    raw: str
    name: str

    @property
    def short_name(self) -> str:
        """Last dotted part, used as the ref() name."""
        return self.name.split(".")[-1]


class ColumnTests(BaseModel):
    """Data tests suggested for one output column."""

    model_config = ConfigDict(frozen=True)

    column: str
    tests: tuple[str, ...]


class ConversionResult(BaseModel):
    """
    Result of converting one query.

    A failed conversion has ``success=False``, empty texts and an
    ``error`` message. Conversion never raises.
    """

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    success: bool
    model_type: ModelType
    platform: Platform
    model_name: str = ""
    materialization: Materialization | None = None
    model: str = ""
    documentation: str = ""
    config: dict[str, Any] = Field(default_factory=dict)
    source_tables: tuple[str, ...] = ()
    columns: tuple[ModelColumn, ...] = ()
    error: str | None = None

    @classmethod
    def failure(cls, model_type: ModelType, platform: Platform, error: str) -> "ConversionResult":
        return cls(success=False, model_type=model_type, platform=platform, error=error)

    @property
    def model_filename(self) -> str:
        suffix = ".sql" if self.model_type == ModelType.DBT else ".sqlx"
        return f"{self.model_name}{suffix}"

    @property
    def documentation_filename(self) -> str:
        return "schema.yml" if self.model_type == ModelType.DBT else f"{self.model_name}.md"

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


@dataclass(frozen=True)
class RenderedModel:
    """Texts a renderer produces for one model."""

    model: str
    documentation: str
    config: dict[str, Any] = field(default_factory=dict)
