"""
Package-level exception hierarchy for QueryLens.

All exceptions inherit from QueryLensError, so callers can catch every
QueryLens failure with a single except clause. Context fields (rule_id,
source, pass_name) are kept on the instances for logging.

The analysis engines themselves never raise to their callers. These
exceptions surface from explicit loading APIs (catalog files) and give
logged failures a consistent shape.

Hierarchy:
    QueryLensError
    ├── AnalyzerError          – Errors during analysis orchestration
    │   └── RuleError          – A specific rule failed during execution
    ├── CatalogError           – A rule catalog could not be loaded or edited
    ├── MigrationError         – A migration pass failed
    ├── ConversionError        – A query could not be converted to a model
    └── FormatterError         – The external SQL formatter failed
"""

from __future__ import annotations


class QueryLensError(Exception):
    """
    Base exception for all QueryLens errors.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


# ── Analysis Errors ──────────────────────────────────────────────────────


class AnalyzerError(QueryLensError):
    """Errors during analysis orchestration."""
    pass


class RuleError(AnalyzerError):
    """
    Error during rule execution.

    Attributes:
        rule_id: The ID of the rule that failed.
        rule_version: Version of the rule.
        original_error: The underlying exception.
    """

    def __init__(
        self,
        rule_id: str,
        rule_version: str,
        original_error: Exception,
    ) -> None:
        self.rule_id = rule_id
        self.rule_version = rule_version
        self.original_error = original_error

        message = (
            f"Rule '{rule_id}' v{rule_version} failed: "
            f"{original_error.__class__.__name__}: {original_error}"
        )
        super().__init__(message)


# ── Catalog Errors ───────────────────────────────────────────────────────


class CatalogError(QueryLensError):
    """
    A rule catalog could not be loaded, saved or modified.

    Attributes:
        source: Description of the catalog source (file path, rule id, etc.).
    """

    def __init__(self, message: str, source: str | None = None) -> None:
        self.source = source
        super().__init__(message)


# ── Migration Errors ─────────────────────────────────────────────────────


class MigrationError(QueryLensError):
    """
    A migration pass failed while rewriting a query.

    The pipeline logs these and continues with the previous lines.

    Attributes:
        pass_name: Name of the pass that failed.
        source_platform: Dialect being migrated from.
        target_platform: Dialect being migrated to.
    """

    def __init__(
        self,
        message: str,
        pass_name: str | None = None,
        source_platform: str | None = None,
        target_platform: str | None = None,
    ) -> None:
        self.pass_name = pass_name
        self.source_platform = source_platform
        self.target_platform = target_platform
        super().__init__(message)


# ── Conversion Errors ────────────────────────────────────────────────────


class ConversionError(QueryLensError):
    """
    Converting a query into a dbt or Dataform model failed.

    The converter logs these and returns a failed ConversionResult.

    Attributes:
        model_type: Framework the model was being generated for.
    """

    def __init__(self, message: str, model_type: str | None = None) -> None:
        self.model_type = model_type
        super().__init__(message)


# ── Formatter Errors ─────────────────────────────────────────────────────


class FormatterError(QueryLensError):
    """The external SQL formatter raised while formatting a query."""
    pass
