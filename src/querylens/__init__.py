"""QueryLens - SQL analyzer, lineage extractor and dialect migrator for BigQuery, Snowflake and Databricks."""

__version__ = "0.3.0"
__license__ = "MIT"

# Exception hierarchy (import first so other modules can use it)
from querylens.exceptions import (
    QueryLensError,
    AnalyzerError,
    RuleError,
    CatalogError,
    MigrationError,
    ConversionError,
    FormatterError,
)

from querylens.platforms import Platform

# Public API exports
from querylens.analyzer import (
    AnalysisResult,
    AnalysisSummary,
    Analyzer,
    Category,
    Issue,
    RuleCatalog,
    Severity,
    analyze,
    default_catalog,
    load_catalog,
)
from querylens.lineage import SchemaExtractor, SchemaGraph, extract_schema
from querylens.migration import MigrationIssue, MigrationResult, Migrator, migrate
from querylens.fixer import EnhanceResult, Enhancer, FixIssue, FixResult, SyntaxFixer, enhance, fix
from querylens.converter import ConversionResult, ModelConverter, ModelType, convert
from querylens.cost import CostEstimate, CostEstimator, estimate_cost
from querylens.config import Config, get_config, reset_config
from querylens.engine import AnalysisReport, AnalysisService, BatchReport

__all__ = [
    "__version__",
    # Exceptions
    "QueryLensError",
    "AnalyzerError",
    "RuleError",
    "CatalogError",
    "MigrationError",
    "ConversionError",
    "FormatterError",
    # Core
    "Platform",
    "Analyzer",
    "AnalysisResult",
    "AnalysisSummary",
    "Category",
    "Issue",
    "Severity",
    "RuleCatalog",
    "default_catalog",
    "load_catalog",
    "SchemaExtractor",
    "SchemaGraph",
    "Migrator",
    "MigrationIssue",
    "MigrationResult",
    "SyntaxFixer",
    "Enhancer",
    "FixIssue",
    "FixResult",
    "EnhanceResult",
    "CostEstimator",
    "CostEstimate",
    "ModelConverter",
    "ModelType",
    "ConversionResult",
    # Functions
    "analyze",
    "extract_schema",
    "migrate",
    "fix",
    "enhance",
    "estimate_cost",
    "convert",
    # Configuration
    "Config",
    "get_config",
    "reset_config",
    # Orchestration
    "AnalysisService",
    "AnalysisReport",
    "BatchReport",
]
