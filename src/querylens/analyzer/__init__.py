"""
Rule-based SQL analyzer.

Importing this package registers the built-in rules.
"""

from querylens.analyzer import rules  # noqa: F401  (registers built-in rules)
from querylens.analyzer.analyzer import Analyzer, analyze
from querylens.analyzer.catalog import (
    RuleCatalog,
    RuleCategory,
    RuleDefinition,
    default_catalog,
    load_catalog,
    save_catalog,
)
from querylens.analyzer.matcher import HeuristicRuleMatcher, KeywordRuleMatcher
from querylens.analyzer.models import (
    AnalysisResult,
    AnalysisSummary,
    Category,
    Issue,
    Severity,
)
from querylens.analyzer.registry import RuleRegistry, get_registry, register_rule

__all__ = [
    "Analyzer",
    "analyze",
    "AnalysisResult",
    "AnalysisSummary",
    "Category",
    "Issue",
    "Severity",
    "RuleCatalog",
    "RuleCategory",
    "RuleDefinition",
    "default_catalog",
    "load_catalog",
    "save_catalog",
    "HeuristicRuleMatcher",
    "KeywordRuleMatcher",
    "RuleRegistry",
    "get_registry",
    "register_rule",
]
