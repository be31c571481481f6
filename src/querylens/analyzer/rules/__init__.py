"""
Built-in analysis rules.

Importing this package registers every rule with the global registry.
Rule ids follow the category prefixes BP, PERF, MOD and COST.
"""

from querylens.analyzer.rules.base import Rule, RuleConfig, RuleContext
from querylens.analyzer.rules.best_practices import (
    DateTruncUsage,
    MissingFromClause,
    SelectStar,
)
from querylens.analyzer.rules.performance import (
    FilterAfterGroupBy,
    JoinWithoutCondition,
    SubqueryDetected,
)
from querylens.analyzer.rules.modularization import (
    LongQueryConfig,
    LongQueryWithoutCte,
    MissingObjectCreation,
    NestedSelectConfig,
    NestedSelects,
)
from querylens.analyzer.rules.cost import (
    FullTableScan,
    JoinWithoutPartitioning,
    MissingSample,
    OrderByWithoutLimit,
)

__all__ = [
    "Rule",
    "RuleConfig",
    "RuleContext",
    # Best practices
    "SelectStar",
    "MissingFromClause",
    "DateTruncUsage",
    # Performance
    "SubqueryDetected",
    "JoinWithoutCondition",
    "FilterAfterGroupBy",
    # Modularization
    "LongQueryConfig",
    "LongQueryWithoutCte",
    "NestedSelectConfig",
    "NestedSelects",
    "MissingObjectCreation",
    # Cost
    "FullTableScan",
    "OrderByWithoutLimit",
    "JoinWithoutPartitioning",
    "MissingSample",
]
