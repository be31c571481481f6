"""
The analyzer: evaluates rules against a query and scores the result.

Two modes:
- No catalog: every built-in rule registered for the platform runs
  (minus rules disabled in Config).
- Caller catalog: only the catalog's enabled rules run, and built-in rules
  not listed there are ignored. A catalog entry whose id has a built-in
  predicate runs that predicate with the catalog's name, description and
  severity. A custom entry is matched by the HeuristicRuleMatcher.

Scoring:
    category score = max(0, 100 - sum of severity weights)
    overall = round(w_bp*BP + w_perf*Perf + w_mod*Mod + w_cost*Cost)

The analyzer is pure. It reads Config and the registry but mutates
neither, and never modifies a catalog passed to it.
"""

from __future__ import annotations

import logging

from querylens.analyzer.catalog import RuleCatalog, RuleDefinition
from querylens.analyzer.matcher import HeuristicRuleMatcher, KeywordRuleMatcher
from querylens.analyzer.models import (
    AnalysisResult,
    AnalysisSummary,
    Category,
    Issue,
    category_score,
    round_half_up,
)
from querylens.analyzer.registry import RuleRegistry, get_registry
from querylens.analyzer.rules.base import Rule, RuleContext
from querylens.config import Config, get_config
from querylens.exceptions import RuleError
from querylens.platforms import Platform

logger = logging.getLogger(__name__)

CUSTOM_IMPACT = "Impact varies based on query complexity"
CUSTOM_SAVINGS = "Savings depend on data volume and query frequency"


class Analyzer:
    """
    Rule engine and scorer.

    Example:
        analyzer = Analyzer()
        result = analyzer.analyze("SELECT * FROM orders", Platform.BIGQUERY)
        print(result.summary.score)

    Args:
        config: Thresholds, weights and rule toggles (defaults to get_config())
        registry: Where built-in rules are looked up (defaults to the global one)
        matcher: Heuristic for custom catalog rules
    """

    def __init__(
        self,
        config: Config | None = None,
        registry: RuleRegistry | None = None,
        matcher: HeuristicRuleMatcher | None = None,
    ) -> None:
        self.config = config if config is not None else get_config()
        self.registry = registry if registry is not None else get_registry()
        self.matcher = matcher if matcher is not None else KeywordRuleMatcher()

    def analyze(
        self,
        sql: str,
        platform: Platform | str,
        catalog: RuleCatalog | None = None,
    ) -> AnalysisResult:
        """
        Analyze a query.

        Returns:
            AnalysisResult. Empty or whitespace-only SQL yields the invalid
            sentinel with every score at zero.
        """
        platform = Platform.from_string(platform)

        if not sql or not sql.strip():
            logger.debug("Empty query, returning invalid result")
            return AnalysisResult.invalid(platform)

        ctx = RuleContext.build(sql, platform)

        if catalog is None:
            grouped = self._run_builtin(ctx)
        else:
            if catalog.platform != platform:
                logger.debug(
                    "Catalog for %s used to analyze %s query",
                    catalog.platform.value, platform.value,
                )
            grouped = self._run_catalog(ctx, catalog)

        return AnalysisResult(
            valid=True,
            platform=platform,
            best_practices=tuple(grouped[Category.BEST_PRACTICES]),
            performance=tuple(grouped[Category.PERFORMANCE]),
            modularization=tuple(grouped[Category.MODULARIZATION]),
            cost=tuple(grouped[Category.COST]),
            summary=self.summarize(grouped),
        )

    def summarize(self, grouped: dict[Category, list[Issue]]) -> AnalysisSummary:
        """Compute per-category and weighted overall scores."""
        weights = self.config.category_weights.normalized()
        bp = category_score(grouped[Category.BEST_PRACTICES])
        perf = category_score(grouped[Category.PERFORMANCE])
        mod = category_score(grouped[Category.MODULARIZATION])
        cost = category_score(grouped[Category.COST])

        overall = round_half_up(
            bp * weights.best_practices
            + perf * weights.performance
            + mod * weights.modularization
            + cost * weights.cost
        )

        return AnalysisSummary(
            score=min(100, max(0, overall)),
            best_practices_score=bp,
            performance_score=perf,
            modularization_score=mod,
            cost_score=cost,
        )

    def instantiate(self, rule_cls: type[Rule]) -> Rule:
        """Create a rule with thresholds resolved from Config."""
        settings: dict[str, object] = {}
        for field_name in rule_cls.config_schema.model_fields:
            if field_name == "enabled":
                continue
            value = self.config.get_rule_threshold(rule_cls.rule_id, field_name)
            if value is not None:
                settings[field_name] = value
        settings["enabled"] = self.config.is_rule_enabled(rule_cls.rule_id)
        return rule_cls(settings)

    def _run_builtin(self, ctx: RuleContext) -> dict[Category, list[Issue]]:
        grouped: dict[Category, list[Issue]] = {cat: [] for cat in Category}

        for rule_cls in self.registry.for_platform(ctx.platform):
            rule = self.instantiate(rule_cls)
            if not rule.config.enabled:
                logger.debug("Rule %s disabled by config", rule.rule_id)
                continue
            issue = self._run_rule(rule, ctx)
            if issue is not None:
                grouped[rule.category].append(issue)

        return grouped

    def _run_catalog(
        self,
        ctx: RuleContext,
        catalog: RuleCatalog,
    ) -> dict[Category, list[Issue]]:
        grouped: dict[Category, list[Issue]] = {cat: [] for cat in Category}

        for category in Category:
            for definition in catalog.enabled_rules(category):
                issue = self._evaluate_definition(ctx, category, definition)
                if issue is not None:
                    grouped[category].append(issue)

        return grouped

    def _evaluate_definition(
        self,
        ctx: RuleContext,
        category: Category,
        definition: RuleDefinition,
    ) -> Issue | None:
        rule_cls = self.registry.get(definition.id)

        if rule_cls is not None and rule_cls.applies_in_catalog(ctx.platform):
            issue = self._run_rule(self.instantiate(rule_cls), ctx, definition)
            if issue is not None and issue.category != category:
                issue = issue.model_copy(update={"category": category})
            return issue

        if definition.custom:
            if not self.matcher.matches(definition, ctx.lowered):
                return None
            return Issue(
                id=definition.id,
                category=category,
                severity=definition.severity,
                name=definition.name,
                message=definition.name,
                description=definition.description,
                recommendation=definition.description,
                estimated_impact=CUSTOM_IMPACT if category == Category.PERFORMANCE else None,
                estimated_savings=CUSTOM_SAVINGS if category == Category.COST else None,
            )

        logger.debug("Rule %s has no predicate for %s, skipped", definition.id, ctx.platform.value)
        return None

    def _run_rule(
        self,
        rule: Rule,
        ctx: RuleContext,
        definition: RuleDefinition | None = None,
    ) -> Issue | None:
        try:
            return rule.evaluate(ctx, definition)
        except Exception as e:
            error = RuleError(rule.rule_id, rule.version, e)
            logger.warning("%s", error.message)
            return None


def analyze(
    sql: str,
    platform: Platform | str,
    catalog: RuleCatalog | None = None,
) -> AnalysisResult:
    """Analyze ``sql`` with a default Analyzer. See :class:`Analyzer`."""
    return Analyzer().analyze(sql, platform, catalog)
