"""
Tests for the rule-based analyzer.

These tests verify:
- Built-in rules fire per platform
- Category and overall scoring
- Config thresholds and rule toggles
- Catalog-driven analysis, including custom rules
"""

from __future__ import annotations

import pytest

from querylens.analyzer import (
    Analyzer,
    Category,
    KeywordRuleMatcher,
    RuleDefinition,
    RuleRegistry,
    Severity,
    analyze,
    default_catalog,
)
from querylens.analyzer.analyzer import CUSTOM_IMPACT, CUSTOM_SAVINGS
from querylens.analyzer.catalog import catalog_from_dict
from querylens.analyzer.models import category_score, round_half_up
from querylens.config import CategoryWeights, Config, RuleConfig
from querylens.platforms import Platform


# =============================================================================
# Scoring helpers
# =============================================================================


class TestScoring:
    """Test the scoring arithmetic."""

    def test_severity_weights(self):
        assert Severity.HIGH.weight == 15
        assert Severity.MEDIUM.weight == 10
        assert Severity.LOW.weight == 5

    def test_severity_ordering(self):
        assert sorted([Severity.HIGH, Severity.LOW, Severity.MEDIUM]) == [
            Severity.LOW, Severity.MEDIUM, Severity.HIGH,
        ]

    def test_severity_comparisons_follow_weight(self):
        assert Severity.HIGH > Severity.LOW
        assert Severity.MEDIUM >= Severity.MEDIUM
        assert Severity.LOW <= Severity.MEDIUM
        assert not Severity.LOW > Severity.HIGH
        assert max([Severity.LOW, Severity.HIGH, Severity.MEDIUM]) == Severity.HIGH

    def test_round_half_up(self):
        assert round_half_up(91.5) == 92
        assert round_half_up(92.5) == 93
        assert round_half_up(92.49) == 92

    def test_category_score_floors_at_zero(self):
        result = analyze("SELECT * FROM t", Platform.BIGQUERY)
        issues = list(result.issues) * 20
        assert category_score(issues) == 0


# =============================================================================
# Built-in rules
# =============================================================================


class TestBuiltinRules:
    """Test the built-in rule set on each platform."""

    def test_select_star_on_bigquery(self):
        result = analyze("SELECT * FROM t", "A")

        assert result.valid
        assert result.has_issue("BP001")
        assert result.summary.best_practices_score <= 95

    def test_join_with_condition_is_not_flagged(self):
        result = analyze("SELECT a FROM t JOIN u ON t.id = u.id WHERE a = 1", "A")

        assert not result.has_issue("PERF002")

    def test_join_without_condition(self):
        result = analyze("SELECT a FROM x JOIN y WHERE a = 1", Platform.DATABRICKS)

        issue = next(i for i in result.performance if i.id == "PERF002")
        assert issue.severity == Severity.HIGH
        assert issue.estimated_impact == "Could prevent exponential performance degradation"

    def test_join_using_is_a_condition(self):
        result = analyze("SELECT a FROM x JOIN y USING (id) WHERE a = 1", Platform.DATABRICKS)

        assert not result.has_issue("PERF002")

    def test_full_table_scan_location(self):
        result = analyze("SELECT id\nFROM orders", Platform.BIGQUERY)

        issue = next(i for i in result.cost if i.id == "COST001")
        assert issue.line == 2
        assert issue.column == 1
        assert issue.estimated_savings == "Could reduce costs by 40-80%"

    def test_platform_specific_rules(self):
        bigquery = analyze("SELECT 1", Platform.BIGQUERY)
        snowflake = analyze("SELECT 1", Platform.SNOWFLAKE)

        assert bigquery.has_issue("BP002")
        assert not snowflake.has_issue("BP002")
        assert snowflake.has_issue("MOD003")
        assert snowflake.has_issue("COST004")
        assert not bigquery.has_issue("COST004")

    def test_snowflake_sample_suppresses_cost004(self):
        result = analyze("SELECT id FROM t SAMPLE(10) WHERE id > 1", Platform.SNOWFLAKE)

        assert not result.has_issue("COST004")

    def test_filter_after_group_by(self):
        result = analyze(
            "SELECT a, COUNT(*) FROM t GROUP BY a HAVING COUNT(*) > 1",
            Platform.BIGQUERY,
        )

        assert result.has_issue("PERF003")

    def test_nested_selects(self):
        sql = (
            "SELECT a FROM (SELECT a FROM (SELECT a FROM "
            "(SELECT a FROM t WHERE a > 0) x) y) z WHERE a < 10"
        )
        result = analyze(sql, Platform.SNOWFLAKE)

        assert result.has_issue("MOD002")
        assert result.has_issue("PERF001")

    def test_issues_in_category_order(self):
        result = analyze("SELECT * FROM t ORDER BY id", Platform.BIGQUERY)

        categories = [issue.category for issue in result.issues]
        order = list(Category)
        assert categories == sorted(categories, key=order.index)


# =============================================================================
# Results and scores
# =============================================================================


class TestAnalysisResult:
    """Test result shape and scores."""

    def test_empty_query_is_invalid(self):
        for sql in ("", "   \n\t"):
            result = analyze(sql, Platform.BIGQUERY)

            assert not result.valid
            assert result.issues == ()
            assert result.summary.score == 0
            assert result.summary.cost_score == 0

    def test_bigquery_select_star_scores(self):
        result = analyze("SELECT * FROM huge_table", Platform.BIGQUERY)

        assert [i.id for i in result.issues] == ["BP001", "COST001"]
        assert result.summary.best_practices_score == 90
        assert result.summary.performance_score == 100
        assert result.summary.modularization_score == 100
        assert result.summary.cost_score == 85
        # 0.25*90 + 0.30*100 + 0.20*100 + 0.25*85 = 93.75
        assert result.summary.score == 94

    def test_snowflake_rounds_half_up(self):
        result = analyze("SELECT * FROM t", Platform.SNOWFLAKE)

        # 0.25*90 + 0.30*100 + 0.20*95 + 0.25*80 = 91.5
        assert result.summary.score == 92

    def test_clean_query_scores_100(self):
        result = analyze("SELECT id FROM t WHERE id = 1", Platform.DATABRICKS)

        assert result.issues == ()
        assert result.summary.score == 100

    def test_issues_by_severity(self):
        result = analyze("SELECT * FROM t", Platform.BIGQUERY)

        assert [i.id for i in result.issues_by_severity(Severity.HIGH)] == ["COST001"]
        assert [i.id for i in result.issues_by_severity(Severity.MEDIUM)] == ["BP001"]

    def test_to_dict_is_json_ready(self):
        data = analyze("SELECT * FROM t", Platform.BIGQUERY).to_dict()

        assert data["platform"] == "bigquery"
        assert data["best_practices"][0]["category"] == "Best Practices"
        assert data["best_practices"][0]["severity"] == "medium"
        assert data["summary"]["score"] == 94


# =============================================================================
# Configuration
# =============================================================================


class TestAnalyzerConfig:
    """Test that Config drives thresholds, toggles and weights."""

    def test_length_threshold(self):
        sql = "SELECT id FROM t WHERE id = 1"
        config = Config(default_length_threshold=10)

        assert Analyzer(config=config).analyze(sql, Platform.BIGQUERY).has_issue("MOD001")
        assert not Analyzer(config=Config()).analyze(sql, Platform.BIGQUERY).has_issue("MOD001")

    def test_per_rule_threshold_overrides_default(self):
        sql = "SELECT id FROM t WHERE id = 1"
        config = Config(rules={"MOD001": RuleConfig(thresholds={"length_threshold": 5})})

        assert Analyzer(config=config).analyze(sql, Platform.BIGQUERY).has_issue("MOD001")

    def test_disabled_rule(self):
        config = Config(rules={"BP001": RuleConfig(enabled=False)})

        result = Analyzer(config=config).analyze("SELECT * FROM t", Platform.BIGQUERY)

        assert not result.has_issue("BP001")
        assert result.summary.best_practices_score == 100

    def test_custom_weights(self):
        weights = CategoryWeights(best_practices=0.0, performance=0.0, modularization=0.0, cost=1.0)
        config = Config(category_weights=weights)

        result = Analyzer(config=config).analyze("SELECT * FROM t", Platform.BIGQUERY)

        assert result.summary.score == result.summary.cost_score == 85

    def test_weights_are_normalized(self):
        weights = CategoryWeights(best_practices=1, performance=1, modularization=1, cost=1)

        normalized = weights.normalized()

        assert normalized.cost == pytest.approx(0.25)


# =============================================================================
# Catalog-driven analysis
# =============================================================================


class TestCatalogAnalysis:
    """Test analysis with a caller-supplied catalog."""

    def test_disabled_catalog_rule_does_not_fire(self):
        catalog = default_catalog(Platform.BIGQUERY)
        catalog.disable("COST001")

        result = analyze("SELECT * FROM t", Platform.BIGQUERY, catalog)

        assert not result.has_issue("COST001")
        assert result.has_issue("BP001")

    def test_catalog_overrides_severity_and_name(self):
        catalog = default_catalog(Platform.BIGQUERY)
        catalog.set_severity("BP001", Severity.LOW)

        result = analyze("SELECT * FROM `proj.ds.t`", Platform.BIGQUERY, catalog)

        issue = next(i for i in result.issues if i.id == "BP001")
        assert issue.severity == Severity.LOW
        assert issue.message == "Using SELECT * is not recommended"
        assert result.summary.best_practices_score == 95

    def test_builtins_missing_from_catalog_are_ignored(self):
        catalog = default_catalog(Platform.BIGQUERY)
        for rule_id in catalog.rule_ids():
            catalog.disable(rule_id)

        result = analyze("SELECT * FROM t", Platform.BIGQUERY, catalog)

        assert result.issues == ()
        assert result.summary.score == 100

    def test_custom_rule_matches_keyword(self):
        catalog = default_catalog(Platform.SNOWFLAKE)
        rule = catalog.add_custom_rule(
            Category.PERFORMANCE,
            name="Avoid regex filters",
            description="Avoid regexp_like filters",
            severity=Severity.MEDIUM,
        )

        result = analyze("SELECT a FROM t WHERE regexp_like(a, 'x')", Platform.SNOWFLAKE, catalog)

        issue = next(i for i in result.performance if i.id == rule.id)
        assert issue.message == "Avoid regex filters"
        assert issue.estimated_impact == CUSTOM_IMPACT

    def test_custom_cost_rule_carries_savings(self):
        catalog = default_catalog(Platform.BIGQUERY)
        rule = catalog.add_custom_rule(Category.COST, name="No cross joins", description="cross joins explode")

        result = analyze("SELECT a FROM t CROSS JOIN u WHERE a = 1", Platform.BIGQUERY, catalog)

        issue = next(i for i in result.cost if i.id == rule.id)
        assert issue.estimated_savings == CUSTOM_SAVINGS
        assert issue.estimated_impact is None

    def test_catalog_bp002_checks_schema_qualification(self):
        catalog = default_catalog(Platform.BIGQUERY)

        unqualified = analyze("SELECT id FROM orders WHERE id = 1", Platform.BIGQUERY, catalog)
        qualified = analyze("SELECT id FROM `proj.ds.orders` WHERE id = 1", Platform.BIGQUERY, catalog)

        issue = next(i for i in unqualified.issues if i.id == "BP002")
        assert issue.name == "Schema Qualification"
        assert issue.severity == Severity.LOW
        assert not qualified.has_issue("BP002")

    def test_catalog_bp002_on_snowflake(self):
        data = default_catalog(Platform.BIGQUERY).to_dict()
        data["platform"] = "snowflake"
        catalog = catalog_from_dict(data)

        unqualified = analyze("SELECT id FROM orders WHERE id = 1", Platform.SNOWFLAKE, catalog)
        qualified = analyze("SELECT id FROM db.sales.orders WHERE id = 1", Platform.SNOWFLAKE, catalog)

        assert unqualified.has_issue("BP002")
        assert not qualified.has_issue("BP002")

    def test_catalog_bp002_ignores_subqueries(self):
        catalog = default_catalog(Platform.BIGQUERY)

        result = analyze(
            "SELECT id FROM (SELECT id FROM `proj.ds.orders`) WHERE id = 1",
            Platform.BIGQUERY,
            catalog,
        )

        assert not result.has_issue("BP002")

    def test_catalog_is_not_modified(self):
        catalog = default_catalog(Platform.BIGQUERY)
        before = catalog.to_dict()

        analyze("SELECT * FROM t", Platform.BIGQUERY, catalog)

        assert catalog.to_dict() == before


class TestKeywordRuleMatcher:
    """Test keyword extraction for custom rules."""

    def test_keywords_longest_first(self):
        matcher = KeywordRuleMatcher()

        assert matcher.keywords("Regular expression predicates are expensive") == [
            "expression", "predicates", "expensive",
        ]

    def test_short_words_are_ignored(self):
        matcher = KeywordRuleMatcher()

        assert matcher.keywords("a an the of") == []

    def test_empty_description_never_matches(self):
        rule = RuleDefinition(id="CUSTOM-1", name="x", description="", custom=True)

        assert not KeywordRuleMatcher().matches(rule, "select * from t")


class TestRuleRegistry:
    """A private registry limits analysis to the rules it holds."""

    def test_private_registry_runs_only_its_rules(self):
        from querylens.analyzer.rules.best_practices import SelectStar

        registry = RuleRegistry()
        registry.register(SelectStar)

        result = Analyzer(registry=registry).analyze("SELECT * FROM t", Platform.BIGQUERY)

        assert [issue.id for issue in result.issues] == ["BP001"]

    def test_duplicate_rule_id_is_rejected(self):
        from querylens.analyzer.rules.best_practices import SelectStar

        registry = RuleRegistry()
        registry.register(SelectStar)

        with pytest.raises(ValueError, match="BP001"):
            registry.register(SelectStar)

    def test_for_platform_filters(self):
        from querylens.analyzer.rules.best_practices import DateTruncUsage, SelectStar

        registry = RuleRegistry()
        registry.register(SelectStar)
        registry.register(DateTruncUsage)

        assert registry.for_platform(Platform.BIGQUERY) == [SelectStar]
        assert registry.get("BP003") is DateTruncUsage
        assert registry.get("BP999") is None


class TestFailingRule:
    """A rule that raises is logged and skipped."""

    def test_rule_exception_is_contained(self, monkeypatch, caplog):
        from querylens.analyzer.rules.best_practices import SelectStar

        def boom(self, ctx):
            raise RuntimeError("broken predicate")

        monkeypatch.setattr(SelectStar, "matches", boom)

        result = analyze("SELECT * FROM t", Platform.BIGQUERY)

        assert not result.has_issue("BP001")
        assert result.has_issue("COST001")
        assert "broken predicate" in caplog.text
