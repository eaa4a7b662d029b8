"""Tests for suggestion rendering."""

from querydoctor.analyzer.models import Suggestion
from querydoctor.analyzer.suggestions import TEMPLATES, SuggestionRenderer


class TestSuggestionRenderer:

    def test_renders_template_with_context(self):
        renderer = SuggestionRenderer()
        suggestion = Suggestion(
            template_key="Performance/n_plus_one",
            context={"count": 12, "relation": "author", "table": "posts"},
        )

        text = renderer.render(suggestion)

        assert text.startswith("The same query ran 12 times.")
        assert "author relation of posts" in text

    def test_missing_context_values_stay_as_names(self):
        renderer = SuggestionRenderer()
        suggestion = Suggestion(template_key="Performance/hydration", context={})

        assert "{rows}" in renderer.render(suggestion)

    def test_lists_render_comma_separated(self):
        renderer = SuggestionRenderer()
        suggestion = Suggestion(
            template_key="Security/sql_injection",
            context={"patterns": ["line comment", "UNION SELECT"]},
        )

        assert "line comment, UNION SELECT" in renderer.render(suggestion)

    def test_unknown_template_falls_back_to_generic(self):
        renderer = SuggestionRenderer()
        suggestion = Suggestion(template_key="Custom/thing", context={"b": 2, "a": 1})

        assert renderer.render(suggestion) == "Custom/thing: a=1, b=2"

    def test_none_renders_empty(self):
        assert SuggestionRenderer().render(None) == ""

    def test_custom_templates_override(self):
        renderer = SuggestionRenderer({"Performance/slow_query": "Slow: {execution_ms}"})
        suggestion = Suggestion(template_key="Performance/slow_query", context={"execution_ms": 120})

        assert renderer.render(suggestion) == "Slow: 120"
        assert renderer.has_template("Integrity/cascade_all")

    def test_bad_format_spec_falls_back(self):
        renderer = SuggestionRenderer({"Custom/bad": "{count:d}"})
        suggestion = Suggestion(template_key="Custom/bad", context={"count": "many"})

        assert renderer.render(suggestion) == "Custom/bad: count=many"

    def test_every_analyzer_template_exists(self):
        expected = {
            "Performance/n_plus_one",
            "Performance/lazy_loading",
            "Performance/frequent_query",
            "Performance/slow_query",
            "Performance/missing_index",
            "Performance/ineffective_like",
            "Performance/join_too_many",
            "Performance/join_unused",
            "Performance/left_join_with_not_null",
            "Performance/setMaxResults_with_collection_join",
            "Performance/partial_collection_load",
            "Performance/order_by_without_limit",
            "Performance/find_all",
            "Performance/hydration",
            "Performance/flush_in_loop",
            "Performance/entity_manager_clear",
            "Security/sql_injection",
            "Security/dql_injection",
            "Integrity/query_builder_incorrect_null",
            "Integrity/query_builder_empty_in",
            "Integrity/query_builder_missing_params",
            "Integrity/query_builder_unescaped_like",
            "Integrity/division_by_zero",
            "Integrity/transaction_nested",
            "Integrity/transaction_multiple_flush",
            "Integrity/transaction_unclosed",
            "Integrity/transaction_too_long",
            "Integrity/cascade_all",
            "Integrity/orphan_removal_without_cascade_remove",
            "Integrity/on_delete_cascade_mismatch",
            "Integrity/float_for_money",
            "Integrity/decimal_precision",
        }

        assert expected <= set(TEMPLATES)
