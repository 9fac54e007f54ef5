"""
Tests for the Table Router
===========================
"""

import pytest

from planning_layer.entity_types import EntityKind, EntityMatch, Span
from planning_layer.table_router import TableRouter


@pytest.fixture
def router(lexicon):
    return TableRouter(lexicon)


def route(router, tagger, context, text):
    return router.route(tagger.tag(text, context))


class TestExplicitTables:
    def test_single_table(self, router, tagger, context):
        result = route(router, tagger, context, "tasks")
        assert result.tables == ["tasks"]
        assert result.method == "entities"
        assert not result.is_fallback

    def test_mention_order_is_kept(self, router, tagger, context):
        result = route(router, tagger, context, "shifts and attendance and tasks")
        assert result.tables == ["shifts", "attendance", "tasks"]
        assert result.primary_table == "shifts"

    def test_alias_and_name_of_same_table_collapse(self, router, tagger, context):
        assert route(router, tagger, context, "sales orders").tables == ["sales"]


class TestDomainExpansion:
    def test_product_word_with_sales_pulls_in_products(self, router, tagger, context):
        result = route(router, tagger, context, "laptop sales")
        assert result.tables == ["sales", "products"]
        assert "relates to sales" in result.reasons["products"]

    def test_user_value_with_tasks_pulls_in_users(self, router, tagger, context):
        assert route(router, tagger, context, "Sarah Khan tasks").tables == ["tasks", "users"]

    def test_unrelated_explicit_table_is_not_expanded(self, router, tagger, context):
        # customers are not linked to stock
        assert route(router, tagger, context, "stock for Nadia Haddad").tables == ["stock"]

    def test_product_without_table_uses_defaults(self, router, tagger, context):
        result = route(router, tagger, context, "laptop")
        assert result.tables == ["products", "sales", "stock"]
        assert result.method == "entities"

    def test_second_value_anchors_on_first_values_defaults(self, router, tagger, context):
        # customer defaults bring in sales, which relates to products
        result = route(router, tagger, context, "Nadia Haddad laptop")
        assert result.tables == ["customers", "sales", "products"]


class TestFallbacks:
    def test_nothing_recognised(self, router, tagger, context):
        result = route(router, tagger, context, "hello there")
        assert result.tables == ["products", "sales", "customers"]
        assert result.method == "fallback"
        assert result.is_fallback

    def test_personal_question_without_table(self, router, tagger, context):
        result = route(router, tagger, context, "what do I have today")
        assert result.tables == ["tasks", "shifts", "attendance", "sales"]
        assert result.method == "personal_fallback"

    def test_empty_entity_list(self, router):
        assert router.resolve([]) == ["products", "sales", "customers"]

    def test_unknown_category_is_ignored(self, router):
        odd = EntityMatch("thing", EntityKind.DOMAIN_VALUE, Span(0, 5), 0.9, category="vehicle")
        assert router.route([odd]).method == "fallback"


class TestDebugging:
    def test_debug_reflects_last_route(self, router, tagger, context):
        route(router, tagger, context, "pending tasks")
        debug = router.get_routing_debug()
        assert debug["tables"] == ["tasks"]
        assert ("StatusFilter", "pending") in debug["entities"]

    def test_explanation_marks_primary_table(self, router, tagger, context):
        text = router.explain_routing(tagger.tag("laptop sales", context))
        assert "→ sales" in text
        assert "products:" in text
