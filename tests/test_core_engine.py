"""
End-to-end tests for the QueryEngine
=====================================
Full pipeline against the in-memory demo DuckDB, "now" pinned to
Wednesday 2024-06-12 10:30.
"""

import pytest

from core_engine import QueryEngine
from conftest import CURRENT_USER, FIXED_NOW


def ids(result, table):
    return sorted(row["id"] for row in result["rows_by_table"][table])


def entity_kinds(result):
    return [(e["kind"], e["text"]) for e in result["entities"]]


class TestScenarios:
    def test_table_only(self, engine):
        result = engine.process_query("tasks", user_id=CURRENT_USER)

        assert entity_kinds(result) == [("TableEntity", "tasks")]
        assert result["target_tables"] == ["tasks"]
        assert result["predicates"] == {"tasks": []}
        assert result["counts"] == {"tasks": 6}
        assert result["summary_text"] == "Found 6 records across 1 table: tasks — 6."
        assert result["error"] is None

    def test_status_filter(self, engine):
        result = engine.process_query("pending tasks", user_id=CURRENT_USER)

        assert entity_kinds(result) == [("StatusFilter", "pending"), ("TableEntity", "tasks")]
        assert result["applied_filters"] == ["tasks.status = 'pending'"]
        assert ids(result, "tasks") == ["tsk-001", "tsk-004", "tsk-005"]
        assert result["homogeneity"] == 1.0

    def test_pronoun_and_today(self, engine):
        result = engine.process_query("my tasks today", user_id=CURRENT_USER)

        assert entity_kinds(result) == [
            ("Pronoun", "my"), ("TableEntity", "tasks"), ("Temporal", "today"),
        ]
        assert result["applied_filters"] == [
            "tasks.assigned_to = 'usr-001'",
            "tasks.due_date in [2024-06-12, 2024-06-13)",
        ]
        assert ids(result, "tasks") == ["tsk-001", "tsk-002"]

    def test_product_word_pulls_in_products(self, engine):
        result = engine.process_query("laptop sales above 1000", user_id=CURRENT_USER)

        assert entity_kinds(result) == [
            ("DomainValue", "laptop"), ("TableEntity", "sales"), ("NumericFilter", "above 1000"),
        ]
        assert result["target_tables"] == ["sales", "products"]
        assert [(p["column"], p["operator"], p["value"]) for p in result["predicates"]["sales"]] == [
            ("product_name", "contains", "laptop"),
            ("total_amount", "gt", 1000),
        ]
        assert ids(result, "sales") == ["sal-001", "sal-002", "sal-005"]
        assert ids(result, "products") == ["prd-001", "prd-002"]
        assert result["total_rows"] == 5

    def test_last_week_is_one_open_ended_filter(self, engine):
        result = engine.process_query("sales from last week", user_id=CURRENT_USER)

        temporal = [e for e in result["entities"] if e["kind"] == "Temporal"]
        assert len(temporal) == 1
        assert temporal[0]["text"] == "last week"
        assert result["predicates"]["sales"][0]["operator"] == "gte"
        assert ids(result, "sales") == ["sal-001", "sal-002", "sal-004", "sal-006"]

    def test_grouped_number_in_comparison(self, engine):
        result = engine.process_query("laptop sales above 1,000", user_id=CURRENT_USER)

        assert ("NumericFilter", "above 1,000") in entity_kinds(result)
        assert ids(result, "sales") == ["sal-001", "sal-002", "sal-005"]

    def test_rows_matched_by_assignee_id_count_as_homogeneous(self, engine):
        result = engine.process_query("tasks for Lena Fischer", user_id=CURRENT_USER)

        assert "tasks.assigned_to = 'usr-003'" in result["applied_filters"]
        assert ids(result, "tasks") == ["tsk-005"]
        assert result["homogeneity"] == 1.0


class TestResponseShape:
    def test_merged_rows_and_metadata(self, engine):
        result = engine.process_query("laptop sales above 1000", user_id=CURRENT_USER)

        assert len(result["merged_rows"]) == 5
        assert {row["_table"] for row in result["merged_rows"]} == {"sales", "products"}
        assert result["metadata"]["user_id"] == CURRENT_USER
        assert result["metadata"]["now"] == FIXED_NOW.isoformat()
        assert result["metadata"]["routing_method"] == "entities"

    def test_rows_are_json_safe(self, engine):
        result = engine.process_query("tasks", user_id=CURRENT_USER)
        completed = [r for r in result["rows_by_table"]["tasks"] if r["id"] == "tsk-001"][0]
        assert completed["completed_at"] is None
        assert completed["due_date"].startswith("2024-06-12T17:00")

    def test_anonymous_pronoun_does_not_filter(self, engine):
        result = engine.process_query("my tasks")
        assert result["counts"] == {"tasks": 6}
        assert result["entities"][0]["is_filter_candidate"] is False

    def test_personal_fallback(self, engine):
        result = engine.process_query("what do I have today", user_id=CURRENT_USER)
        assert result["metadata"]["routing_method"] == "personal_fallback"
        assert ids(result, "tasks") == ["tsk-001", "tsk-002"]
        assert ids(result, "shifts") == ["shf-001"]

    def test_predicates_are_reproducible(self, engine):
        first = engine.process_query("my pending tasks this week", user_id=CURRENT_USER)
        second = engine.process_query("my pending tasks this week", user_id=CURRENT_USER)
        assert first["predicates"] == second["predicates"]
        assert first["entities"] == second["entities"]


class TestDegradation:
    def test_pipeline_failure_becomes_error_response(self, engine, monkeypatch):
        def explode(entities):
            raise RuntimeError("router exploded")

        monkeypatch.setattr(engine.router, "route", explode)
        result = engine.process_query("pending tasks", user_id=CURRENT_USER)

        assert result["error"] == "router exploded"
        assert result["entities"] == []
        assert result["total_rows"] == 0
        assert "router exploded" in result["summary_text"]

    def test_failing_table_is_reported_not_raised(self, flaky_store, lexicon):
        engine = QueryEngine(flaky_store(failing={"sales"}), lexicon, clock=lambda: FIXED_NOW)
        result = engine.process_query("laptop sales above 1000", user_id=CURRENT_USER)

        assert result["counts"] == {"sales": 0, "products": 2}
        assert "sales" in result["errors_by_table"]
        assert result["summary_text"].endswith("Could not query: sales.")
        assert result["error"] is None

    def test_timeout_returns_partial_rows(self, flaky_store, lexicon):
        store = flaky_store(slow={"sales"}, delay=1.0)
        engine = QueryEngine(store, lexicon, clock=lambda: FIXED_NOW)
        engine.cache.ensure_loaded()

        result = engine.process_query("laptop sales", timeout_seconds=0.2)

        assert result["errors_by_table"] == {"sales": "timeout"}
        assert result["counts"]["products"] == 2

    def test_unavailable_cache_still_routes_by_table(self, flaky_store, lexicon):
        store = flaky_store(failing={"products", "customers", "users"})
        engine = QueryEngine(store, lexicon, clock=lambda: FIXED_NOW)
        result = engine.process_query("pending tasks", user_id=CURRENT_USER)

        assert result["counts"] == {"tasks": 3}
        assert set(engine.cache.last_errors) == {"product", "customer", "user"}


class TestCacheOperations:
    def test_refresh_reports_values_per_category(self, engine):
        assert engine.refresh_domain_cache() == {"product": 6, "customer": 8, "user": 4}

    def test_suggestions_load_the_cache_on_demand(self, engine):
        assert not engine.cache.is_loaded
        values = [s["value"] for s in engine.get_suggestions("lap", category="product")]
        assert values == ["Business Laptop", "Gaming Laptop"]

    def test_extract_entities_only_tags(self, engine):
        entities = engine.extract_entities("my tasks", user_id=CURRENT_USER)
        assert [e.kind.value for e in entities] == ["Pronoun", "TableEntity"]
        assert entities[0].canonical_value == CURRENT_USER

    def test_from_config_uses_given_store(self, demo_store, lexicon):
        engine = QueryEngine.from_config(store=demo_store, lexicon=lexicon, clock=lambda: FIXED_NOW)
        assert engine.executor.row_limit == 50
        assert engine.process_query("tasks")["counts"] == {"tasks": 6}


@pytest.mark.parametrize("question", ["", "   ", "?!", "x" * 2000])
def test_odd_input_never_raises(engine, question):
    result = engine.process_query(question, user_id=CURRENT_USER)
    assert result["error"] is None
