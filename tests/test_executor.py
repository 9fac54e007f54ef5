"""
Tests for the Query Executor
=============================
Failure isolation and timeouts use FlakyStore from conftest.
"""

import time

from execution_layer.executor import QueryExecutor
from planning_layer.entity_types import FilterPredicate


PENDING = [FilterPredicate("tasks", "status", "equals", "pending")]


class TestFanOut:
    def test_one_frame_per_table_in_routing_order(self, demo_store):
        result = QueryExecutor(demo_store).execute(["tasks", "users", "products"], {"tasks": PENDING})
        assert list(result.rows_by_table) == ["tasks", "users", "products"]
        assert result.counts == {"tasks": 3, "users": 4, "products": 6}
        assert result.total_rows == 13
        assert result.errors_by_table == {}

    def test_row_limit_applies_per_table(self, demo_store):
        result = QueryExecutor(demo_store, row_limit=2).execute(["sales", "tasks"], {})
        assert result.counts == {"sales": 2, "tasks": 2}

    def test_duplicate_tables_run_once(self, flaky_store):
        store = flaky_store()
        result = QueryExecutor(store).execute(["tasks", "tasks"], {})
        assert store.calls == ["tasks"]
        assert list(result.counts) == ["tasks"]

    def test_no_tables(self, demo_store):
        result = QueryExecutor(demo_store).execute([], {})
        assert result.rows_by_table == {}
        assert result.total_rows == 0

    def test_frames_carry_their_filters(self, demo_store):
        df = QueryExecutor(demo_store).execute(["tasks"], {"tasks": PENDING}).rows_by_table["tasks"]
        assert df.attrs["predicates"] == ["tasks.status = 'pending'"]


class TestFailureIsolation:
    def test_failing_table_yields_empty_frame(self, flaky_store):
        store = flaky_store(failing={"sales"})
        result = QueryExecutor(store).execute(["products", "sales", "customers"], {})

        assert result.counts == {"products": 6, "sales": 0, "customers": 4}
        assert "unavailable" in result.errors_by_table["sales"]
        assert result.timed_out == []

    def test_invalid_predicate_is_isolated(self, demo_store):
        bad = [FilterPredicate("tasks", "due_date", "gt", "tomorrow")]
        result = QueryExecutor(demo_store).execute(["tasks", "users"], {"tasks": bad})
        assert result.counts == {"tasks": 0, "users": 4}
        assert "tasks" in result.errors_by_table

    def test_unknown_table_is_isolated(self, demo_store):
        result = QueryExecutor(demo_store).execute(["invoices", "users"], {})
        assert result.counts == {"invoices": 0, "users": 4}


class TestTimeouts:
    def test_slow_table_returns_partial_results(self, flaky_store):
        store = flaky_store(slow={"sales"}, delay=1.0)
        executor = QueryExecutor(store, table_timeout_seconds=0.2)

        started = time.monotonic()
        result = executor.execute(["products", "sales"], {})

        assert time.monotonic() - started < 0.9
        assert result.counts == {"products": 6, "sales": 0}
        assert result.timed_out == ["sales"]
        assert result.errors_by_table == {"sales": "timeout"}

    def test_caller_timeout_caps_the_request(self, flaky_store):
        store = flaky_store(slow={"products", "sales"}, delay=1.0)
        executor = QueryExecutor(store, table_timeout_seconds=5.0)

        result = executor.execute(["products", "sales", "users"], {}, timeout_seconds=0.2)

        assert sorted(result.timed_out) == ["products", "sales"]
        assert result.counts["users"] == 4
        assert result.elapsed_seconds < 0.9

    def test_tables_run_concurrently(self, flaky_store):
        store = flaky_store(slow={"products", "sales", "customers"}, delay=0.3)
        result = QueryExecutor(store).execute(["products", "sales", "customers"], {})
        assert result.timed_out == []
        assert result.elapsed_seconds < 0.8
