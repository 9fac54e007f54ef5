"""
Query Executor - runs one bounded lookup per target table.

Lookups are independent, so they fan out over a thread pool and are joined
before the summary is built. Each table gets its own timeout and the whole
fan-out shares an overall deadline; a table that fails or does not answer
in time contributes zero rows and never aborts its siblings. There is no
retry.
"""

import concurrent.futures
import time
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

import pandas as pd

from data_sources.base_store import DataStore
from planning_layer.entity_types import FilterPredicate


@dataclass
class ExecutionResult:
    rows_by_table: Dict[str, pd.DataFrame] = field(default_factory=dict)
    errors_by_table: Dict[str, str] = field(default_factory=dict)
    timed_out: List[str] = field(default_factory=list)
    elapsed_seconds: float = 0.0

    @property
    def counts(self) -> Dict[str, int]:
        return {table: len(df) for table, df in self.rows_by_table.items()}

    @property
    def total_rows(self) -> int:
        return sum(self.counts.values())


class QueryExecutor:
    def __init__(self, store: DataStore, row_limit: int = 50, max_workers: int = 8,
                 table_timeout_seconds: float = 5.0, request_timeout_seconds: float = 15.0):
        self.store = store
        self.row_limit = row_limit
        self.max_workers = max_workers
        self.table_timeout_seconds = table_timeout_seconds
        self.request_timeout_seconds = request_timeout_seconds

    def _run_table(self, table: str, predicates: Sequence[FilterPredicate]) -> pd.DataFrame:
        df = self.store.select_filtered(table, list(predicates), self.row_limit)
        df.attrs['table'] = table
        df.attrs['predicates'] = [p.describe() for p in predicates]
        return df

    def execute(self, tables: List[str], predicates_by_table: Dict[str, List[FilterPredicate]],
                timeout_seconds: float = None) -> ExecutionResult:
        """
        Execute one lookup per table.

        Args:
            tables: Target tables in routing order (result keeps this order)
            predicates_by_table: Predicates per table (missing = unfiltered)
            timeout_seconds: Overall deadline override

        Returns:
            ExecutionResult with a DataFrame for every table (empty on failure)
        """
        start = time.monotonic()
        result = ExecutionResult()
        if not tables:
            return result

        overall = self.request_timeout_seconds if timeout_seconds is None else timeout_seconds
        deadline = start + overall
        table_deadline = start + min(self.table_timeout_seconds, overall)

        pool = concurrent.futures.ThreadPoolExecutor(
            max_workers=max(1, min(self.max_workers, len(tables))),
            thread_name_prefix="table-query",
        )
        try:
            futures = {
                table: pool.submit(self._run_table, table, predicates_by_table.get(table, []))
                for table in dict.fromkeys(tables)
            }

            for table, future in futures.items():
                remaining = max(0.0, min(table_deadline, deadline) - time.monotonic())
                try:
                    result.rows_by_table[table] = future.result(timeout=remaining)
                except concurrent.futures.TimeoutError:
                    future.cancel()
                    result.rows_by_table[table] = pd.DataFrame()
                    result.errors_by_table[table] = "timeout"
                    result.timed_out.append(table)
                    print(f"[Executor] Query timed out for {table}")
                except Exception as e:
                    result.rows_by_table[table] = pd.DataFrame()
                    result.errors_by_table[table] = str(e)
                    print(f"[Executor] Query failed for {table}: {e}")
        finally:
            # Stragglers keep running in the background; nobody waits for them
            pool.shutdown(wait=False, cancel_futures=True)

        result.elapsed_seconds = time.monotonic() - start
        return result
