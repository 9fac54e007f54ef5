"""
Core engine for the Lexiquery backend.

Wires the pipeline together and exposes the operations the transport layer
calls:
1. extract_entities()    - tagging only, for live highlighting while typing
2. process_query()       - tag -> route -> compile -> execute -> summarize
3. refresh_domain_cache() - reload live product / customer / user values
4. get_suggestions()     - autocomplete over cached domain values

Every collaborator (datastore, lexicon, cache, clock) is passed in, so one
process can host several engines and tests can pin "now".
"""

import json
import time
from typing import Any, Dict, List, Optional

import pandas as pd

from analytics_engine.duckdb_manager import DuckDBManager
from data_sources.base_store import DataStore
from execution_layer.executor import QueryExecutor
from execution_layer.predicate_compiler import compile_predicates
from explanation_layer.result_summarizer import summarize
from lexicon.lexicon_store import Lexicon, get_lexicon
from planning_layer.entity_types import EntityMatch, FilterPredicate
from planning_layer.span_tagger import SpanTagger
from planning_layer.table_router import TableRouter
from schema_intelligence.domain_cache import DomainValueCache
from utils.config_loader import Config, get_config, resolve_backend_path
from utils.request_context import Clock, RequestContext, system_clock


def _records(df: pd.DataFrame) -> List[Dict[str, Any]]:
    """JSON-safe records (ISO dates, NaN -> None)."""
    if df is None or df.empty:
        return []
    return json.loads(df.to_json(orient="records", date_format="iso"))


class QueryEngine:
    def __init__(self, store: DataStore, lexicon: Lexicon, cache: Optional[DomainValueCache] = None,
                 clock: Clock = system_clock, row_limit: int = 50, max_workers: int = 8,
                 table_timeout_seconds: float = 5.0, request_timeout_seconds: float = 15.0):
        self.store = store
        self.lexicon = lexicon
        self.cache = cache if cache is not None else DomainValueCache(store, lexicon)
        self.clock = clock
        self.tagger = SpanTagger(lexicon, self.cache)
        self.router = TableRouter(lexicon)
        self.executor = QueryExecutor(
            store,
            row_limit=row_limit,
            max_workers=max_workers,
            table_timeout_seconds=table_timeout_seconds,
            request_timeout_seconds=request_timeout_seconds,
        )
        self._home_tables = {name: r.home_table for name, r in lexicon.categories.items()}

    @classmethod
    def from_config(cls, config: Config = None, store: DataStore = None,
                    lexicon: Lexicon = None, clock: Clock = system_clock) -> "QueryEngine":
        """Build an engine from settings.yaml (and the env overrides it honours)."""
        config = config or get_config()
        lexicon = lexicon or get_lexicon()
        if store is None:
            db_path = config.duckdb.snapshot_path
            store = DuckDBManager(db_path if db_path == ":memory:" else resolve_backend_path(db_path))

        cache = DomainValueCache(
            store,
            lexicon,
            row_limit=config.cache.domain_row_limit,
            prefix_min_length=config.cache.prefix_min_length,
            prefix_max_length=config.cache.prefix_max_length,
        )
        return cls(
            store,
            lexicon,
            cache=cache,
            clock=clock,
            row_limit=config.query.row_limit,
            max_workers=config.query.max_workers,
            table_timeout_seconds=config.query.table_timeout_seconds,
            request_timeout_seconds=config.query.request_timeout_seconds,
        )

    def _context(self, user_id: Optional[str]) -> RequestContext:
        return RequestContext.create(user_id=user_id, clock=self.clock)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def extract_entities(self, text: str, user_id: Optional[str] = None) -> List[EntityMatch]:
        """Tagging only, no query execution."""
        return self.tagger.tag(text, self._context(user_id))

    def compile_all(self, tables: List[str], entities: List[EntityMatch],
                    question: str = "") -> Dict[str, List[FilterPredicate]]:
        """Predicates for every target table known to the lexicon."""
        predicates = {}
        for table in tables:
            if not self.lexicon.has_table(table):
                predicates[table] = []
                continue
            predicates[table] = compile_predicates(
                table, self.lexicon.taxonomy(table), entities, question, self._home_tables
            )
        return predicates

    def process_query(self, question: str, user_id: Optional[str] = None,
                      timeout_seconds: Optional[float] = None) -> Dict[str, Any]:
        """
        Run the full pipeline for one question.

        Never raises: an unexpected failure yields an empty response whose
        summary explains what went wrong.

        Returns:
            dict with:
            - entities: Tagged spans
            - target_tables: Tables queried, primary first
            - routing: Reason per table
            - predicates: Applied filters per table
            - rows_by_table / merged_rows / counts / total_rows
            - summary_text, applied_filters, homogeneity
            - errors_by_table: Per-table failures (table -> message)
            - error: Pipeline failure message, or None
            - metadata: execution time, user id
        """
        start_time = time.time()
        context = self._context(user_id)

        try:
            entities = self.tagger.tag(question, context)
            routing = self.router.route(entities)
            predicates = self.compile_all(routing.tables, entities, question)
            execution = self.executor.execute(routing.tables, predicates, timeout_seconds=timeout_seconds)
            summary = summarize(execution, entities, predicates)
        except Exception as e:
            print(f"[QueryEngine] Pipeline failed: {e}")
            return self._empty_response(question, context, start_time, str(e))

        rows_by_table = {table: _records(df) for table, df in execution.rows_by_table.items()}
        merged = [
            {"_table": table, **record}
            for table, records in rows_by_table.items()
            for record in records
        ]

        return {
            "question": question,
            "entities": [e.to_dict() for e in entities],
            "target_tables": routing.tables,
            "routing": routing.reasons,
            "predicates": {t: [p.to_dict() for p in ps] for t, ps in predicates.items()},
            "rows_by_table": rows_by_table,
            "merged_rows": merged,
            "counts": summary.counts,
            "total_rows": summary.total_rows,
            "summary_text": summary.text,
            "applied_filters": summary.applied_filters,
            "homogeneity": summary.homogeneity,
            "errors_by_table": execution.errors_by_table,
            "error": None,
            "metadata": {
                "user_id": context.user_id,
                "now": context.now.isoformat(),
                "execution_time": time.time() - start_time,
                "routing_method": routing.method,
            },
        }

    def _empty_response(self, question: str, context: RequestContext, start_time: float, error: str) -> Dict[str, Any]:
        return {
            "question": question,
            "entities": [],
            "target_tables": [],
            "routing": {},
            "predicates": {},
            "rows_by_table": {},
            "merged_rows": [],
            "counts": {},
            "total_rows": 0,
            "summary_text": f"Sorry, that question could not be processed ({error}).",
            "applied_filters": [],
            "homogeneity": 0.0,
            "errors_by_table": {},
            "error": error,
            "metadata": {
                "user_id": context.user_id,
                "now": context.now.isoformat(),
                "execution_time": time.time() - start_time,
                "routing_method": None,
            },
        }

    def refresh_domain_cache(self) -> Dict[str, int]:
        """Force a reload of the domain value cache. Returns values per category."""
        self.cache.refresh()
        return self.cache.stats()

    def get_suggestions(self, query: str, category: Optional[str] = None, limit: int = 10) -> List[Dict[str, Any]]:
        self.cache.ensure_loaded()
        return self.cache.suggestions(query, category=category, limit=limit)
