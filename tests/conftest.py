"""
Pytest Configuration and Fixtures
==================================
Shared fixtures for the Lexiquery test suite.

Everything runs against an in-memory DuckDB seeded with the demo dataset
and a fixed "now" (Wednesday 2024-06-12 10:30).
"""

import threading
import time
from datetime import datetime
from pathlib import Path

import pytest

from analytics_engine.duckdb_manager import DuckDBManager
from core_engine import QueryEngine
from data_sources.base_store import DataStore, DataStoreError
from data_sources.demo_data import load_demo_data
from lexicon.lexicon_store import load_lexicon
from planning_layer.span_tagger import SpanTagger
from schema_intelligence.domain_cache import DomainValueCache
from utils.request_context import RequestContext

BACKEND_DIR = Path(__file__).parent.parent / "backend"
LEXICON_PATH = BACKEND_DIR / "config" / "lexicon.yaml"

FIXED_NOW = datetime(2024, 6, 12, 10, 30)
CURRENT_USER = "usr-001"


# =============================================================================
# STATIC FIXTURES
# =============================================================================

@pytest.fixture(scope="session")
def lexicon():
    """The shipped lexicon."""
    return load_lexicon(LEXICON_PATH)


@pytest.fixture
def context():
    """Request context for Sarah Khan at the fixed time."""
    return RequestContext(user_id=CURRENT_USER, now=FIXED_NOW)


# =============================================================================
# DATASTORE FIXTURES
# =============================================================================

@pytest.fixture
def demo_store():
    """In-memory DuckDB holding the demo tables."""
    store = DuckDBManager(":memory:")
    load_demo_data(store)
    yield store
    store.close()


@pytest.fixture
def cache(demo_store, lexicon):
    """Loaded domain value cache over the demo data."""
    value_cache = DomainValueCache(demo_store, lexicon)
    value_cache.ensure_loaded()
    return value_cache


@pytest.fixture
def tagger(lexicon, cache):
    return SpanTagger(lexicon, cache)


@pytest.fixture
def engine(demo_store, lexicon):
    """Full pipeline with a pinned clock."""
    return QueryEngine(demo_store, lexicon, clock=lambda: FIXED_NOW)


# =============================================================================
# FAULT INJECTION
# =============================================================================

class FlakyStore(DataStore):
    """Wraps a real store; chosen tables fail or answer slowly."""

    def __init__(self, inner, failing=(), slow=(), delay=0.0):
        self.inner = inner
        self.failing = set(failing)
        self.slow = set(slow)
        self.delay = delay
        self.calls = []
        self._lock = threading.Lock()

    def list_tables(self):
        return self.inner.list_tables()

    def select_all(self, table):
        return self.inner.select_all(table)

    def select_filtered(self, table, predicates, limit):
        with self._lock:
            self.calls.append(table)
        if table in self.slow:
            time.sleep(self.delay)
        if table in self.failing:
            raise DataStoreError(f"{table} is unavailable")
        return self.inner.select_filtered(table, predicates, limit)

    def count(self, table, predicates):
        return self.inner.count(table, predicates)


@pytest.fixture
def flaky_store(demo_store):
    """Factory: flaky_store(failing=[...], slow=[...], delay=...)"""
    def make(**kwargs):
        return FlakyStore(demo_store, **kwargs)
    return make
