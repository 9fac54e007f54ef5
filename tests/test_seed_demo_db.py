"""
Tests for the demo seeding script
==================================
"""

from analytics_engine.duckdb_manager import DuckDBManager
from data_sources.demo_data import DEMO_TABLES
from scripts.seed_demo_db import main


def test_seed_creates_every_demo_table(tmp_path):
    db_path = tmp_path / "snapshots" / "demo.duckdb"
    assert main(["--db", str(db_path)]) == 0

    store = DuckDBManager(db_path, read_only=True)
    try:
        assert set(store.list_tables()) == set(DEMO_TABLES)
        assert store.count("tasks", []) == len(DEMO_TABLES["tasks"])
    finally:
        store.close()


def test_reseeding_replaces_tables(tmp_path):
    db_path = tmp_path / "demo.duckdb"
    main(["--db", str(db_path)])
    main(["--db", str(db_path)])

    store = DuckDBManager(db_path, read_only=True)
    try:
        assert store.count("products", []) == len(DEMO_TABLES["products"])
    finally:
        store.close()
