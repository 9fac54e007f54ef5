"""
Seed a DuckDB snapshot with the demo dataset.

Usage (from backend/):
    python scripts/seed_demo_db.py                 # configured snapshot path
    python scripts/seed_demo_db.py --db other.duckdb
"""

import argparse
import sys
from pathlib import Path

# Make layer packages importable when run as a script
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from analytics_engine.duckdb_manager import DuckDBManager
from data_sources.demo_data import load_demo_data
from utils.config_loader import get_config, resolve_backend_path


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Load the demo tables into a DuckDB file")
    parser.add_argument("--db", help="DuckDB file to (re)create; defaults to duckdb.snapshot_path")
    args = parser.parse_args(argv)

    db_path = args.db or str(resolve_backend_path(get_config().duckdb.snapshot_path))
    print(f"[Seed] Writing demo data to {db_path}")

    manager = DuckDBManager(db_path)
    try:
        counts = load_demo_data(manager)
    finally:
        manager.close()

    for table, n in counts.items():
        print(f"  ✓ {table}: {n} rows")
    return 0


if __name__ == "__main__":
    sys.exit(main())
