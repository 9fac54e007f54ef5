import threading
from pathlib import Path
from typing import List, Sequence

import duckdb
import pandas as pd

from data_sources.base_store import DataStore, DataStoreError
from execution_layer.sql_compiler import compile_count, compile_select
from utils.sql_utils import quote_identifier


class DuckDBManager(DataStore):
    """
    DataStore backed by a DuckDB file (or an in-memory database).

    Every read runs on its own cursor, so the executor's worker threads can
    query in parallel over one connection.
    """

    def __init__(self, path="data_sources/snapshots/latest.duckdb", read_only: bool = False):
        self.path = str(path)
        if self.path != ":memory:":
            # Ensure directory exists before connecting
            db_path = Path(self.path)
            db_path.parent.mkdir(parents=True, exist_ok=True)
            self.path = str(db_path)
        self.conn = duckdb.connect(self.path, read_only=read_only)
        self._tables_lock = threading.Lock()
        self._tables_cache = None

    def list_tables(self) -> List[str]:
        with self._tables_lock:
            if self._tables_cache is None:
                self._tables_cache = [row[0] for row in self.conn.cursor().execute("SHOW TABLES").fetchall()]
            return list(self._tables_cache)

    def _check_table(self, table: str) -> None:
        if table not in self.list_tables():
            raise DataStoreError(f"Unknown table: {table}")

    def query(self, sql: str, params: Sequence = ()) -> pd.DataFrame:
        try:
            cursor = self.conn.cursor()
        except duckdb.Error as e:
            raise DataStoreError(f"DuckDB connection unavailable: {e}") from e
        try:
            return cursor.execute(sql, list(params)).fetchdf()
        except duckdb.Error as e:
            raise DataStoreError(f"DuckDB query failed: {e}") from e
        finally:
            cursor.close()

    def select_all(self, table: str) -> pd.DataFrame:
        self._check_table(table)
        return self.query(f"SELECT * FROM {quote_identifier(table)}")

    def select_filtered(self, table: str, predicates: Sequence, limit: int) -> pd.DataFrame:
        self._check_table(table)
        sql, params = compile_select(table, predicates, limit)
        return self.query(sql, params)

    def count(self, table: str, predicates: Sequence) -> int:
        self._check_table(table)
        sql, params = compile_count(table, predicates)
        df = self.query(sql, params)
        return int(df["n"].iloc[0])

    def load_dataframe(self, table: str, df: pd.DataFrame) -> None:
        """Replace `table` with the contents of a DataFrame."""
        cursor = self.conn.cursor()
        try:
            cursor.register("_incoming_df", df)
            cursor.execute(f'CREATE OR REPLACE TABLE "{table}" AS SELECT * FROM _incoming_df')
            cursor.unregister("_incoming_df")
        except duckdb.Error as e:
            raise DataStoreError(f"Could not load table {table}: {e}") from e
        finally:
            cursor.close()
        with self._tables_lock:
            self._tables_cache = None

    def get_connection(self):
        """Return the underlying DuckDB connection for advanced queries."""
        return self.conn

    def close(self) -> None:
        self.conn.close()
