"""
Base DataStore Abstract Class

The query pipeline reads business rows only through this contract. Any
relational backend that can filter by column (case-insensitive substring,
equality, comparisons, OR within a group / AND across groups) and cap the
row count can sit behind it.

Rows come back as pandas DataFrames.
"""

from abc import ABC, abstractmethod
from typing import List, Sequence

import pandas as pd


class DataStoreError(Exception):
    """Raised when a table lookup cannot be answered (unknown table, bad SQL, closed store)."""
    pass


class DataStore(ABC):
    """
    Abstract relational data access capability.

    Implementations must tolerate calls from several worker threads.
    """

    @abstractmethod
    def list_tables(self) -> List[str]:
        """Names of the tables available in the store."""
        pass

    @abstractmethod
    def select_all(self, table: str) -> pd.DataFrame:
        """Every row of a table."""
        pass

    @abstractmethod
    def select_filtered(self, table: str, predicates: Sequence, limit: int) -> pd.DataFrame:
        """
        Rows of `table` satisfying `predicates`, at most `limit` of them.

        Args:
            table: Table name
            predicates: FilterPredicate list; same group = OR, different groups = AND
            limit: Row cap (must be positive)

        Raises:
            DataStoreError: the lookup failed
        """
        pass

    @abstractmethod
    def count(self, table: str, predicates: Sequence) -> int:
        """Number of rows satisfying `predicates`."""
        pass

    def close(self) -> None:
        """Release underlying resources. No-op by default."""
        pass
