"""
Table field taxonomy.

Each business table declares which of its columns play which semantic role
(user, product, customer, status, priority, date, location, numeric). The
predicate compiler never guesses columns; it only reads these roles.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Tuple


ROLES = (
    "user",
    "product",
    "customer",
    "status",
    "priority",
    "date",
    "location",
    "numeric",
)


@dataclass(frozen=True)
class Relationship:
    """A foreign key between two tables."""
    foreign_key: str
    target_key: str = "id"


@dataclass(frozen=True)
class TableFieldTaxonomy:
    """Column roles for one table."""
    table: str
    primary_key: str = "id"
    aliases: Tuple[str, ...] = ()
    user_fields: Tuple[str, ...] = ()
    product_fields: Tuple[str, ...] = ()
    customer_fields: Tuple[str, ...] = ()
    status_fields: Tuple[str, ...] = ()
    priority_fields: Tuple[str, ...] = ()
    date_fields: Tuple[str, ...] = ()
    location_fields: Tuple[str, ...] = ()
    numeric_fields: Tuple[str, ...] = ()
    # Ordered (keyword, column) pairs; first keyword present in the question wins.
    numeric_hints: Tuple[Tuple[str, str], ...] = ()
    relationships: Dict[str, Relationship] = field(default_factory=dict)

    def fields_for(self, role: str) -> Tuple[str, ...]:
        if role not in ROLES:
            raise KeyError(f"Unknown column role: {role}")
        return getattr(self, f"{role}_fields")

    @property
    def owner_field(self) -> Optional[str]:
        """Column identifying the user who owns a row."""
        return self.user_fields[0] if self.user_fields else None

    @property
    def primary_date_field(self) -> Optional[str]:
        return self.date_fields[0] if self.date_fields else None

    def references(self, column: str, home_table: str) -> bool:
        """
        True when `column` holds keys of rows in `home_table`.

        That is either this table's own primary key (when this table *is* the
        home table) or a declared foreign key pointing at it.
        """
        if home_table == self.table:
            return column == self.primary_key
        relationship = self.relationships.get(home_table)
        return relationship is not None and relationship.foreign_key == column

    def numeric_column_for(self, context_words: Iterable[str]) -> Optional[str]:
        """
        Choose the column a numeric comparison applies to.

        Hints are checked in declaration order against the question words;
        without a matching hint the first numeric field is used.
        """
        if not self.numeric_fields:
            return None

        words = {w.lower() for w in context_words}
        for keyword, column in self.numeric_hints:
            if keyword in words and column in self.numeric_fields:
                return column
        return self.numeric_fields[0]


@dataclass(frozen=True)
class DomainSource:
    """A table whose live values feed the domain value cache."""
    category: str
    table: str
    id_column: str
    value_columns: Tuple[str, ...]


@dataclass(frozen=True)
class CategoryRouting:
    """How a domain category pulls tables into a query."""
    category: str
    home_table: str
    default_tables: Tuple[str, ...]
