import re
from datetime import date, datetime
from typing import Any, Dict, List, Sequence, Tuple

from planning_layer.entity_types import FilterPredicate, OPERATORS
from utils.sql_utils import quote_identifier


# =============================================================================
# Predicate Validation
# =============================================================================

class InvalidPredicateError(ValueError):
    """A predicate cannot be compiled safely (unknown operator, bad column, bad value)."""
    pass


_IDENTIFIER_RE = re.compile(r'^[\w\s\-\.]+$', re.UNICODE)

MAX_VALUE_LENGTH = 10000

COMPARISON_SQL = {
    "gt": ">",
    "lt": "<",
    "gte": ">=",
    "lte": "<=",
}


def _validate_identifier(name: Any, context: str) -> None:
    if not isinstance(name, str) or not name.strip():
        raise InvalidPredicateError(f"Invalid {context}: must be a non-empty string")
    if not _IDENTIFIER_RE.match(name):
        raise InvalidPredicateError(f"Invalid {context}: '{name}' contains invalid characters")


def _validate_value(value: Any, context: str = "value") -> None:
    if value is None:
        raise InvalidPredicateError(f"Invalid {context}: value is required")
    if isinstance(value, str) and len(value) > MAX_VALUE_LENGTH:
        raise InvalidPredicateError(f"Invalid {context}: value too long (max {MAX_VALUE_LENGTH} characters)")


def _validate_predicate(p: FilterPredicate) -> None:
    """Validate a predicate before it reaches SQL."""
    if not isinstance(p, FilterPredicate):
        raise InvalidPredicateError(f"Invalid predicate: expected FilterPredicate, got {type(p).__name__}")

    _validate_identifier(p.column, "column")

    if p.operator not in OPERATORS:
        raise InvalidPredicateError(f"Invalid predicate: operator '{p.operator}' not allowed")

    _validate_value(p.value, context=f"{p.column} value")
    if p.operator == "range":
        _validate_value(p.value2, context=f"{p.column} upper bound")
    if p.operator in COMPARISON_SQL and isinstance(p.value, str):
        raise InvalidPredicateError(f"Invalid predicate: '{p.operator}' needs a numeric or date value")


def _clean_string(value: str) -> str:
    """Remove null bytes."""
    return value.replace('\x00', '')


def _like_pattern(value: str) -> str:
    """Substring pattern with LIKE wildcards in the value escaped."""
    escaped = _clean_string(value).replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')
    return f"%{escaped}%"


# =============================================================================
# Condition Builders
# =============================================================================

def _compile_condition(p: FilterPredicate) -> Tuple[str, List[Any]]:
    """Compile one predicate into a SQL condition and its bound parameters."""
    column = quote_identifier(p.column)

    if p.operator == "contains":
        return (
            f"CAST({column} AS VARCHAR) ILIKE ? ESCAPE '\\'",
            [_like_pattern(str(p.value))],
        )

    if p.operator == "equals":
        if isinstance(p.value, str):
            # Case-insensitive for text
            return f"LOWER(CAST({column} AS VARCHAR)) = LOWER(?)", [_clean_string(p.value)]
        return f"{column} = ?", [p.value]

    if p.operator == "range":
        return f"({column} >= ? AND {column} < ?)", [p.value, p.value2]

    # gt / lt / gte / lte
    return f"{column} {COMPARISON_SQL[p.operator]} ?", [p.value]


def build_where_clause(predicates: Sequence[FilterPredicate]) -> Tuple[str, List[Any]]:
    """
    Build a WHERE clause from predicates.

    Predicates sharing a group are OR-ed, groups are AND-ed. Groups keep
    the order in which they first appear.

    Returns:
        (clause, params) - clause is "" when there are no predicates
    """
    if not predicates:
        return "", []

    groups: Dict[int, List[FilterPredicate]] = {}
    for p in predicates:
        _validate_predicate(p)
        groups.setdefault(p.group, []).append(p)

    conditions = []
    params: List[Any] = []
    for members in groups.values():
        parts = []
        for p in members:
            sql, values = _compile_condition(p)
            parts.append(sql)
            params.extend(values)
        conditions.append(parts[0] if len(parts) == 1 else f"({' OR '.join(parts)})")

    return "WHERE " + " AND ".join(conditions), params


def compile_select(table: str, predicates: Sequence[FilterPredicate], limit: int) -> Tuple[str, List[Any]]:
    """Compile a bounded row lookup."""
    _validate_identifier(table, "table")
    if not isinstance(limit, int) or limit <= 0:
        raise InvalidPredicateError(f"Invalid limit: {limit!r}")

    where, params = build_where_clause(predicates)
    sql = f"SELECT * FROM {quote_identifier(table)} {where} LIMIT {limit}"
    return " ".join(sql.split()), params


def compile_count(table: str, predicates: Sequence[FilterPredicate]) -> Tuple[str, List[Any]]:
    """Compile a row count."""
    _validate_identifier(table, "table")
    where, params = build_where_clause(predicates)
    sql = f"SELECT COUNT(*) AS n FROM {quote_identifier(table)} {where}"
    return " ".join(sql.split()), params


def render_sql(sql: str, params: Sequence[Any]) -> str:
    """Inline parameters for display only. Never execute the result."""
    rendered = sql
    for value in params:
        if isinstance(value, (datetime, date)):
            text = f"'{value.isoformat()}'"
        elif isinstance(value, str):
            text = "'" + value.replace("'", "''") + "'"
        else:
            text = str(value)
        rendered = rendered.replace("?", text, 1)
    return rendered
