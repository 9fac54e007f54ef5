"""
Per-request data model of the query pipeline.

EntityMatch  - one recognised span of the question text
FilterPredicate - one column-level constraint for one table

Both are frozen: a request builds them once and never mutates them.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union


class EntityKind(str, Enum):
    TABLE = "TableEntity"
    DOMAIN_VALUE = "DomainValue"
    PRONOUN = "Pronoun"
    TEMPORAL = "Temporal"
    NUMERIC_FILTER = "NumericFilter"
    STATUS_FILTER = "StatusFilter"
    LOCATION_FILTER = "LocationFilter"


@dataclass(frozen=True, order=True)
class Span:
    """Half-open character range [start, end) in the original text."""
    start: int
    end: int

    def __len__(self) -> int:
        return self.end - self.start

    def overlaps(self, other: "Span") -> bool:
        return self.start < other.end and other.start < self.end


@dataclass(frozen=True)
class TemporalRange:
    """
    Resolved temporal expression.

    With `end` set it is the half-open range [start, end); without it the
    phrase is open-ended and means "on or after start".
    """
    label: str
    start: datetime
    end: Optional[datetime] = None

    @property
    def is_open_ended(self) -> bool:
        return self.end is None


@dataclass(frozen=True)
class NumericComparison:
    operator: str  # "gt" | "lt"
    value: Union[int, float]


CanonicalValue = Union[str, TemporalRange, NumericComparison, None]


@dataclass(frozen=True)
class EntityMatch:
    text: str
    kind: EntityKind
    span: Span
    confidence: float
    table: Optional[str] = None
    canonical_value: CanonicalValue = None
    # product / customer / user for domain values, status / priority for status filters
    category: Optional[str] = None
    record_id: Optional[Any] = None
    is_filter_candidate: bool = True
    alternatives: Tuple[str, ...] = ()
    hover_text: str = ""

    def to_dict(self) -> Dict[str, Any]:
        value = self.canonical_value
        if isinstance(value, TemporalRange):
            value = {
                "label": value.label,
                "start": value.start.isoformat(),
                "end": value.end.isoformat() if value.end else None,
            }
        elif isinstance(value, NumericComparison):
            value = {"operator": value.operator, "value": value.value}

        return {
            "text": self.text,
            "kind": self.kind.value,
            "start": self.span.start,
            "end": self.span.end,
            "confidence": self.confidence,
            "table": self.table,
            "canonical_value": value,
            "category": self.category,
            "record_id": self.record_id,
            "is_filter_candidate": self.is_filter_candidate,
            "alternatives": list(self.alternatives),
            "hover_text": self.hover_text,
        }


OPERATORS = ("equals", "contains", "gt", "lt", "gte", "lte", "range")


@dataclass(frozen=True)
class FilterPredicate:
    """
    One column constraint.

    Predicates that share a `group` are alternatives (OR); distinct groups
    are conjunctive (AND). The compiler uses one group per entity.
    """
    table: str
    column: str
    operator: str
    value: Any
    value2: Any = None
    group: int = 0
    source_text: str = field(default="", compare=False)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        for key in ("value", "value2"):
            if isinstance(data[key], datetime):
                data[key] = data[key].isoformat()
        return data

    def describe(self) -> str:
        if self.operator == "range":
            return f"{self.table}.{self.column} in [{_fmt(self.value)}, {_fmt(self.value2)})"
        symbol = {
            "equals": "=",
            "contains": "contains",
            "gt": ">",
            "lt": "<",
            "gte": ">=",
            "lte": "<=",
        }.get(self.operator, self.operator)
        return f"{self.table}.{self.column} {symbol} {_fmt(self.value)}"


def _fmt(value: Any) -> str:
    if isinstance(value, datetime):
        return value.date().isoformat() if value.time() == datetime.min.time() else value.isoformat()
    if isinstance(value, str):
        return f"'{value}'"
    return str(value)
