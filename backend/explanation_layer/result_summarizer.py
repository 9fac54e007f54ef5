"""
Result Summarizer - counts, homogeneity score and summary text.

Deterministic, template-based; no LLM involved.
"""

from dataclasses import dataclass, field
from typing import Dict, List

import pandas as pd

from execution_layer.executor import ExecutionResult
from planning_layer.entity_types import EntityKind, EntityMatch, FilterPredicate

# Entity kinds whose canonical value is expected to appear verbatim in matching rows
LITERAL_KINDS = (
    EntityKind.DOMAIN_VALUE,
    EntityKind.PRONOUN,
    EntityKind.STATUS_FILTER,
    EntityKind.LOCATION_FILTER,
)


@dataclass
class QuerySummary:
    text: str
    counts: Dict[str, int]
    total_rows: int
    homogeneity: float
    applied_filters: List[str] = field(default_factory=list)


def literal_values(entities: List[EntityMatch]) -> List[str]:
    """Lowercased literals a matching row may contain. A resolved record id counts too."""
    values = []
    for e in entities:
        if e.kind not in LITERAL_KINDS or not e.is_filter_candidate:
            continue
        for raw in (e.canonical_value, e.record_id):
            if raw is None:
                continue
            value = str(raw).lower()
            if value and value not in values:
                values.append(value)
    return values


def _row_text(row: pd.Series) -> str:
    return " ".join("" if _is_missing(v) else str(v) for v in row).lower()


def _is_missing(value) -> bool:
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        # list-like cells
        return False


def homogeneity_score(rows_by_table: Dict[str, pd.DataFrame], entities: List[EntityMatch]) -> float:
    """
    Fraction of returned rows containing, in any column, the literal value
    of at least one filter entity.

    1.0 when there are rows but no literal values to check, 0.0 without rows.
    """
    total = sum(len(df) for df in rows_by_table.values())
    if total == 0:
        return 0.0

    literals = literal_values(entities)
    if not literals:
        return 1.0

    matching = 0
    for df in rows_by_table.values():
        if df.empty:
            continue
        text = df.apply(_row_text, axis=1)
        matching += int(text.apply(lambda s: any(v in s for v in literals)).sum())

    return round(matching / total, 4)


def applied_filters(predicates_by_table: Dict[str, List[FilterPredicate]]) -> List[str]:
    """Human-readable filters, OR alternatives joined per group."""
    described = []
    for table, predicates in predicates_by_table.items():
        groups: Dict[int, List[str]] = {}
        for p in predicates:
            groups.setdefault(p.group, []).append(p.describe())
        for parts in groups.values():
            line = parts[0] if len(parts) == 1 else "(" + " OR ".join(parts) + ")"
            if line not in described:
                described.append(line)
    return described


def summarize(execution: ExecutionResult, entities: List[EntityMatch],
              predicates_by_table: Dict[str, List[FilterPredicate]]) -> QuerySummary:
    counts = execution.counts
    total = execution.total_rows
    filters = applied_filters(predicates_by_table)

    if not counts:
        text = "No tables matched the question."
    elif total == 0:
        text = f"No matching records found in {', '.join(counts)}."
    else:
        noun = "record" if total == 1 else "records"
        table_noun = "table" if len(counts) == 1 else "tables"
        breakdown = ", ".join(f"{t} — {n}" for t, n in counts.items())
        text = f"Found {total} {noun} across {len(counts)} {table_noun}: {breakdown}."

    if filters:
        text += " Filters: " + "; ".join(filters) + "."

    failed = [t for t in counts if t in execution.errors_by_table]
    if failed:
        text += f" Could not query: {', '.join(failed)}."

    try:
        homogeneity = homogeneity_score(execution.rows_by_table, entities)
    except Exception as e:
        print(f"[Summarizer] Warning: homogeneity check failed: {e}")
        homogeneity = 0.0

    return QuerySummary(
        text=text,
        counts=counts,
        total_rows=total,
        homogeneity=homogeneity,
        applied_filters=filters,
    )
