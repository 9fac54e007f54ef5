"""
Predicate Compiler - turns entities into column filters for one table.

Column choice is driven entirely by the table's field taxonomy:

    DomainValue     contains on every column of the value's category role
                    (equals record id on columns that reference the value's
                    home table)
    Pronoun         equals current user on the table's owner column
    Temporal        range / gte on the first date column
    NumericFilter   gt / lt on the numeric column hinted by the question
    StatusFilter    equals on status (or priority) columns
    LocationFilter  contains on location columns

One entity = one predicate group (OR inside, AND across groups). An entity
the table has no column for contributes nothing.
"""

from typing import List, Optional

from lexicon.taxonomy import TableFieldTaxonomy
from planning_layer.entity_types import (
    EntityKind,
    EntityMatch,
    FilterPredicate,
    NumericComparison,
    TemporalRange,
)
from planning_layer.phrase_matcher import tokenize


def compile_predicates(table: str, taxonomy: TableFieldTaxonomy, entities: List[EntityMatch],
                       question: str = "", home_tables: Optional[dict] = None) -> List[FilterPredicate]:
    """
    Compile every filter-contributing entity into predicates for `table`.

    Args:
        table: Target table
        taxonomy: That table's field taxonomy
        entities: Tagger output
        question: Original question, used for numeric column hints
        home_tables: category -> home table, for foreign-key aware matching

    Returns:
        Predicates in entity order; deterministic for the same inputs
    """
    context_words = [t.text for t in tokenize(question)]
    home_tables = home_tables or {}
    predicates: List[FilterPredicate] = []
    group = 0

    for entity in entities:
        if not entity.is_filter_candidate:
            continue

        compiled = _compile_entity(table, taxonomy, entity, context_words, home_tables, group)
        if compiled:
            predicates.extend(compiled)
            group += 1

    return predicates


def _compile_entity(table, taxonomy, entity, context_words, home_tables, group) -> List[FilterPredicate]:
    kind = entity.kind

    def predicate(column, operator, value, value2=None):
        return FilterPredicate(table, column, operator, value, value2, group, entity.text)

    if kind == EntityKind.DOMAIN_VALUE:
        return _domain_value(taxonomy, entity, home_tables.get(entity.category), predicate)

    if kind == EntityKind.PRONOUN:
        owner = taxonomy.owner_field
        if owner is None or entity.canonical_value is None:
            return []
        return [predicate(owner, "equals", entity.canonical_value)]

    if kind == EntityKind.TEMPORAL:
        column = taxonomy.primary_date_field
        value = entity.canonical_value
        if column is None or not isinstance(value, TemporalRange):
            return []
        if value.is_open_ended:
            return [predicate(column, "gte", value.start)]
        return [predicate(column, "range", value.start, value.end)]

    if kind == EntityKind.NUMERIC_FILTER:
        value = entity.canonical_value
        if not isinstance(value, NumericComparison):
            return []
        column = taxonomy.numeric_column_for(context_words)
        if column is None:
            return []
        return [predicate(column, value.operator, value.value)]

    if kind == EntityKind.STATUS_FILTER:
        columns = taxonomy.priority_fields if entity.category == "priority" else taxonomy.status_fields
        return [predicate(c, "equals", entity.canonical_value) for c in columns]

    if kind == EntityKind.LOCATION_FILTER:
        return [predicate(c, "contains", entity.canonical_value) for c in taxonomy.location_fields]

    return []


def _domain_value(taxonomy: TableFieldTaxonomy, entity: EntityMatch, home_table: Optional[str], predicate):
    if entity.category not in ("user", "product", "customer"):
        return []

    result = []
    for column in taxonomy.fields_for(entity.category):
        if home_table and taxonomy.references(column, home_table):
            # Key column: only a single resolved record can be matched
            if entity.record_id is not None:
                result.append(predicate(column, "equals", entity.record_id))
        elif entity.canonical_value:
            result.append(predicate(column, "contains", entity.canonical_value))
    return result
