"""
Table Router - decides which tables a question must be run against.

Pure function of the tagged entities and the lexicon's relationship graph.

Selection Strategy:
1. Every table named explicitly (TableEntity) in the order mentioned
2. For each domain value, its home table (products / customers / users) when
   an already selected table is related to it; with no explicit tables the
   category's default tables instead
3. Nothing recognised: the personal tables for pronoun / temporal questions,
   the common fallback tables otherwise
"""

from typing import Dict, List, Optional

from lexicon.lexicon_store import Lexicon
from planning_layer.entity_types import EntityKind, EntityMatch


class TableRouter:
    """
    Expands tagged entities into an ordered set of target tables.

    Order matters: explicitly named tables come first and the first table is
    treated as the primary one by the response summary.
    """

    def __init__(self, lexicon: Lexicon):
        self.lexicon = lexicon
        self._last_routing_debug = {}

    def route(self, entities: List[EntityMatch]) -> 'RoutingResult':
        """
        Resolve target tables.

        Args:
            entities: Tagger output

        Returns:
            RoutingResult with the ordered tables and a reason per table
        """
        tables: List[str] = []
        reasons: Dict[str, str] = {}

        def add(table: str, reason: str):
            if table not in reasons:
                tables.append(table)
                reasons[table] = reason

        explicit = [e for e in entities if e.kind == EntityKind.TABLE and e.table]
        for entity in explicit:
            add(entity.table, f"named explicitly ('{entity.text}')")

        for entity in entities:
            if entity.kind != EntityKind.DOMAIN_VALUE or not entity.category:
                continue
            self._add_for_category(entity, bool(explicit), tables, add)

        method = "entities"
        if not tables:
            personal = any(e.kind in (EntityKind.PRONOUN, EntityKind.TEMPORAL) for e in entities)
            if personal and self.lexicon.personal_tables:
                method = "personal_fallback"
                for table in self.lexicon.personal_tables:
                    add(table, "personal question without a named table")
            else:
                method = "fallback"
                for table in self.lexicon.fallback_tables:
                    add(table, "no table recognised, using common tables")

        self._last_routing_debug = {
            'method': method,
            'tables': list(tables),
            'entities': [(e.kind.value, e.text) for e in entities],
        }
        return RoutingResult(tables, reasons, method)

    def resolve(self, entities: List[EntityMatch]) -> List[str]:
        """Ordered target tables only."""
        return self.route(entities).tables

    def _add_for_category(self, entity: EntityMatch, has_explicit: bool, tables: List[str], add) -> None:
        routing = self.lexicon.category_routing(entity.category)
        if routing is None:
            return
        home = routing.home_table
        if home in tables:
            return

        related = self.lexicon.related_tables(home)
        anchor = next((t for t in tables if t in related), None)
        if anchor is not None:
            add(home, f"{entity.category} value '{entity.text}' relates to {anchor}")
        elif not has_explicit:
            for table in routing.default_tables:
                add(table, f"default table for {entity.category} value '{entity.text}'")

    def get_routing_debug(self) -> Dict:
        """
        Get debug information about the last routing decision.
        Useful for transparency and troubleshooting.
        """
        return self._last_routing_debug.copy()

    def explain_routing(self, entities: List[EntityMatch]) -> str:
        """
        Explain why each table was chosen.
        Human-readable explanation for debugging.
        """
        result = self.route(entities)

        lines = ["Entities:"]
        if entities:
            for e in entities:
                lines.append(f"  - {e.kind.value}: '{e.text}' ({e.confidence:.2f})")
        else:
            lines.append("  (none)")

        lines.append("")
        lines.append(f"Tables ({result.method}):")
        for table in result.tables:
            marker = "→" if table == result.primary_table else " "
            lines.append(f"  {marker} {table}: {result.reasons[table]}")

        return "\n".join(lines)


class RoutingResult:
    """
    Structured result from table routing.
    """

    def __init__(self, tables: List[str], reasons: Dict[str, str], method: str = "entities"):
        self.tables = tables
        self.reasons = reasons
        self.method = method

    @property
    def primary_table(self) -> Optional[str]:
        return self.tables[0] if self.tables else None

    @property
    def is_fallback(self) -> bool:
        """True when no entity pointed at a table"""
        return self.method != "entities"
