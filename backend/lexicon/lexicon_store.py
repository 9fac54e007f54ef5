"""
Lexicon & Relationship Store

Loads config/lexicon.yaml into an immutable Lexicon: table names and aliases,
per-table field taxonomies, the relationship graph, keyword synonyms,
pronouns, comparison words and the sources for the domain value cache.

The lexicon is read once at startup and never changes afterwards, so every
request can share it without locking.

Usage:
    from lexicon.lexicon_store import get_lexicon

    lexicon = get_lexicon()
    lexicon.taxonomy("sales").numeric_fields  # ('total_amount', ...)
"""

import re
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, FrozenSet, List, Optional, Set, Tuple

import yaml

from lexicon.taxonomy import (
    CategoryRouting,
    DomainSource,
    Relationship,
    TableFieldTaxonomy,
)


class LexiconError(ValueError):
    """Lexicon file is missing or malformed. The only fatal startup error."""
    pass


_WORD_RE = re.compile(r"[a-z0-9]+")

SYNONYM_GROUPS = ("status", "priority", "location", "temporal")


def split_words(text: str) -> List[str]:
    """Lowercase word split shared by every lexicon lookup."""
    return _WORD_RE.findall(text.lower())


@dataclass(frozen=True)
class Lexicon:
    tables: Dict[str, TableFieldTaxonomy]
    synonyms: Dict[str, Dict[str, Tuple[str, ...]]]
    pronouns: FrozenSet[str]
    comparisons: Dict[str, Tuple[str, ...]]
    stop_words: FrozenSet[str]
    domain_sources: Tuple[DomainSource, ...]
    categories: Dict[str, CategoryRouting]
    fallback_tables: Tuple[str, ...]
    personal_tables: Tuple[str, ...]

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    def table_names(self) -> List[str]:
        return list(self.tables.keys())

    def has_table(self, table: str) -> bool:
        return table in self.tables

    def taxonomy(self, table: str) -> TableFieldTaxonomy:
        try:
            return self.tables[table]
        except KeyError:
            raise KeyError(f"Table '{table}' is not in the lexicon") from None

    def table_words(self) -> Dict[str, Tuple[str, float]]:
        """Map every table word to (table, confidence). Plural names beat aliases."""
        words: Dict[str, Tuple[str, float]] = {}
        for name, taxonomy in self.tables.items():
            for alias in taxonomy.aliases:
                words.setdefault(alias.lower(), (name, 0.9))
        for name in self.tables:
            words[name.lower()] = (name, 0.95)
        return words

    def related_tables(self, table: str) -> Set[str]:
        """Neighbours in the relationship graph, in either direction."""
        related = set()
        taxonomy = self.tables.get(table)
        if taxonomy:
            related.update(t for t in taxonomy.relationships if t in self.tables)
        for name, other in self.tables.items():
            if table in other.relationships:
                related.add(name)
        related.discard(table)
        return related

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    def category_routing(self, category: str) -> Optional[CategoryRouting]:
        return self.categories.get(category)

    # ------------------------------------------------------------------
    # Keyword vocabulary
    # ------------------------------------------------------------------

    def synonym_phrases(self, group: str) -> List[Tuple[Tuple[str, ...], str]]:
        """All (phrase words, canonical value) pairs of one synonym group."""
        phrases = []
        for canonical, variants in self.synonyms.get(group, {}).items():
            for variant in variants:
                words = tuple(split_words(variant))
                if words:
                    phrases.append((words, canonical))
        return phrases

    def comparison_phrases(self) -> List[Tuple[str, str]]:
        """(phrase, operator) pairs, longest phrase first."""
        pairs = [
            (phrase.lower(), operator)
            for operator, phrases in self.comparisons.items()
            for phrase in phrases
        ]
        return sorted(pairs, key=lambda p: len(p[0]), reverse=True)

    def reserved_words(self) -> FrozenSet[str]:
        """Words that must never be fuzzy-matched to a domain value."""
        reserved = set(self.pronouns) | set(self.stop_words)
        for group in SYNONYM_GROUPS:
            for words, _ in self.synonym_phrases(group):
                reserved.update(words)
        for phrase, _ in self.comparison_phrases():
            reserved.update(split_words(phrase))
        reserved.update(self.table_words().keys())
        return frozenset(reserved)


# =============================================================================
# Loading
# =============================================================================

def _as_tuple(value, where: str) -> Tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, list):
        raise LexiconError(f"{where} must be a list, got {type(value).__name__}")
    return tuple(str(v) for v in value)


def _parse_table(name: str, raw: dict) -> TableFieldTaxonomy:
    if not isinstance(raw, dict):
        raise LexiconError(f"tables.{name} must be a mapping")

    hints = []
    for hint in raw.get("numeric_hints") or []:
        if not isinstance(hint, list) or len(hint) != 2:
            raise LexiconError(f"tables.{name}.numeric_hints entries must be [keyword, column]")
        hints.append((str(hint[0]).lower(), str(hint[1])))

    relationships = {}
    for target, rel in (raw.get("relationships") or {}).items():
        if not isinstance(rel, dict) or "foreign_key" not in rel:
            raise LexiconError(f"tables.{name}.relationships.{target} needs a foreign_key")
        relationships[str(target)] = Relationship(
            foreign_key=str(rel["foreign_key"]),
            target_key=str(rel.get("target_key", "id")),
        )

    return TableFieldTaxonomy(
        table=name,
        primary_key=str(raw.get("primary_key", "id")),
        aliases=tuple(a.lower() for a in _as_tuple(raw.get("aliases"), f"tables.{name}.aliases")),
        user_fields=_as_tuple(raw.get("user_fields"), f"tables.{name}.user_fields"),
        product_fields=_as_tuple(raw.get("product_fields"), f"tables.{name}.product_fields"),
        customer_fields=_as_tuple(raw.get("customer_fields"), f"tables.{name}.customer_fields"),
        status_fields=_as_tuple(raw.get("status_fields"), f"tables.{name}.status_fields"),
        priority_fields=_as_tuple(raw.get("priority_fields"), f"tables.{name}.priority_fields"),
        date_fields=_as_tuple(raw.get("date_fields"), f"tables.{name}.date_fields"),
        location_fields=_as_tuple(raw.get("location_fields"), f"tables.{name}.location_fields"),
        numeric_fields=_as_tuple(raw.get("numeric_fields"), f"tables.{name}.numeric_fields"),
        numeric_hints=tuple(hints),
        relationships=relationships,
    )


def parse_lexicon(raw: dict) -> Lexicon:
    """Build a Lexicon from an already-parsed YAML document."""
    if not isinstance(raw, dict):
        raise LexiconError("Lexicon document must be a mapping")

    raw_tables = raw.get("tables")
    if not isinstance(raw_tables, dict) or not raw_tables:
        raise LexiconError("Lexicon must declare at least one table under 'tables'")

    tables = {str(name): _parse_table(str(name), body or {}) for name, body in raw_tables.items()}

    synonyms: Dict[str, Dict[str, Tuple[str, ...]]] = {}
    raw_synonyms = raw.get("synonyms") or {}
    if not isinstance(raw_synonyms, dict):
        raise LexiconError("synonyms must be a mapping")
    for group in SYNONYM_GROUPS:
        entries = raw_synonyms.get(group) or {}
        if not isinstance(entries, dict):
            raise LexiconError(f"synonyms.{group} must be a mapping")
        synonyms[group] = {
            str(canonical): _as_tuple(variants, f"synonyms.{group}.{canonical}")
            for canonical, variants in entries.items()
        }

    comparisons = {}
    for operator, phrases in (raw.get("comparisons") or {}).items():
        if operator not in ("gt", "lt"):
            raise LexiconError(f"comparisons.{operator}: only 'gt' and 'lt' are supported")
        comparisons[operator] = _as_tuple(phrases, f"comparisons.{operator}")

    sources = []
    for i, source in enumerate(raw.get("domain_sources") or []):
        try:
            sources.append(DomainSource(
                category=str(source["category"]),
                table=str(source["table"]),
                id_column=str(source.get("id_column", "id")),
                value_columns=_as_tuple(source["value_columns"], f"domain_sources[{i}].value_columns"),
            ))
        except (KeyError, TypeError) as e:
            raise LexiconError(f"domain_sources[{i}] is malformed: {e}") from e

    categories = {}
    for category, body in (raw.get("categories") or {}).items():
        if not isinstance(body, dict) or "home_table" not in body:
            raise LexiconError(f"categories.{category} needs a home_table")
        categories[str(category)] = CategoryRouting(
            category=str(category),
            home_table=str(body["home_table"]),
            default_tables=_as_tuple(body.get("default_tables"), f"categories.{category}.default_tables"),
        )

    lexicon = Lexicon(
        tables=tables,
        synonyms=synonyms,
        pronouns=frozenset(p.lower() for p in _as_tuple(raw.get("pronouns"), "pronouns")),
        comparisons=comparisons,
        stop_words=frozenset(w.lower() for w in _as_tuple(raw.get("stop_words"), "stop_words")),
        domain_sources=tuple(sources),
        categories=categories,
        fallback_tables=_as_tuple(raw.get("fallback_tables"), "fallback_tables"),
        personal_tables=_as_tuple(raw.get("personal_tables"), "personal_tables"),
    )
    _check_references(lexicon)
    return lexicon


def _check_references(lexicon: Lexicon) -> None:
    """Every table the lexicon mentions must itself be declared."""
    def check(table: str, where: str):
        if table not in lexicon.tables:
            raise LexiconError(f"{where} refers to unknown table '{table}'")

    for source in lexicon.domain_sources:
        check(source.table, f"domain_sources.{source.category}")
    for routing in lexicon.categories.values():
        check(routing.home_table, f"categories.{routing.category}.home_table")
        for table in routing.default_tables:
            check(table, f"categories.{routing.category}.default_tables")
    for table in lexicon.fallback_tables:
        check(table, "fallback_tables")
    for table in lexicon.personal_tables:
        check(table, "personal_tables")


def load_lexicon(path: Path) -> Lexicon:
    """Read and validate a lexicon file."""
    path = Path(path)
    if not path.exists():
        raise LexiconError(f"Lexicon file not found: {path}")

    try:
        with open(path) as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise LexiconError(f"Lexicon file {path} is not valid YAML: {e}") from e

    return parse_lexicon(raw or {})


# Singleton instance
_lexicon: Optional[Lexicon] = None
_lexicon_lock = threading.Lock()


def get_lexicon(force_reload: bool = False) -> Lexicon:
    """Get the process-wide Lexicon, loading it on first use."""
    global _lexicon

    if _lexicon is not None and not force_reload:
        return _lexicon

    with _lexicon_lock:
        if _lexicon is None or force_reload:
            from utils.config_loader import get_config, resolve_backend_path
            _lexicon = load_lexicon(resolve_backend_path(get_config().lexicon.path))
            print(f"[Lexicon] ✓ Loaded {len(_lexicon.tables)} tables")
        return _lexicon
