"""
Domain Value Cache - live product, customer and user names.

Loads a bounded number of rows per configured domain source and indexes
every value under a set of matchable variations:
    - full value, lowercased        "gaming laptop"
    - value without whitespace      "gaminglaptop"
    - each word                     "gaming", "laptop"
    - short prefixes of each word   "gam", "gami", "gamin", "lap", ...

All variations point back to the same CacheEntry (record id + display name).

The cache is read-mostly shared state. Readers grab the current snapshot
reference and never see a half-built index; loads build a new snapshot and
swap it in. The first load is single-flight: concurrent callers of
ensure_loaded() wait for the in-flight load instead of starting another.
"""

import threading
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

import pandas as pd

from lexicon.lexicon_store import Lexicon, split_words
from lexicon.taxonomy import DomainSource


@dataclass(frozen=True)
class CacheEntry:
    key: str            # lowercased full value
    display: str
    category: str       # product / customer / user
    table: str
    record_id: Any
    variations: FrozenSet[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class _Snapshot:
    version: int
    entries: Dict[str, List[CacheEntry]]
    variation_index: Dict[str, List[CacheEntry]]
    # Variations that are a full value, a no-space value or a whole word (no prefixes)
    word_index: Dict[str, List[CacheEntry]]
    by_category: Dict[str, List[CacheEntry]]


_EMPTY = _Snapshot(0, {}, {}, {}, {})


def build_variations(value: str, prefix_min: int = 3, prefix_max: int = 5) -> Tuple[FrozenSet[str], FrozenSet[str]]:
    """
    Variations for one value.

    Returns:
        (whole, prefixes) - whole holds the full/no-space/word forms
    """
    lowered = " ".join(value.lower().split())
    words = split_words(lowered)

    whole = {lowered, lowered.replace(" ", "")}
    whole.update(w for w in words if len(w) >= 2)

    prefixes = set()
    for word in words:
        for n in range(prefix_min, prefix_max + 1):
            if len(word) > n:
                prefixes.add(word[:n])
    prefixes -= whole
    whole.discard("")
    return frozenset(whole), frozenset(prefixes)


class DomainValueCache:
    """Process-wide lookup of live domain values."""

    def __init__(self, store, lexicon: Lexicon, row_limit: int = 500,
                 prefix_min_length: int = 3, prefix_max_length: int = 5):
        self._store = store
        self._lexicon = lexicon
        self._row_limit = row_limit
        self._prefix_min = prefix_min_length
        self._prefix_max = prefix_max_length

        self._snapshot: _Snapshot = _EMPTY
        self._load_lock = threading.Lock()
        self._loaded = False
        self.load_count = 0
        self.last_errors: Dict[str, str] = {}

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def version(self) -> int:
        return self._snapshot.version

    def ensure_loaded(self) -> None:
        """Load once. Concurrent callers wait for the in-flight load."""
        if self._loaded:
            return
        with self._load_lock:
            if self._loaded:
                return
            self._load()

    def refresh(self) -> None:
        """Force a reload. Categories that fail keep their previous values."""
        with self._load_lock:
            self._load()

    def _load(self) -> None:
        previous = self._snapshot
        by_category: Dict[str, List[CacheEntry]] = {}
        errors: Dict[str, str] = {}

        for source in self._lexicon.domain_sources:
            try:
                by_category.setdefault(source.category, []).extend(self._load_source(source))
            except Exception as e:
                errors[source.category] = str(e)
                by_category[source.category] = list(previous.by_category.get(source.category, []))
                print(f"[DomainCache] Warning: could not load {source.category} values from {source.table}: {e}")

        self._snapshot = self._index(previous.version + 1, by_category)
        self.last_errors = errors
        self.load_count += 1
        self._loaded = True

        for category, entries in by_category.items():
            if category not in errors:
                print(f"[DomainCache] ✓ Loaded {len(entries)} {category} values")

    def _load_source(self, source: DomainSource) -> List[CacheEntry]:
        df = self._store.select_filtered(source.table, [], self._row_limit)
        missing = [c for c in (source.id_column, *source.value_columns) if c not in df.columns]
        if missing:
            raise KeyError(f"columns {missing} not found in {source.table}")

        entries = []
        seen = set()
        for row in df[[source.id_column, *source.value_columns]].to_dict("records"):
            record_id = row[source.id_column]
            for column in source.value_columns:
                value = row[column]
                if value is None or (not isinstance(value, str) and pd.isna(value)):
                    continue
                display = " ".join(str(value).split())
                key = display.lower()
                if not key or (key, record_id) in seen:
                    continue
                seen.add((key, record_id))
                whole, prefixes = build_variations(display, self._prefix_min, self._prefix_max)
                entries.append(CacheEntry(
                    key=key,
                    display=display,
                    category=source.category,
                    table=source.table,
                    record_id=_plain(record_id),
                    variations=whole | prefixes,
                ))
        return entries

    def _index(self, version: int, by_category: Dict[str, List[CacheEntry]]) -> _Snapshot:
        entries: Dict[str, List[CacheEntry]] = {}
        variation_index: Dict[str, List[CacheEntry]] = {}
        word_index: Dict[str, List[CacheEntry]] = {}

        for category_entries in by_category.values():
            for entry in category_entries:
                entries.setdefault(entry.key, []).append(entry)
                whole, _ = build_variations(entry.display, self._prefix_min, self._prefix_max)
                for variation in entry.variations:
                    variation_index.setdefault(variation, []).append(entry)
                    if variation in whole:
                        word_index.setdefault(variation, []).append(entry)

        return _Snapshot(version, entries, variation_index, word_index, by_category)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def lookup(self, key: str) -> Optional[CacheEntry]:
        """Entry whose full value equals `key` (case-insensitive)."""
        matches = self._snapshot.entries.get(" ".join(key.lower().split()))
        return matches[0] if matches else None

    def lookup_all(self, key: str) -> List[CacheEntry]:
        return list(self._snapshot.entries.get(" ".join(key.lower().split()), []))

    def lookup_variation(self, token: str) -> List[CacheEntry]:
        """Entries having `token` as one of their variations."""
        return list(self._snapshot.variation_index.get(token.lower(), []))

    def fuzzy_candidates(self, token: str, min_contained_length: int = 4) -> List[Tuple[CacheEntry, str]]:
        """
        Near matches for a token with no exact or variation hit.

        A candidate matches when the token contains one of its whole-word
        variations (of at least `min_contained_length` chars), or when a
        variation starts with the token's leading characters, so "top" is
        not "laptop". Each entry is reported once, with the shortest
        variation that matched.

        Returns:
            [(entry, matched_variation)] sorted by variation length, then display name
        """
        token = token.lower()
        head = token[:min_contained_length]
        best: Dict[Tuple[str, Any, str], Tuple[CacheEntry, str]] = {}

        for variation, entries in self._snapshot.word_index.items():
            if not ((len(variation) >= min_contained_length and variation in token) or variation.startswith(head)):
                continue
            for entry in entries:
                ident = (entry.category, entry.record_id, entry.key)
                current = best.get(ident)
                if current is None or len(variation) < len(current[1]):
                    best[ident] = (entry, variation)

        return sorted(best.values(), key=lambda pair: (len(pair[1]), pair[0].display))

    def multiword_values(self) -> List[Tuple[Tuple[str, ...], CacheEntry]]:
        """(words, entry) for every value with more than one word."""
        result = []
        for entries in self._snapshot.entries.values():
            for entry in entries:
                words = tuple(split_words(entry.key))
                if len(words) > 1:
                    result.append((words, entry))
        return result

    def entries(self, category: Optional[str] = None) -> List[CacheEntry]:
        snapshot = self._snapshot
        if category is not None:
            return list(snapshot.by_category.get(category, []))
        return [e for entries in snapshot.by_category.values() for e in entries]

    def suggestions(self, query: str, category: Optional[str] = None, limit: int = 10) -> List[Dict[str, Any]]:
        """
        Values whose variations contain `query`.

        Prefix hits (value or one of its words starts with the query) score
        0.9, other substring hits 0.7.
        """
        q = " ".join(query.lower().split())
        if not q:
            return []

        scored = []
        for entry in self.entries(category):
            if not any(q in v for v in entry.variations) and q not in entry.key:
                continue
            prefix_hit = entry.key.startswith(q) or any(w.startswith(q) for w in split_words(entry.key))
            scored.append({
                "value": entry.display,
                "category": entry.category,
                "table": entry.table,
                "record_id": entry.record_id,
                "score": 0.9 if prefix_hit else 0.7,
            })

        scored.sort(key=lambda s: (-s["score"], s["value"].lower()))
        return scored[:limit]

    def stats(self) -> Dict[str, int]:
        return {category: len(entries) for category, entries in self._snapshot.by_category.items()}


def _plain(value: Any) -> Any:
    """numpy scalars -> Python scalars so ids serialise cleanly."""
    return value.item() if hasattr(value, "item") else value
