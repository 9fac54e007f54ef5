"""
Span Tagger - finds tables, domain values, pronouns, temporal phrases,
numeric comparisons and status/location keywords in a question.

Lexicon and cache driven, no LLM needed. Matchers run as passes in a fixed
priority order; a pass only looks at characters no earlier pass claimed, so
the output never contains two overlapping entities:

    1. table names and aliases
    2. multi-word phrases (cached domain values, synonym phrases), longest first
    3. single-word domain values (exact, then fuzzy)
    4. pronouns
    5. single-word temporal expressions
    6. numeric comparisons ("above 1000")
    7. single-word status / priority / location keywords

A failing pass is logged and skipped; tag() never raises.
"""

import re
import threading
from typing import Any, Dict, List, Optional, Tuple

from lexicon.lexicon_store import Lexicon
from planning_layer.entity_types import (
    EntityKind,
    EntityMatch,
    NumericComparison,
    Span,
)
from planning_layer.phrase_matcher import Token, TokenTrie, longest_first, tokenize
from planning_layer.temporal import describe_temporal, resolve_temporal
from utils.request_context import RequestContext


CATEGORY_LABELS = {
    "product": "Product",
    "customer": "Customer",
    "user": "User",
}

MAX_ALTERNATIVES = 5
MIN_FUZZY_TOKEN_LENGTH = 3


class _Claims:
    """Character positions already taken by an accepted entity."""

    def __init__(self):
        self._spans: List[Span] = []

    def is_free(self, start: int, end: int) -> bool:
        candidate = Span(start, end)
        return not any(candidate.overlaps(s) for s in self._spans)

    def claim(self, start: int, end: int) -> None:
        self._spans.append(Span(start, end))


class SpanTagger:
    """
    Turns raw question text into a non-overlapping, ordered list of EntityMatch.

    The lexicon is immutable; the domain value cache may be refreshed at any
    time and the tagger rebuilds its domain phrase trie when the cache
    version changes.
    """

    def __init__(self, lexicon: Lexicon, cache=None):
        self._lexicon = lexicon
        self._cache = cache

        self._table_words = lexicon.table_words()
        self._reserved = lexicon.reserved_words()
        self._pronouns = lexicon.pronouns

        # Multi-word keyword phrases (pass 2) and single-word keywords (passes 5 and 7)
        self._keyword_trie = TokenTrie()
        self._temporal_words: Dict[str, str] = {}
        self._keyword_words: Dict[str, Tuple[EntityKind, str, Optional[str]]] = {}
        self._build_keyword_index()

        self._numeric_re = self._build_numeric_pattern()

        self._domain_trie = TokenTrie()
        self._domain_trie_version = -1
        self._domain_trie_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Index construction
    # ------------------------------------------------------------------

    def _build_keyword_index(self) -> None:
        groups = [
            ("temporal", EntityKind.TEMPORAL, None),
            ("status", EntityKind.STATUS_FILTER, "status"),
            ("priority", EntityKind.STATUS_FILTER, "priority"),
            ("location", EntityKind.LOCATION_FILTER, None),
        ]
        for group, kind, category in groups:
            for words, canonical in self._lexicon.synonym_phrases(group):
                if len(words) > 1:
                    self._keyword_trie.insert(words, ("keyword", kind, canonical, category))
                elif kind == EntityKind.TEMPORAL:
                    self._temporal_words.setdefault(words[0], canonical)
                else:
                    self._keyword_words.setdefault(words[0], (kind, canonical, category))

    def _build_numeric_pattern(self):
        phrases = [p for p, _ in self._lexicon.comparison_phrases()]
        if not phrases:
            return None
        alternation = "|".join(r"\s+".join(re.escape(w) for w in p.split()) for p in phrases)
        # 1,000 and 1,000.50 as well as 1000
        number = r"(?:\d{1,3}(?:,\d{3})+|\d+)(?:\.\d+)?"
        return re.compile(rf"\b({alternation})\s+({number})\b", re.IGNORECASE)

    def _domain_phrases(self) -> TokenTrie:
        """Trie over multi-word cached values, rebuilt when the cache changes."""
        version = self._cache.version
        if version == self._domain_trie_version:
            return self._domain_trie

        with self._domain_trie_lock:
            if version != self._domain_trie_version:
                grouped: Dict[Tuple[str, ...], List[Any]] = {}
                for words, entry in self._cache.multiword_values():
                    grouped.setdefault(words, []).append(entry)
                trie = TokenTrie()
                for words, entries in grouped.items():
                    trie.insert(words, ("domain", entries))
                self._domain_trie = trie
                self._domain_trie_version = version
            return self._domain_trie

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def tag(self, text: str, context: Optional[RequestContext] = None) -> List[EntityMatch]:
        """
        Tag a question.

        Args:
            text: Raw question text
            context: Who is asking and when (defaults to anonymous, now)

        Returns:
            Entities ordered by start offset, spans never overlapping
        """
        if not text or not text.strip():
            return []

        context = context or RequestContext()
        tokens = tokenize(text)
        claims = _Claims()
        entities: List[EntityMatch] = []

        passes = [
            ("tables", lambda: self._tag_tables(text, tokens, claims)),
            ("phrases", lambda: self._tag_phrases(text, tokens, claims, context)),
            ("domain values", lambda: self._tag_domain_words(text, tokens, claims)),
            ("pronouns", lambda: self._tag_pronouns(text, tokens, claims, context)),
            ("temporal", lambda: self._tag_temporal_words(text, tokens, claims, context)),
            ("numeric", lambda: self._tag_numeric(text, claims)),
            ("keywords", lambda: self._tag_keywords(text, tokens, claims)),
        ]
        for name, run in passes:
            try:
                entities.extend(run())
            except Exception as e:
                print(f"[SpanTagger] Warning: {name} pass failed: {e}")

        return sorted(entities, key=lambda e: (e.span.start, e.span.end))

    # ------------------------------------------------------------------
    # Passes
    # ------------------------------------------------------------------

    def _tag_tables(self, text: str, tokens: List[Token], claims: _Claims) -> List[EntityMatch]:
        found = []
        for token in tokens:
            hit = self._table_words.get(token.text)
            if hit is None or not claims.is_free(token.start, token.end):
                continue
            table, confidence = hit
            claims.claim(token.start, token.end)
            found.append(EntityMatch(
                text=text[token.start:token.end],
                kind=EntityKind.TABLE,
                span=Span(token.start, token.end),
                confidence=confidence,
                table=table,
                canonical_value=table,
                is_filter_candidate=False,
                hover_text=f"Table: {table}",
            ))
        return found

    def _tag_phrases(self, text: str, tokens: List[Token], claims: _Claims,
                     context: RequestContext) -> List[EntityMatch]:
        hits = []
        if self._cache is not None:
            try:
                self._cache.ensure_loaded()
                hits.extend(self._domain_phrases().find_all(tokens))
            except Exception as e:
                print(f"[SpanTagger] Warning: domain phrase lookup failed: {e}")
        hits.extend(self._keyword_trie.find_all(tokens))

        found = []
        for hit in longest_first(hits, tokens):
            start, end = tokens[hit.first].start, tokens[hit.last].end
            if not claims.is_free(start, end):
                continue

            if hit.payload[0] == "domain":
                entity = self._domain_entity(text, start, end, hit.payload[1], 0.95, exact_value=True)
            else:
                _, kind, canonical, category = hit.payload
                entity = self._keyword_entity(text, start, end, kind, canonical, category, 0.9, context)

            if entity is not None:
                claims.claim(start, end)
                found.append(entity)
        return found

    def _tag_domain_words(self, text: str, tokens: List[Token], claims: _Claims) -> List[EntityMatch]:
        if self._cache is None:
            return []
        self._cache.ensure_loaded()

        found = []
        for token in tokens:
            if token.text.isdigit() or not claims.is_free(token.start, token.end):
                continue

            entity = None
            exact = self._cache.lookup_all(token.text)
            if exact:
                entity = self._domain_entity(text, token.start, token.end, exact, 0.95, exact_value=True)
            elif token.text not in self._reserved:
                entity = self._variation_entity(text, token)
                if entity is None and len(token.text) >= MIN_FUZZY_TOKEN_LENGTH:
                    entity = self._fuzzy_entity(text, token)

            if entity is not None:
                claims.claim(token.start, token.end)
                found.append(entity)
        return found

    def _tag_pronouns(self, text: str, tokens: List[Token], claims: _Claims,
                      context: RequestContext) -> List[EntityMatch]:
        found = []
        for token in tokens:
            if token.text not in self._pronouns or not claims.is_free(token.start, token.end):
                continue
            claims.claim(token.start, token.end)
            found.append(EntityMatch(
                text=text[token.start:token.end],
                kind=EntityKind.PRONOUN,
                span=Span(token.start, token.end),
                confidence=0.9,
                canonical_value=context.user_id,
                category="user",
                record_id=context.user_id,
                is_filter_candidate=context.user_id is not None,
                hover_text=f"User: {context.user_id}" if context.user_id else "User: (anonymous)",
            ))
        return found

    def _tag_temporal_words(self, text: str, tokens: List[Token], claims: _Claims,
                            context: RequestContext) -> List[EntityMatch]:
        found = []
        for token in tokens:
            label = self._temporal_words.get(token.text)
            if label is None or not claims.is_free(token.start, token.end):
                continue
            entity = self._keyword_entity(text, token.start, token.end, EntityKind.TEMPORAL,
                                          label, None, 0.9, context)
            claims.claim(token.start, token.end)
            found.append(entity)
        return found

    def _tag_numeric(self, text: str, claims: _Claims) -> List[EntityMatch]:
        if self._numeric_re is None:
            return []

        operators = {" ".join(p.split()): op for p, op in self._lexicon.comparison_phrases()}
        found = []
        for m in self._numeric_re.finditer(text):
            if not claims.is_free(m.start(), m.end()):
                continue
            phrase = " ".join(m.group(1).lower().split())
            operator = operators.get(phrase)
            if operator is None:
                continue
            raw_number = m.group(2)
            digits = raw_number.replace(",", "")
            value = float(digits) if "." in digits else int(digits)
            symbol = ">" if operator == "gt" else "<"
            claims.claim(m.start(), m.end())
            found.append(EntityMatch(
                text=text[m.start():m.end()],
                kind=EntityKind.NUMERIC_FILTER,
                span=Span(m.start(), m.end()),
                confidence=0.9,
                canonical_value=NumericComparison(operator, value),
                hover_text=f"Filter: {symbol} {raw_number}",
            ))
        return found

    def _tag_keywords(self, text: str, tokens: List[Token], claims: _Claims) -> List[EntityMatch]:
        found = []
        for token in tokens:
            hit = self._keyword_words.get(token.text)
            if hit is None or not claims.is_free(token.start, token.end):
                continue
            kind, canonical, category = hit
            claims.claim(token.start, token.end)
            found.append(self._keyword_entity(text, token.start, token.end, kind, canonical, category, 0.8, None))
        return found

    # ------------------------------------------------------------------
    # Entity builders
    # ------------------------------------------------------------------

    def _keyword_entity(self, text: str, start: int, end: int, kind: EntityKind, canonical: str,
                        category: Optional[str], confidence: float,
                        context: Optional[RequestContext]) -> EntityMatch:
        value: Any = canonical
        if kind == EntityKind.TEMPORAL:
            value = resolve_temporal(canonical, (context or RequestContext()).now)
            hover = f"Time: {describe_temporal(canonical)}"
        elif kind == EntityKind.LOCATION_FILTER:
            hover = f"Location: {canonical}"
        else:
            hover = f"{(category or 'status').capitalize()}: {canonical}"

        return EntityMatch(
            text=text[start:end],
            kind=kind,
            span=Span(start, end),
            confidence=confidence,
            canonical_value=value,
            category=category,
            hover_text=hover,
        )

    def _domain_entity(self, text: str, start: int, end: int, entries: List[Any],
                       confidence: float, exact_value: bool = False,
                       canonical: Optional[str] = None) -> EntityMatch:
        primary = entries[0]
        distinct = _distinct_records(entries)
        alternatives = tuple(e.display for e in distinct[1:MAX_ALTERNATIVES + 1])
        label = CATEGORY_LABELS.get(primary.category, primary.category.capitalize())

        return EntityMatch(
            text=text[start:end],
            kind=EntityKind.DOMAIN_VALUE,
            span=Span(start, end),
            confidence=confidence,
            table=primary.table,
            canonical_value=primary.display if exact_value else canonical,
            category=primary.category,
            # Only an unambiguous match pins a single record
            record_id=primary.record_id if len(distinct) == 1 else None,
            alternatives=alternatives,
            hover_text=f"{label}: {primary.display}",
        )

    def _variation_entity(self, text: str, token: Token) -> Optional[EntityMatch]:
        entries = self._cache.lookup_variation(token.text)
        if not entries:
            return None
        confidence = 0.9 if len(_distinct_records(entries)) == 1 else 0.85
        return self._domain_entity(text, token.start, token.end, entries, confidence, canonical=token.text)

    def _fuzzy_entity(self, text: str, token: Token) -> Optional[EntityMatch]:
        candidates = self._cache.fuzzy_candidates(token.text)
        if not candidates:
            return None
        entry, variation = candidates[0]
        entries = [e for e, _ in candidates]
        confidence = 0.8 if len(_distinct_records(entries)) == 1 else 0.75
        return self._domain_entity(text, token.start, token.end, entries, confidence, canonical=variation)


def _distinct_records(entries: List[Any]) -> List[Any]:
    seen = set()
    distinct = []
    for entry in entries:
        ident = (entry.category, entry.record_id)
        if ident not in seen:
            seen.add(ident)
            distinct.append(entry)
    return distinct
