"""
Tokenizer and token trie used by the span tagger.

Phrases are stored as word sequences in a trie so that every multi-word
phrase starting at every token can be found in one left-to-right walk,
instead of running one regex per phrase.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple


_TOKEN_RE = re.compile(r"[A-Za-z0-9]+")


@dataclass(frozen=True)
class Token:
    text: str   # lowercased
    start: int
    end: int


def tokenize(text: str) -> List[Token]:
    return [Token(m.group(0).lower(), m.start(), m.end()) for m in _TOKEN_RE.finditer(text)]


@dataclass(frozen=True)
class PhraseHit:
    first: int      # index of first token
    last: int       # index of last token (inclusive)
    payload: Any


class _Node:
    __slots__ = ("children", "payload")

    def __init__(self):
        self.children: Dict[str, "_Node"] = {}
        self.payload: Optional[Any] = None


class TokenTrie:
    """Word-level trie. The first payload inserted for a phrase is kept."""

    def __init__(self):
        self._root = _Node()
        self._size = 0

    def __len__(self) -> int:
        return self._size

    def insert(self, words: Iterable[str], payload: Any) -> bool:
        node = self._root
        count = 0
        for word in words:
            node = node.children.setdefault(word.lower(), _Node())
            count += 1
        if count == 0 or node.payload is not None:
            return False
        node.payload = payload
        self._size += 1
        return True

    def find_all(self, tokens: List[Token]) -> List[PhraseHit]:
        """Every phrase occurrence in the token stream, overlapping hits included."""
        hits = []
        for i in range(len(tokens)):
            node = self._root
            for j in range(i, len(tokens)):
                node = node.children.get(tokens[j].text)
                if node is None:
                    break
                if node.payload is not None:
                    hits.append(PhraseHit(i, j, node.payload))
        return hits


def longest_first(hits: List[PhraseHit], tokens: List[Token]) -> List[PhraseHit]:
    """Order hits so longer phrases are considered before their sub-phrases."""
    def key(hit: PhraseHit) -> Tuple[int, int]:
        length = tokens[hit.last].end - tokens[hit.first].start
        return (-length, tokens[hit.first].start)
    return sorted(hits, key=key)
