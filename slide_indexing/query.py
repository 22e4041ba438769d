"""
Query Matcher - Free-text, phrase and wildcard search over indexed items.

    revenue growth        both terms must appear
    "quarterly revenue"   exact phrase must appear
    rep*t  q?4            glob patterns must match somewhere

All parts are ANDed and matched case-insensitively against a per-item
corpus (name, path, snippet, previews, keywords). There is no ranking;
results keep the caller's item order.
"""

import re
from dataclasses import dataclass, field
from typing import Iterable, List

from .models import IndexedItem
from .text import compile_pattern


QUERY_TOKEN_PATTERN = compile_pattern(r'"([^"]+)"|(\S+)')
WILDCARD_CHARS = ("*", "?")


def wildcard_to_regex(token: str) -> re.Pattern:
    """Translate a glob token (* and ?) into a case-insensitive search pattern."""
    parts = []
    for ch in token:
        if ch == "*":
            parts.append(".*")
        elif ch == "?":
            parts.append(".")
        else:
            parts.append(re.escape(ch))
    return compile_pattern("".join(parts), re.IGNORECASE | re.DOTALL)


@dataclass
class QueryPattern:
    phrases: List[str] = field(default_factory=list)
    terms: List[str] = field(default_factory=list)
    wildcards: List[re.Pattern] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.phrases or self.terms or self.wildcards)

    @classmethod
    def parse(cls, raw: str) -> "QueryPattern":
        pattern = cls()
        for match in QUERY_TOKEN_PATTERN.finditer(raw or ""):
            phrase, token = match.group(1), match.group(2)
            if phrase is not None:
                value = phrase.strip().lower()
                if value:
                    pattern.phrases.append(value)
                continue
            token = token.strip()
            if not token:
                continue
            if any(ch in token for ch in WILDCARD_CHARS):
                pattern.wildcards.append(wildcard_to_regex(token))
            else:
                pattern.terms.append(token.lower())
        return pattern


def build_corpus(item: IndexedItem) -> str:
    parts = [item.display_name, item.path]
    if item.snippet:
        parts.append(item.snippet)
    parts.extend(preview.text for preview in item.previews)
    if item.keywords:
        parts.append(" ".join(item.keywords))
    return " ".join(parts).lower()


def matches(item: IndexedItem, pattern: QueryPattern) -> bool:
    if pattern.is_empty:
        return True
    corpus = build_corpus(item)
    return (
        all(phrase in corpus for phrase in pattern.phrases)
        and all(term in corpus for term in pattern.terms)
        and all(wildcard.search(corpus) for wildcard in pattern.wildcards)
    )


def search(items: Iterable[IndexedItem], query: str) -> List[IndexedItem]:
    pattern = QueryPattern.parse(query)
    return [item for item in items if matches(item, pattern)]
