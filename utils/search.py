import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Set

WORD_PATTERN = re.compile(r"\w+")
PHRASE_PATTERN = re.compile(r'"([^"]*)"')


@dataclass
class SearchQuery:
    """Parsed full-text search string"""
    terms: Set[str] = field(default_factory=set)
    phrases: List[str] = field(default_factory=list)
    excluded: Set[str] = field(default_factory=set)

    @property
    def is_empty(self) -> bool:
        return not (self.terms or self.phrases or self.excluded)


def tokenize(text: str) -> Set[str]:
    return set(WORD_PATTERN.findall(text.lower()))


def parse_search(search: str) -> SearchQuery:
    """
    Parse a search string into terms, quoted phrases and excluded terms

    Bare words are alternatives, "quoted phrases" are all required and
    words prefixed with "-" exclude a post.
    """
    query = SearchQuery()
    lowered = search.lower()

    for phrase in PHRASE_PATTERN.findall(lowered):
        phrase = " ".join(WORD_PATTERN.findall(phrase))
        if phrase:
            query.phrases.append(phrase)
            query.terms.update(phrase.split())

    for word in PHRASE_PATTERN.sub(" ", lowered).split():
        if word.startswith("-"):
            query.excluded.update(WORD_PATTERN.findall(word[1:]))
        else:
            query.terms.update(WORD_PATTERN.findall(word))

    return query


def _searchable_fields(post: Dict[str, Any]) -> List[str]:
    return [post.get("title") or "", post.get("content") or "", *(post.get("tags") or [])]


def matches(post: Dict[str, Any], query: SearchQuery) -> bool:
    """Check whether a post document satisfies a parsed search query"""
    if not query.terms:
        return False

    fields = _searchable_fields(post)
    tokens: Set[str] = set()
    for text in fields:
        tokens |= tokenize(text)

    if query.excluded & tokens:
        return False

    normalized = [" ".join(WORD_PATTERN.findall(text.lower())) for text in fields]
    for phrase in query.phrases:
        if not any(f" {phrase} " in f" {text} " for text in normalized):
            return False

    return bool(query.terms & tokens)
