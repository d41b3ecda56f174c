"""Search builder — search term tokenization and the full-text predicate."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..operators import LogicalOperator, Operator
from .filters import combine
from .predicates import Comparison, PatternMatch, PatternMode, Predicate

if TYPE_CHECKING:
    from ..model import SearchSpec

_QUOTED = re.compile(r'"([^"]*)"')

_PATTERN_MODES: dict[Operator, PatternMode] = {
    Operator.CONTAINS: PatternMode.CONTAINS,
    Operator.STARTS_WITH: PatternMode.STARTS_WITH,
    Operator.ENDS_WITH: PatternMode.ENDS_WITH,
}


@dataclass(frozen=True)
class SearchToken:
    text: str
    is_phrase: bool = False


def tokenize_search_term(
    term: str, min_word_length: int = 2
) -> tuple[SearchToken, ...]:
    """
    Split a search term into phrases and words.

    Double-quoted phrases are extracted first and kept whole; the remainder
    is split on whitespace and words shorter than *min_word_length* are
    dropped.  Repeated tokens are kept once.

    >>> [t.text for t in tokenize_search_term('"red car" fast a')]
    ['red car', 'fast']
    """
    tokens: list[SearchToken] = []
    seen: set[tuple[str, bool]] = set()

    def add(token: SearchToken) -> None:
        key = (token.text.lower(), token.is_phrase)
        if key not in seen:
            seen.add(key)
            tokens.append(token)

    for phrase in _QUOTED.findall(term):
        if phrase.strip():
            add(SearchToken(phrase.strip(), is_phrase=True))
    remainder = _QUOTED.sub(" ", term)
    for word in remainder.split():
        word = word.strip('"')
        if len(word) >= min_word_length:
            add(SearchToken(word))
    return tuple(tokens)


class SearchBuilder:
    """
    Multi-field search as one predicate.

    Every token must match (AND); a token matches when any searched field
    matches it (OR) with the search operator.
    """

    def __init__(self, min_word_length: int = 2) -> None:
        self._min_word_length = min_word_length

    def build(self, search: SearchSpec | None) -> Predicate | None:
        if search is None or not search.fields:
            return None
        tokens = tokenize_search_term(search.term, self._min_word_length)
        per_token = [
            combine(
                LogicalOperator.OR,
                (
                    self._field_predicate(descriptor.name, token, search.operator)
                    for descriptor in search.fields
                ),
            )
            for token in tokens
        ]
        return combine(LogicalOperator.AND, (p for p in per_token if p is not None))

    @staticmethod
    def _field_predicate(
        field_name: str, token: SearchToken, operator: Operator
    ) -> Predicate:
        if operator is Operator.EQ:
            return Comparison(field_name, Operator.EQ, token.text)
        return PatternMatch(field_name, token.text, _PATTERN_MODES[operator])
