"""
Keyword matcher for reply templates.

This module focuses strictly on tokenizing post text and scoring a template's
keyword list against it; it does not rank candidates or render replies.

Keyword rules:
    - Keywords are trimmed and lower-cased; blank keywords are ignored.
    - A keyword starting with "-" is an exclusion term. A single hit excludes
      the whole template.
    - A positive keyword scores EXACT_MATCH_POINTS when a token equals it, or
      PARTIAL_MATCH_POINTS when a token merely contains it.
    - Substring containment only counts for terms longer than
      PARTIAL_MATCH_MIN_LENGTH characters.

Example:
    >>> tokens = tokenize("Just got my car fixed, auto shop was great")
    >>> result = match_keywords(tokens, ["car", "auto", "-scam"])
    >>> print(result.score, result.excluded)
    4 False
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Sequence, Set, Tuple

NEGATION_MARKER = "-"
EXACT_MATCH_POINTS = 2
PARTIAL_MATCH_POINTS = 1
PARTIAL_MATCH_MIN_LENGTH = 2

_NON_WORD = re.compile(r"[^\w\s]|_")


@dataclass
class KeywordMatch:
    """
    Outcome of scoring one template's keywords.

    Attributes:
        score: Sum of positive keyword points.
        excluded: True when an exclusion term hit the post.
        matched: Positive keywords that contributed points, in keyword order.
        excluded_by: The exclusion term that vetoed the template, if any.
    """

    score: int = 0
    excluded: bool = False
    matched: List[str] = field(default_factory=list)
    excluded_by: str = ""


def tokenize(text: str) -> List[str]:
    """
    Normalize raw post text into an ordered list of word tokens.

    Args:
        text: Post body; may be empty.

    Returns:
        Lower-cased tokens with punctuation stripped. Empty input yields [].
    """
    if not text:
        return []
    cleaned = _NON_WORD.sub(" ", text.lower())
    return [token for token in cleaned.split() if token]


def _term_hits(term: str, token_set: Set[str], tokens: Sequence[str]) -> Tuple[bool, bool]:
    exact = term in token_set
    partial = len(term) > PARTIAL_MATCH_MIN_LENGTH and any(term in token for token in tokens)
    return exact, partial


def match_keywords(tokens: Sequence[str], keywords: Sequence[str]) -> KeywordMatch:
    """
    Score a template's keyword list against tokenized post text.

    Args:
        tokens: Output of `tokenize`.
        keywords: The template's keywords, exclusion terms prefixed with "-".

    Returns:
        A KeywordMatch. Once an exclusion term hits, scoring stops and the
        result is excluded regardless of the points accumulated so far.
    """
    token_set = set(tokens)
    result = KeywordMatch()

    for keyword_raw in keywords:
        keyword = keyword_raw.strip().lower()
        if not keyword:
            continue

        if keyword.startswith(NEGATION_MARKER):
            negative = keyword[len(NEGATION_MARKER):]
            if not negative:
                continue
            exact, partial = _term_hits(negative, token_set, tokens)
            if exact or partial:
                result.excluded = True
                result.excluded_by = negative
                return result
            continue

        exact, partial = _term_hits(keyword, token_set, tokens)
        if exact:
            result.score += EXACT_MATCH_POINTS
            result.matched.append(keyword)
        elif partial:
            result.score += PARTIAL_MATCH_POINTS
            result.matched.append(keyword)

    return result
