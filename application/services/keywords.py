"""Token-level keyword matching used for explanations and scoring."""
from __future__ import annotations

MIN_TERM_LENGTH = 3


def query_terms(query: str) -> list[str]:
    """Distinct lower-cased whitespace tokens longer than two characters, in order."""
    terms: list[str] = []
    for token in query.lower().split():
        if len(token) >= MIN_TERM_LENGTH and token not in terms:
            terms.append(token)
    return terms


def matched_terms(terms: list[str], text: str) -> list[str]:
    lowered = text.lower()
    return [term for term in terms if term in lowered]


def keyword_match_ratio(query: str, text: str) -> float:
    terms = query_terms(query)
    if not terms:
        return 0.0
    return len(matched_terms(terms, text)) / len(terms)


__all__ = ["MIN_TERM_LENGTH", "query_terms", "matched_terms", "keyword_match_ratio"]
