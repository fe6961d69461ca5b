"""Lexical relevance ranking: Jaccard overlap of lower-cased whitespace tokens.

Deliberately a cheap bag-of-words heuristic, not semantic search. Results
must be identical for identical inputs, so there is no normalization beyond
``lower()`` and ``split()``.
"""

from .models import Entry

QUESTION_WEIGHT = 0.7
CONTEXT_WEIGHT = 0.3


def tokenize(text: str) -> set[str]:
    return set((text or "").lower().split())


def jaccard(a: str, b: str) -> float:
    """|A ∩ B| / |A ∪ B| over word sets; 0.0 when both are empty."""
    sa, sb = tokenize(a), tokenize(b)
    union = sa | sb
    if not union:
        return 0.0
    return len(sa & sb) / len(union)


def score_entry(query: str, entry: Entry) -> float:
    return (QUESTION_WEIGHT * jaccard(query, entry.question)
            + CONTEXT_WEIGHT * jaccard(query, entry.context or ""))


def rank_scored(query: str, corpus: list[Entry], k: int) -> list[tuple[float, Entry]]:
    """Top ``k`` ``(score, entry)`` pairs, best first; ties keep corpus order."""
    if k <= 0:
        return []
    scored = [(score_entry(query, e), e) for e in corpus]
    # sorted() is stable, reverse=True included.
    scored = sorted(scored, key=lambda x: x[0], reverse=True)
    return scored[:k]


def rank(query: str, corpus: list[Entry], k: int) -> list[Entry]:
    return [e for _, e in rank_scored(query, corpus, k)]
