"""Similarity scoring between product listings.

Pure functions with no I/O. `title_similarity` measures token overlap between
two titles; `product_similarity` blends title, brand and price proximity into
one 0-1 score. Brand and price only corroborate the title: generic titles
("wireless mouse") over-match on tokens alone and rephrased titles
under-match.
"""

import re
from decimal import Decimal
from typing import Protocol

TITLE_WEIGHT = 0.7
BRAND_WEIGHT = 0.2
PRICE_WEIGHT = 0.1

_PUNCTUATION_RE = re.compile(r"[^\w\s]")


class Comparable(Protocol):
    """Anything with the attributes the blend looks at."""

    title: str
    brand: str | None
    price: Decimal | None


def normalize_title(text: str) -> str:
    """Lowercase, drop punctuation and collapse whitespace."""
    return " ".join(_PUNCTUATION_RE.sub("", text.lower()).split())


def _overlap(tokens: list[str], others: list[str], partial_match_weight: float) -> float:
    matched = 0.0
    for word in tokens:
        if word in others:
            matched += 1
        elif any(word in other or other in word for other in others):
            matched += partial_match_weight
    return matched


def title_similarity(
    a: str | None,
    b: str | None,
    min_word_length: int = 3,
    partial_match_weight: float = 0.5,
) -> float:
    """Token overlap between two titles.

    Exact token matches count fully; a token contained in a token of the other
    title counts `partial_match_weight`. The overlap is counted from both
    sides and averaged, so swapping the titles gives the same score. It is
    divided by the token count of the longer title and capped at 1.0.

    Args:
        a: First title.
        b: Second title.
        min_word_length: Tokens shorter than this are ignored.
        partial_match_weight: Weight of a substring match.

    Returns:
        Score between 0 and 1; 1.0 for identical normalized titles, 0.0 when
        either side is empty.
    """
    if not a or not b:
        return 0.0

    norm_a = normalize_title(a)
    norm_b = normalize_title(b)
    if norm_a == norm_b:
        return 1.0

    tokens_a = [word for word in norm_a.split() if len(word) >= min_word_length]
    tokens_b = [word for word in norm_b.split() if len(word) >= min_word_length]
    if not tokens_a or not tokens_b:
        return 0.0

    matched = (
        _overlap(tokens_a, tokens_b, partial_match_weight) + _overlap(tokens_b, tokens_a, partial_match_weight)
    ) / 2
    score = matched / max(len(tokens_a), len(tokens_b))
    return min(1.0, score)


def price_proximity(a: Decimal, b: Decimal) -> float:
    """1 minus the relative price difference, floored at 0."""
    highest = max(a, b)
    if highest <= 0:
        return 1.0 if a == b else 0.0
    return max(0.0, 1.0 - float(abs(a - b) / highest))


def product_similarity(source: Comparable, target: Comparable) -> float:
    """Weighted blend of title, brand and price similarity.

    Brand is only considered when both sides have one and price only when both
    sides have one. Absent attributes drop out of the denominator, so the
    result stays within 0-1 whatever is known.
    """
    score = title_similarity(source.title, target.title) * TITLE_WEIGHT
    total_weight = TITLE_WEIGHT

    if source.brand and target.brand:
        score += title_similarity(source.brand, target.brand, min_word_length=1) * BRAND_WEIGHT
        total_weight += BRAND_WEIGHT

    if source.price is not None and target.price is not None:
        score += price_proximity(source.price, target.price) * PRICE_WEIGHT
        total_weight += PRICE_WEIGHT

    return score / total_weight
