"""
Similarity primitives.

Pure token-set and tag-set overlap scores on a 0-100 scale. Empty input is
a valid case and scores 0.
"""

from typing import Iterable, Optional, Set

from .constants import MAX_SCORE, MIN_TOKEN_LENGTH


def tokenize(text: Optional[str]) -> Set[str]:
    """Split on whitespace and keep tokens of at least MIN_TOKEN_LENGTH characters."""
    if not text:
        return set()
    return {token for token in text.split() if len(token) >= MIN_TOKEN_LENGTH}


def jaccard(a: Set[str], b: Set[str]) -> float:
    """Jaccard index scaled to 0-100. Either side empty scores 0."""
    if not a or not b:
        return 0.0
    return len(a & b) / len(a | b) * MAX_SCORE


def text_similarity(a: Optional[str], b: Optional[str]) -> float:
    """
    Token overlap between two strings.

    Tokens are compared exactly; callers that want case-insensitive
    matching lowercase both sides first.

    Args:
        a: First string
        b: Second string

    Returns:
        Similarity in [0, 100]
    """
    return jaccard(tokenize(a), tokenize(b))


def tag_similarity(tags_a: Optional[Iterable[str]], tags_b: Optional[Iterable[str]]) -> float:
    """Case-insensitive Jaccard overlap of two tag lists, in [0, 100]."""
    set_a = {tag.lower() for tag in (tags_a or []) if tag}
    set_b = {tag.lower() for tag in (tags_b or []) if tag}
    return jaccard(set_a, set_b)


__all__ = ["tokenize", "jaccard", "text_similarity", "tag_similarity"]
