"""Normalized edit-distance similarity."""

from rapidfuzz.distance import Levenshtein


def edit_distance(a: str, b: str) -> int:
    """Levenshtein distance with unit-cost insert, delete and substitute."""
    return Levenshtein.distance(a, b)


def similarity_ratio(a: str, b: str) -> float:
    """Return ``(longest - distance) / longest`` in [0, 1]; 1.0 for two empty strings."""
    return Levenshtein.normalized_similarity(a, b)
