"""
Similarity scoring between two bookmark snapshots.

Three independent signals are combined into one SimilarityScore:

- exact: raw URLs are identical (1.0 or 0.0)
- normalized: URLs are identical after normalization (1.0 or 0.0)
- title: Levenshtein-based similarity of the titles, in [0, 1]

overall = 0.5 * exact + 0.3 * normalized + 0.2 * title
"""
from typing import Optional

from dupmark.entities import BookmarkSnapshot, DetectionOptions, SimilarityScore
from dupmark.normalize import normalize_url


def levenshtein_distance(a: str, b: str) -> int:
    """
    Edit distance with unit cost for insertion, deletion and substitution.

    Runs in O(len(a) * len(b)) time and keeps only two rows of the
    dynamic programming table, sized by the shorter string.
    """
    if a == b:
        return 0
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            if char_a == char_b:
                current.append(previous[j - 1])
            else:
                current.append(1 + min(previous[j - 1],  # substitution
                                       current[j - 1],   # insertion
                                       previous[j]))     # deletion
        previous = current
    return previous[-1]


def string_similarity(a: str, b: str) -> float:
    """
    Normalized edit-distance similarity in [0, 1].

    Two empty strings are identical (1.0); one empty string against a
    non-empty one shares nothing (0.0).
    """
    if a == b:
        return 1.0
    if not a or not b:
        return 0.0
    max_len = max(len(a), len(b))
    return (max_len - levenshtein_distance(a, b)) / max_len


def title_similarity(title_a: str, title_b: str, case_sensitive: bool = False) -> float:
    """Similarity of two titles, case-folded unless ``case_sensitive``."""
    title_a = title_a or ''
    title_b = title_b or ''
    if not case_sensitive:
        title_a = title_a.lower()
        title_b = title_b.lower()
    return string_similarity(title_a, title_b)


def calculate_similarity(a: BookmarkSnapshot, b: BookmarkSnapshot,
                         options: Optional[DetectionOptions] = None) -> SimilarityScore:
    """
    Score how alike two bookmarks are.

    The score is reflexive (a bookmark scores 1.0 on every component against
    itself) and symmetric in its arguments.

    Args:
        a: First bookmark
        b: Second bookmark
        options: Detection options controlling normalization and case folding

    Returns:
        SimilarityScore with exact, normalized, title and overall components
    """
    options = options or DetectionOptions()

    exact = 1.0 if a.url == b.url else 0.0

    normalized_a = normalize_url(a.url, options).normalized
    normalized_b = normalize_url(b.url, options).normalized
    normalized = 1.0 if normalized_a == normalized_b else 0.0

    title = title_similarity(a.title, b.title, options.case_sensitive)

    return SimilarityScore.from_components(exact, normalized, title)
