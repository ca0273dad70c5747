"""
dupmark - Duplicate detection and merging for bookmark collections

Clusters near-identical bookmarks using URL normalization and fuzzy title
matching, then reconciles each cluster into one canonical bookmark under a
field-by-field merge policy.

Design Principles:
- Pure, synchronous engine over an in-memory collection
- No hidden global state: create a DuplicateDetector where you need one
- Persistence and user interaction plug in through callbacks

Example Usage:
    >>> from dupmark import DuplicateDetector, BookmarkSnapshot
    >>> detector = DuplicateDetector()
    >>> result = detector.find_duplicates(snapshots)
    >>> merged = detector.merge_duplicates(result.groups[0].bookmarks)
"""

__version__ = "0.1.0"
__author__ = "dupmark Contributors"

# Engine facade
from dupmark.detector import DuplicateDetector

# Data model
from dupmark.entities import (
    BookmarkSnapshot,
    DetectionOptions,
    DetectionResult,
    DuplicateGroup,
    DuplicateType,
    MergeOptions,
    SimilarityScore,
    UrlNormalizationResult,
)

# Errors
from dupmark.exceptions import (
    DupmarkError,
    EmptyMergeSet,
    IntegrationError,
    InvalidOptionsError,
)

# Integration
from dupmark.manager import DuplicateDecision, DuplicateManager

# Building blocks
from dupmark.normalize import normalize_url
from dupmark.similarity import calculate_similarity, levenshtein_distance

__all__ = [
    # Facade
    "DuplicateDetector",
    # Data model
    "BookmarkSnapshot",
    "DetectionOptions",
    "DetectionResult",
    "DuplicateGroup",
    "DuplicateType",
    "MergeOptions",
    "SimilarityScore",
    "UrlNormalizationResult",
    # Errors
    "DupmarkError",
    "EmptyMergeSet",
    "IntegrationError",
    "InvalidOptionsError",
    # Integration
    "DuplicateDecision",
    "DuplicateManager",
    # Building blocks
    "normalize_url",
    "calculate_similarity",
    "levenshtein_distance",
]
