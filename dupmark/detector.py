"""
Public entry point for duplicate detection and merging.

DuplicateDetector holds no mutable state beyond its default options, so
callers create one where they need it (or inject it) instead of sharing a
process-wide instance.

Example:
    >>> from dupmark import DuplicateDetector, BookmarkSnapshot
    >>> detector = DuplicateDetector()
    >>> result = detector.find_duplicates(snapshots)
    >>> for group in result.groups:
    ...     merged = detector.merge_duplicates(group.bookmarks)
"""
import logging
from typing import Any, Dict, List, Optional, Sequence, Union

from dupmark import dedup, merge
from dupmark.entities import (
    BookmarkSnapshot,
    DetectionOptions,
    DetectionResult,
    MergeOptions,
    SimilarityScore,
    UrlNormalizationResult,
)
from dupmark.normalize import normalize_url
from dupmark.similarity import calculate_similarity

logger = logging.getLogger(__name__)

DetectionOptionsLike = Union[DetectionOptions, Dict[str, Any], None]
MergeOptionsLike = Union[MergeOptions, Dict[str, Any], None]


class DuplicateDetector:
    """
    Batch scan, single-candidate check and merge of duplicate bookmarks.

    Every operation that takes ``options`` accepts a full options object, a
    partial dictionary laid over this detector's defaults, or None for the
    defaults.
    """

    def __init__(self, default_options: Optional[DetectionOptions] = None,
                 default_merge_options: Optional[MergeOptions] = None):
        self._default_options = default_options or DetectionOptions()
        self._default_merge_options = default_merge_options or MergeOptions.defaults()

    def _resolve_options(self, options: DetectionOptionsLike) -> DetectionOptions:
        if isinstance(options, DetectionOptions):
            return options
        return DetectionOptions.from_dict(options, base=self._default_options)

    def _resolve_merge_options(self, options: MergeOptionsLike) -> MergeOptions:
        if isinstance(options, MergeOptions):
            return options
        return MergeOptions.from_dict(options, base=self._default_merge_options)

    def find_duplicates(self, snapshots: Sequence[BookmarkSnapshot],
                        options: DetectionOptionsLike = None) -> DetectionResult:
        """
        Scan a collection for duplicate groups.

        Args:
            snapshots: Bookmarks to scan
            options: Detection options

        Returns:
            DetectionResult with groups, counters and elapsed time
        """
        opts = self._resolve_options(options)
        result = dedup.find_duplicates(list(snapshots), opts)
        logger.info(
            f"Scanned {result.scanned_count} bookmarks in {result.elapsed_ms:.1f}ms: "
            f"{len(result.groups)} groups, {result.total_duplicates} bookmarks involved"
        )
        return result

    def check_for_duplicate(self, candidate: BookmarkSnapshot,
                            existing: Sequence[BookmarkSnapshot],
                            options: DetectionOptionsLike = None) -> List[BookmarkSnapshot]:
        """Existing bookmarks that the candidate duplicates, in input order."""
        return dedup.check_for_duplicate(candidate, existing, self._resolve_options(options))

    def merge_duplicates(self, snapshots: Sequence[BookmarkSnapshot],
                         options: MergeOptionsLike = None) -> BookmarkSnapshot:
        """
        Merge bookmarks into one canonical record.

        Raises:
            EmptyMergeSet: If ``snapshots`` is empty
        """
        return merge.merge_snapshots(list(snapshots), self._resolve_merge_options(options))

    def calculate_similarity(self, a: BookmarkSnapshot, b: BookmarkSnapshot,
                             options: DetectionOptionsLike = None) -> SimilarityScore:
        """Similarity components between two bookmarks."""
        return calculate_similarity(a, b, self._resolve_options(options))

    # Short alias used by integrations
    score = calculate_similarity

    def normalize_url(self, url: str, options: DetectionOptionsLike = None) -> UrlNormalizationResult:
        return normalize_url(url, self._resolve_options(options))

    def get_default_detection_options(self) -> DetectionOptions:
        """A fresh copy of the default detection options."""
        return self._default_options.replace()

    def get_default_merge_options(self) -> MergeOptions:
        """A fresh copy of the default merge options."""
        return MergeOptions.from_dict(None, base=self._default_merge_options)
