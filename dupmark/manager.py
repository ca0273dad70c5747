"""
Integration layer between the duplicate detector and a bookmark store.

DuplicateManager owns the caller-facing workflow: warn about duplicates of
a bookmark that is about to be added, relay the user's decision, and write
merges back through update/delete callbacks supplied by the persistence
layer. Choosing the primary bookmark of a merge happens here (the first id
of the selection), not in the merge engine.
"""
import logging
from dataclasses import replace
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from dupmark.detector import DuplicateDetector, MergeOptionsLike
from dupmark.entities import (
    BookmarkSnapshot,
    DetectionOptions,
    DetectionResult,
    MergeOptions,
    SimilarityScore,
    to_snake_case,
    utcnow,
)
from dupmark.exceptions import IntegrationError

logger = logging.getLogger(__name__)

TEMP_ID = 'temp'

# URLs shorter than this are still being typed; don't warn yet
MIN_REALTIME_URL_LENGTH = 10

UpdateCallback = Callable[[str, Dict[str, Any]], Any]
DeleteCallback = Callable[[str], Any]
AddCallback = Callable[[Dict[str, Any]], Any]
Candidate = Union[BookmarkSnapshot, Mapping[str, Any]]


class DuplicateDecision(str, Enum):
    """What the user chose when warned about a duplicate."""
    ADD_ANYWAY = 'add-anyway'
    MERGE = 'merge'
    CANCEL = 'cancel'


def merged_fields(merged: BookmarkSnapshot) -> Dict[str, Any]:
    """Fields written back to the primary bookmark after a merge."""
    return {
        'title': merged.title,
        'url': merged.url,
        'description': merged.description,
        'category': merged.category,
        'tags': list(merged.tags),
        'is_favorite': merged.is_favorite,
        'visits': merged.visits,
        'favicon': merged.favicon,
        'date_modified': utcnow(),
    }


class DuplicateManager:
    """
    Duplicate workflow over one bookmark collection.

    Args:
        bookmarks: Current collection
        on_update_bookmark: ``(id, fields)`` callback applying merged fields
        on_delete_bookmark: ``(id)`` callback removing an absorbed duplicate
        detector: Detector to use (a new one when omitted)
        options: Detection options (the detector's defaults when omitted)
    """

    def __init__(self,
                 bookmarks: Optional[Sequence[BookmarkSnapshot]] = None,
                 on_update_bookmark: Optional[UpdateCallback] = None,
                 on_delete_bookmark: Optional[DeleteCallback] = None,
                 detector: Optional[DuplicateDetector] = None,
                 options: Optional[DetectionOptions] = None):
        self.bookmarks: List[BookmarkSnapshot] = list(bookmarks or [])
        self.on_update_bookmark = on_update_bookmark
        self.on_delete_bookmark = on_delete_bookmark
        self.detector = detector or DuplicateDetector()
        self.detection_options = options or self.detector.get_default_detection_options()
        self.last_result: Optional[DetectionResult] = None

    def set_bookmarks(self, bookmarks: Sequence[BookmarkSnapshot]):
        """Replace the collection, e.g. after the store has changed."""
        self.bookmarks = list(bookmarks)

    def _find(self, bookmark_id: str) -> Optional[BookmarkSnapshot]:
        for bookmark in self.bookmarks:
            if bookmark.id == bookmark_id:
                return bookmark
        return None

    def _temp_snapshot(self, candidate: Candidate) -> BookmarkSnapshot:
        """A not-yet-saved bookmark: temporary id, dated now, never visited."""
        now = utcnow()
        if isinstance(candidate, BookmarkSnapshot):
            return replace(candidate, id=TEMP_ID, date_added=now, date_modified=now, visits=0)

        data = {to_snake_case(k): v for k, v in candidate.items()}
        data.update(id=TEMP_ID, date_added=now, date_modified=now, visits=0)
        return BookmarkSnapshot.from_dict(data)

    # Detection

    def check_for_duplicates(self, candidate: Candidate) -> List[BookmarkSnapshot]:
        """Existing bookmarks that a new bookmark would duplicate."""
        return self.detector.check_for_duplicate(
            self._temp_snapshot(candidate), self.bookmarks, self.detection_options
        )

    def check_url_in_real_time(self, url: str) -> List[BookmarkSnapshot]:
        """
        URL-only duplicate check for a URL that is still being entered.

        Title matching is switched off, and URLs shorter than
        MIN_REALTIME_URL_LENGTH never match.
        """
        if not url or len(url) < MIN_REALTIME_URL_LENGTH:
            return []
        typed = BookmarkSnapshot(id=TEMP_ID, title='Temp', url=url, category='Temp')
        options = self.detection_options.replace(title_similarity_matching=False)
        return self.detector.check_for_duplicate(typed, self.bookmarks, options)

    def detect_all_duplicates(self) -> DetectionResult:
        """Scan the whole collection and remember the result."""
        self.last_result = self.detector.find_duplicates(self.bookmarks, self.detection_options)
        return self.last_result

    @property
    def duplicate_stats(self) -> Optional[Dict[str, Any]]:
        """Summary of the last scan, or None before the first one."""
        if self.last_result is None:
            return None
        return self.last_result.stats()

    def get_similarity_score(self, a: BookmarkSnapshot, b: BookmarkSnapshot) -> SimilarityScore:
        return self.detector.calculate_similarity(a, b, self.detection_options)

    def update_detection_options(self, **changes) -> DetectionOptions:
        """Change some detection options, keeping the rest."""
        self.detection_options = DetectionOptions.from_dict(changes, base=self.detection_options)
        return self.detection_options

    def get_default_merge_options(self) -> MergeOptions:
        return self.detector.get_default_merge_options()

    # Merging

    def select_for_merge(self, bookmark_ids: Sequence[str]) -> List[BookmarkSnapshot]:
        """
        Look up the bookmarks to merge, in selection order.

        Repeated ids count once.

        Raises:
            IntegrationError: Fewer than two distinct ids, or an id that is
                not in the collection
        """
        unique_ids = list(dict.fromkeys(bookmark_ids))
        if len(unique_ids) < 2:
            raise IntegrationError("At least 2 bookmarks are required for merging")

        selected = []
        for bookmark_id in unique_ids:
            bookmark = self._find(bookmark_id)
            if bookmark is None:
                raise IntegrationError(f"Bookmark not found: {bookmark_id}")
            selected.append(bookmark)
        return selected

    def merge_duplicates(self, bookmark_ids: Sequence[str],
                         merge_options: MergeOptionsLike = None) -> str:
        """
        Merge the selected bookmarks into the first selected one.

        The primary bookmark (``bookmark_ids[0]``) receives the merged
        fields; every other selected id is deleted. Repeated ids count once.

        Returns:
            The primary bookmark id

        Raises:
            IntegrationError: Missing callbacks, fewer than two distinct ids,
                or an id that is not in the collection. Nothing is written
                in that case.
        """
        if self.on_update_bookmark is None or self.on_delete_bookmark is None:
            raise IntegrationError("Update and delete callbacks are required for merging")

        selected = self.select_for_merge(bookmark_ids)
        merged = self.detector.merge_duplicates(selected, merge_options)

        primary_id, *absorbed_ids = [b.id for b in selected]
        self.on_update_bookmark(primary_id, merged_fields(merged))
        for bookmark_id in absorbed_ids:
            self.on_delete_bookmark(bookmark_id)

        logger.info(f"Merged {len(selected)} bookmarks into {primary_id}")
        return primary_id

    def merge_with_existing(self, candidate: Candidate, existing_id: str,
                            merge_options: MergeOptionsLike = None) -> str:
        """
        Fold a not-yet-saved bookmark into an existing one.

        Returns:
            The existing bookmark id

        Raises:
            IntegrationError: Missing update callback or unknown id
        """
        if self.on_update_bookmark is None:
            raise IntegrationError("Update callback is required for merging")

        existing = self._find(existing_id)
        if existing is None:
            raise IntegrationError(f"Existing bookmark not found: {existing_id}")

        merged = self.detector.merge_duplicates(
            [existing, self._temp_snapshot(candidate)], merge_options
        )
        self.on_update_bookmark(existing_id, merged_fields(merged))

        logger.info(f"Merged new bookmark into {existing_id}")
        return existing_id

    def resolve_candidate(self, candidate: Candidate,
                          decision: Union[DuplicateDecision, str],
                          existing_id: Optional[str] = None,
                          merge_options: MergeOptionsLike = None,
                          on_add_bookmark: Optional[AddCallback] = None) -> Any:
        """
        Apply the user's answer to a duplicate warning.

        Args:
            candidate: The bookmark the user wanted to add
            decision: add-anyway, merge or cancel
            existing_id: Bookmark to merge into (first match when omitted)
            merge_options: Merge policy for the merge decision
            on_add_bookmark: ``(fields)`` callback used by add-anyway

        Returns:
            The add callback's return value, the merged bookmark id, or
            None when cancelled
        """
        try:
            decision = DuplicateDecision(decision)
        except ValueError:
            raise IntegrationError(f"Unknown duplicate decision: {decision!r}") from None

        if decision is DuplicateDecision.CANCEL:
            logger.info("Duplicate warning dismissed, nothing added")
            return None

        if decision is DuplicateDecision.ADD_ANYWAY:
            if on_add_bookmark is None:
                raise IntegrationError("An add callback is required to add a duplicate")
            if isinstance(candidate, BookmarkSnapshot):
                fields = candidate.to_dict()
            else:
                fields = {to_snake_case(k): v for k, v in candidate.items()}
            return on_add_bookmark(fields)

        if existing_id is None:
            matches = self.check_for_duplicates(candidate)
            if not matches:
                raise IntegrationError("No existing duplicate to merge with")
            existing_id = matches[0].id
        return self.merge_with_existing(candidate, existing_id, merge_options)
