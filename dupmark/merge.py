"""
Merging of duplicate bookmarks into one canonical record.

The merge input is ordered by date_added; "first" and "last" in every
strategy refer to the chronologically earliest and latest bookmark, not to
the order the caller passed them in. The canonical id and url always come
from the earliest bookmark, whatever the options say.
"""
import logging
from typing import List, Optional, Sequence

from dupmark.entities import (
    BookmarkSnapshot,
    ChoiceStrategy,
    DatesStrategy,
    FavoriteStrategy,
    MergeOptions,
    TextStrategy,
    VisitsStrategy,
    utcnow,
)
from dupmark.exceptions import EmptyMergeSet

logger = logging.getLogger(__name__)


def _longest(ordered: List[BookmarkSnapshot], attr: str) -> BookmarkSnapshot:
    # Strictly longer wins, so ties stay with the earliest bookmark
    best = ordered[0]
    for bookmark in ordered[1:]:
        if len(getattr(bookmark, attr) or '') > len(getattr(best, attr) or ''):
            best = bookmark
    return best


def _merge_text(ordered: List[BookmarkSnapshot], attr: str,
                strategy: Optional[TextStrategy], custom: Optional[str]):
    first, last = ordered[0], ordered[-1]
    if strategy is TextStrategy.LAST:
        return getattr(last, attr)
    if strategy is TextStrategy.LONGEST:
        return getattr(_longest(ordered, attr), attr)
    if strategy is TextStrategy.CUSTOM:
        return custom or getattr(first, attr)
    return getattr(first, attr)


def _merge_choice(ordered: List[BookmarkSnapshot], attr: str,
                  strategy: Optional[ChoiceStrategy], custom: Optional[str]):
    first, last = ordered[0], ordered[-1]
    if strategy is ChoiceStrategy.LAST:
        return getattr(last, attr)
    if strategy is ChoiceStrategy.CUSTOM:
        return custom or getattr(first, attr)
    return getattr(first, attr)


def _merge_tags(ordered: List[BookmarkSnapshot], combine: bool) -> List[str]:
    if not combine:
        return list(ordered[0].tags)
    all_tags = set()
    for bookmark in ordered:
        all_tags.update(bookmark.tags)
    return sorted(all_tags)


def _merge_favorite(ordered: List[BookmarkSnapshot], strategy: Optional[FavoriteStrategy]) -> bool:
    if strategy is FavoriteStrategy.ANY:
        return any(b.is_favorite for b in ordered)
    if strategy is FavoriteStrategy.ALL:
        return all(b.is_favorite for b in ordered)
    if strategy is FavoriteStrategy.LAST:
        return ordered[-1].is_favorite
    return ordered[0].is_favorite


def _merge_visits(ordered: List[BookmarkSnapshot], strategy: Optional[VisitsStrategy]) -> int:
    if strategy is VisitsStrategy.MAX:
        return max(b.visits for b in ordered)
    if strategy is VisitsStrategy.FIRST:
        return ordered[0].visits
    if strategy is VisitsStrategy.LAST:
        return ordered[-1].visits
    return sum(b.visits for b in ordered)


def _merge_dates(ordered: List[BookmarkSnapshot], strategy: Optional[DatesStrategy]):
    first, last = ordered[0], ordered[-1]
    if strategy is DatesStrategy.EARLIEST:
        return (min(b.date_added for b in ordered),
                min(b.date_modified for b in ordered))
    if strategy is DatesStrategy.LATEST:
        return (max(b.date_added for b in ordered),
                max(b.date_modified for b in ordered))
    if strategy is DatesStrategy.FIRST:
        return first.date_added, first.date_modified
    if strategy is DatesStrategy.LAST:
        return last.date_added, last.date_modified
    # Unspecified: keep the original creation date, mark as modified now
    return first.date_added, utcnow()


def merge_snapshots(snapshots: Sequence[BookmarkSnapshot],
                    options: Optional[MergeOptions] = None) -> BookmarkSnapshot:
    """
    Collapse duplicate bookmarks into one canonical bookmark.

    Args:
        snapshots: Bookmarks to merge, in any order
        options: Per-field merge policy (every field takes its fallback
            branch when omitted)

    Returns:
        The merged bookmark. A single input is returned as-is.

    Raises:
        EmptyMergeSet: If ``snapshots`` is empty
    """
    if not snapshots:
        raise EmptyMergeSet()
    if len(snapshots) == 1:
        return snapshots[0]

    options = options or MergeOptions()
    ordered = sorted(snapshots, key=lambda b: b.date_added)
    first = ordered[0]

    date_added, date_modified = _merge_dates(ordered, options.keep_dates)

    merged = BookmarkSnapshot(
        id=first.id,
        url=first.url,
        title=_merge_text(ordered, 'title', options.keep_title, options.custom_title),
        description=_merge_text(ordered, 'description', options.keep_description,
                                options.custom_description),
        category=_merge_choice(ordered, 'category', options.keep_category,
                               options.custom_category),
        favicon=_merge_choice(ordered, 'favicon', options.keep_favicon,
                              options.custom_favicon),
        tags=_merge_tags(ordered, options.combine_tags),
        is_favorite=_merge_favorite(ordered, options.keep_favorite_status),
        visits=_merge_visits(ordered, options.keep_visits),
        date_added=date_added,
        date_modified=date_modified,
    )
    logger.debug(f"Merged {len(ordered)} bookmarks into {merged.id}")
    return merged
