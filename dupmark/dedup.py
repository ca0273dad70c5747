"""
Duplicate grouping for bookmark collections.

Partitions a collection into clusters of near-identical bookmarks using
three rules, checked in priority order for every pair:

1. exact URL match
2. normalized URL match
3. title similarity above a threshold

The scan is a single forward pass with O(n^2) pair comparisons, which is
fine for personal collections. Callers scanning thousands of bookmarks
should run it off their UI thread.
"""
import logging
import time
import uuid
from dataclasses import dataclass
from typing import List, Optional, Sequence, Set, Tuple

from dupmark.entities import (
    BookmarkSnapshot,
    DetectionOptions,
    DetectionResult,
    DuplicateGroup,
    DuplicateType,
    SimilarityScore,
    utcnow,
)
from dupmark.normalize import normalize_url
from dupmark.similarity import calculate_similarity

logger = logging.getLogger(__name__)

NORMALIZED_MATCH_THRESHOLD = 0.95


@dataclass
class MatchCounters:
    """Number of groups in which each rule fired at least once."""
    exact_matches: int = 0
    normalized_matches: int = 0
    title_similar_matches: int = 0

    def record(self, fired: Set[DuplicateType]):
        if DuplicateType.EXACT in fired:
            self.exact_matches += 1
        if DuplicateType.NORMALIZED in fired:
            self.normalized_matches += 1
        if DuplicateType.TITLE_SIMILAR in fired:
            self.title_similar_matches += 1


def classify_match(score: SimilarityScore, options: DetectionOptions) -> Optional[DuplicateType]:
    """
    Decide which rule, if any, makes two bookmarks duplicates.

    Args:
        score: Similarity of the pair
        options: Which rules are enabled, and the title threshold

    Returns:
        The first enabled rule that matches, or None
    """
    if options.exact_url_matching and score.exact == 1.0:
        return DuplicateType.EXACT
    if options.normalized_url_matching and score.normalized >= NORMALIZED_MATCH_THRESHOLD:
        return DuplicateType.NORMALIZED
    if (options.title_similarity_matching
            and score.title >= options.title_similarity_threshold):
        return DuplicateType.TITLE_SIMILAR
    return None


def _match_score(score: SimilarityScore, match_type: DuplicateType) -> float:
    if match_type is DuplicateType.EXACT:
        return score.exact
    if match_type is DuplicateType.NORMALIZED:
        return score.normalized
    return score.title


def _new_group_id() -> str:
    return f"dup-{uuid.uuid4().hex[:12]}"


def group_duplicates(snapshots: Sequence[BookmarkSnapshot],
                     options: Optional[DetectionOptions] = None
                     ) -> Tuple[List[DuplicateGroup], MatchCounters]:
    """
    Cluster bookmarks into duplicate groups.

    Each not-yet-assigned bookmark, in input order, anchors a candidate
    cluster and absorbs every later unassigned bookmark that matches it.
    Absorbed bookmarks are assigned and never anchor or join another
    cluster, so the groups form a partition of the non-singleton bookmarks.

    A group's duplicate_type is the strongest rule that absorbed any of its
    members (exact > normalized > title-similar); its similarity is the
    highest match score seen while absorbing.

    Args:
        snapshots: Bookmarks to scan, in the order they should be considered
        options: Detection options (defaults when omitted)

    Returns:
        Tuple of (groups, per-rule group counters)
    """
    options = options or DetectionOptions()
    groups: List[DuplicateGroup] = []
    counters = MatchCounters()
    assigned: Set[str] = set()

    for i, anchor in enumerate(snapshots):
        if anchor.id in assigned:
            continue

        members = [anchor]
        member_ids = {anchor.id}
        fired: Set[DuplicateType] = set()
        max_similarity = 0.0

        for candidate in snapshots[i + 1:]:
            if candidate.id in assigned or candidate.id in member_ids:
                continue

            score = calculate_similarity(anchor, candidate, options)
            match_type = classify_match(score, options)
            if match_type is None:
                continue

            members.append(candidate)
            member_ids.add(candidate.id)
            fired.add(match_type)
            max_similarity = max(max_similarity, _match_score(score, match_type))
            logger.debug(f"{candidate.id} joins {anchor.id} ({match_type.value}, "
                         f"overall={score.overall:.3f})")

        assigned.update(member_ids)

        if len(members) < 2:
            continue

        duplicate_type = max(fired, key=lambda t: t.strength)
        groups.append(DuplicateGroup(
            id=_new_group_id(),
            url=anchor.url,
            normalized_url=normalize_url(anchor.url, options).normalized,
            bookmarks=members,
            similarity=max_similarity,
            duplicate_type=duplicate_type,
            detected_at=utcnow(),
        ))
        counters.record(fired)

    return groups, counters


def find_duplicates(snapshots: Sequence[BookmarkSnapshot],
                    options: Optional[DetectionOptions] = None) -> DetectionResult:
    """
    Scan a whole collection and summarize the duplicates found.

    Args:
        snapshots: Bookmarks to scan
        options: Detection options (defaults when omitted)

    Returns:
        DetectionResult with the groups, per-rule counters and timing
    """
    start = time.perf_counter()
    groups, counters = group_duplicates(snapshots, options)
    elapsed_ms = (time.perf_counter() - start) * 1000.0

    return DetectionResult(
        groups=groups,
        total_duplicates=sum(len(g.bookmarks) for g in groups),
        exact_matches=counters.exact_matches,
        normalized_matches=counters.normalized_matches,
        title_similar_matches=counters.title_similar_matches,
        scanned_count=len(snapshots),
        elapsed_ms=elapsed_ms,
    )


def check_for_duplicate(candidate: BookmarkSnapshot,
                        existing: Sequence[BookmarkSnapshot],
                        options: Optional[DetectionOptions] = None) -> List[BookmarkSnapshot]:
    """
    Find the existing bookmarks a new candidate would duplicate.

    Every existing bookmark is compared with the candidate on its own; no
    clustering takes place.

    Args:
        candidate: Bookmark about to be added
        existing: Current collection
        options: Detection options (defaults when omitted)

    Returns:
        Matching existing bookmarks, in input order
    """
    options = options or DetectionOptions()
    matches = []
    for bookmark in existing:
        score = calculate_similarity(candidate, bookmark, options)
        if classify_match(score, options) is not None:
            matches.append(bookmark)
    return matches
