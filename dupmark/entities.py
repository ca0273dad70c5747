"""
Data model for duplicate detection and merging.

Everything here is created fresh for a single detection or merge call and
thrown away once the caller has acted on it. Nothing in this module touches
the database; see dupmark.models for the persisted bookmark.
"""
import re
from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from dupmark.exceptions import InvalidOptionsError


_CAMEL_BOUNDARY = re.compile(r'(?<!^)(?=[A-Z])')


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_snake_case(key: str) -> str:
    """Convert ``dateAdded`` style keys to ``date_added``."""
    return _CAMEL_BOUNDARY.sub('_', key).lower()


def parse_datetime(value: Union[str, int, float, datetime]) -> datetime:
    """
    Parse a datetime from an ISO-8601 string, an epoch number or a datetime.

    Epoch values above 1e11 are read as milliseconds (JavaScript style),
    smaller ones as seconds. Naive results are assumed to be UTC.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        seconds = value / 1000.0 if abs(value) > 1e11 else float(value)
        parsed = datetime.fromtimestamp(seconds, tz=timezone.utc)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        parsed = datetime.fromisoformat(text)
    else:
        raise ValueError(f"Cannot interpret {value!r} as a datetime")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _normalize_keys(data: Dict[str, Any]) -> Dict[str, Any]:
    return {to_snake_case(k): v for k, v in data.items()}


@dataclass(frozen=True)
class BookmarkSnapshot:
    """
    Immutable projection of a bookmark at scan time.

    Attributes:
        id: Bookmark identifier as used by the persistence layer
        title: Bookmark title
        url: Raw, unnormalized URL
        description: Optional free-text description
        category: Category name
        tags: Ordered tag list (may contain repeats)
        is_favorite: Whether the bookmark is starred
        date_added: When the bookmark was created
        date_modified: When the bookmark was last changed
        visits: Non-negative visit counter
        favicon: Optional favicon reference (URL, path or emoji)
    """
    id: str
    title: str
    url: str
    description: Optional[str] = None
    category: str = ""
    tags: List[str] = field(default_factory=list)
    is_favorite: bool = False
    date_added: datetime = field(default_factory=utcnow)
    date_modified: datetime = field(default_factory=utcnow)
    visits: int = 0
    favicon: Optional[str] = None

    def __post_init__(self):
        if self.visits < 0:
            raise ValueError(f"visits must be non-negative, got {self.visits}")
        # Naive dates are read as UTC
        object.__setattr__(self, 'date_added', parse_datetime(self.date_added))
        object.__setattr__(self, 'date_modified', parse_datetime(self.date_modified))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BookmarkSnapshot":
        """
        Build a snapshot from a dictionary.

        Accepts snake_case or camelCase keys (``isFavorite``, ``dateAdded``)
        and ISO strings, epoch numbers or datetimes for the two dates.
        Unknown keys are ignored.
        """
        values = _normalize_keys(data)
        if 'id' not in values or 'url' not in values:
            raise ValueError("A bookmark needs at least an 'id' and a 'url'")

        now = utcnow()
        date_added = values.get('date_added')
        date_modified = values.get('date_modified')

        return cls(
            id=str(values['id']),
            title=values.get('title') or '',
            url=values['url'],
            description=values.get('description'),
            category=values.get('category') or '',
            tags=list(values.get('tags') or []),
            is_favorite=bool(values.get('is_favorite', False)),
            date_added=parse_datetime(date_added) if date_added is not None else now,
            date_modified=parse_datetime(date_modified) if date_modified is not None else now,
            visits=int(values.get('visits') or 0),
            favicon=values.get('favicon'),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-friendly dictionary."""
        return {
            'id': self.id,
            'title': self.title,
            'url': self.url,
            'description': self.description,
            'category': self.category,
            'tags': list(self.tags),
            'is_favorite': self.is_favorite,
            'date_added': self.date_added.isoformat(),
            'date_modified': self.date_modified.isoformat(),
            'visits': self.visits,
            'favicon': self.favicon,
        }


@dataclass
class DetectionOptions:
    """
    Rules and normalization toggles for a duplicate scan.

    ``title_similarity_threshold`` must lie in [0, 1]; anything else is
    rejected at construction rather than clamped.
    """
    exact_url_matching: bool = True
    normalized_url_matching: bool = True
    title_similarity_matching: bool = True
    title_similarity_threshold: float = 0.8
    ignore_query_params: bool = True
    ignore_protocol: bool = True
    ignore_www: bool = True
    ignore_trailing_slash: bool = True
    case_sensitive: bool = False

    def __post_init__(self):
        threshold = self.title_similarity_threshold
        if isinstance(threshold, bool) or not isinstance(threshold, (int, float)):
            raise InvalidOptionsError(
                f"title_similarity_threshold must be a number, got {threshold!r}"
            )
        if not 0.0 <= threshold <= 1.0:
            raise InvalidOptionsError(
                f"title_similarity_threshold must be within [0, 1], got {threshold}"
            )

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]] = None,
                  base: Optional["DetectionOptions"] = None) -> "DetectionOptions":
        """
        Overlay a partial dictionary on top of ``base`` (or the defaults).

        Raises:
            InvalidOptionsError: For keys that are not detection options
        """
        base = base if base is not None else cls()
        if not data:
            return replace(base)

        known = {f.name for f in fields(cls)}
        changes = _normalize_keys(data)
        unknown = sorted(set(changes) - known)
        if unknown:
            raise InvalidOptionsError(f"Unknown detection option(s): {', '.join(unknown)}")
        return replace(base, **changes)

    def replace(self, **changes) -> "DetectionOptions":
        """Return a copy with the given fields changed."""
        return replace(self, **changes)


class DuplicateType(str, Enum):
    """Which rule put bookmarks into the same group."""
    EXACT = 'exact'
    NORMALIZED = 'normalized'
    TITLE_SIMILAR = 'title-similar'

    @property
    def strength(self) -> int:
        """Higher is stronger evidence: exact > normalized > title-similar."""
        return {
            DuplicateType.EXACT: 3,
            DuplicateType.NORMALIZED: 2,
            DuplicateType.TITLE_SIMILAR: 1,
        }[self]


class TextStrategy(str, Enum):
    FIRST = 'first'
    LAST = 'last'
    LONGEST = 'longest'
    CUSTOM = 'custom'


class ChoiceStrategy(str, Enum):
    FIRST = 'first'
    LAST = 'last'
    CUSTOM = 'custom'


class FavoriteStrategy(str, Enum):
    ANY = 'any'
    ALL = 'all'
    FIRST = 'first'
    LAST = 'last'


class VisitsStrategy(str, Enum):
    SUM = 'sum'
    MAX = 'max'
    FIRST = 'first'
    LAST = 'last'


class DatesStrategy(str, Enum):
    EARLIEST = 'earliest'
    LATEST = 'latest'
    FIRST = 'first'
    LAST = 'last'


# Selector field -> allowed strategy enum
MERGE_SELECTORS = {
    'keep_title': TextStrategy,
    'keep_description': TextStrategy,
    'keep_category': ChoiceStrategy,
    'keep_favicon': ChoiceStrategy,
    'keep_favorite_status': FavoriteStrategy,
    'keep_visits': VisitsStrategy,
    'keep_dates': DatesStrategy,
}


@dataclass
class MergeOptions:
    """
    Field-by-field conflict resolution policy for merging a duplicate group.

    A selector left as None takes the fallback branch of its field: the
    earliest bookmark's value for most fields, the sum for visits, and for
    dates the earliest bookmark's date_added with date_modified set to now.
    Plain strings are accepted and coerced to the matching strategy enum.
    """
    keep_title: Optional[TextStrategy] = None
    keep_description: Optional[TextStrategy] = None
    keep_category: Optional[ChoiceStrategy] = None
    keep_favicon: Optional[ChoiceStrategy] = None
    combine_tags: bool = False
    keep_favorite_status: Optional[FavoriteStrategy] = None
    keep_visits: Optional[VisitsStrategy] = None
    keep_dates: Optional[DatesStrategy] = None
    custom_title: Optional[str] = None
    custom_description: Optional[str] = None
    custom_category: Optional[str] = None
    custom_favicon: Optional[str] = None

    def __post_init__(self):
        for name, strategy_cls in MERGE_SELECTORS.items():
            value = getattr(self, name)
            if value is None or isinstance(value, strategy_cls):
                continue
            try:
                setattr(self, name, strategy_cls(value))
            except ValueError:
                allowed = ', '.join(s.value for s in strategy_cls)
                raise InvalidOptionsError(
                    f"Unknown {name} strategy {value!r} (expected one of: {allowed})"
                ) from None

    @classmethod
    def defaults(cls) -> "MergeOptions":
        """The recommended policy: keep the richest data from every bookmark."""
        return cls(
            keep_title=TextStrategy.LONGEST,
            keep_description=TextStrategy.LONGEST,
            keep_category=ChoiceStrategy.FIRST,
            keep_favicon=ChoiceStrategy.FIRST,
            combine_tags=True,
            keep_favorite_status=FavoriteStrategy.ANY,
            keep_visits=VisitsStrategy.SUM,
            keep_dates=DatesStrategy.EARLIEST,
        )

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]] = None,
                  base: Optional["MergeOptions"] = None) -> "MergeOptions":
        """Overlay a partial dictionary on top of ``base`` (or the defaults)."""
        base = base if base is not None else cls.defaults()
        if not data:
            return replace(base)

        known = {f.name for f in fields(cls)}
        changes = _normalize_keys(data)
        unknown = sorted(set(changes) - known)
        if unknown:
            raise InvalidOptionsError(f"Unknown merge option(s): {', '.join(unknown)}")
        return replace(base, **changes)


@dataclass(frozen=True)
class SimilarityScore:
    """Per-rule similarity of two bookmarks, each component in [0, 1]."""
    exact: float
    normalized: float
    title: float
    overall: float

    EXACT_WEIGHT = 0.5
    NORMALIZED_WEIGHT = 0.3
    TITLE_WEIGHT = 0.2

    @classmethod
    def from_components(cls, exact: float, normalized: float, title: float) -> "SimilarityScore":
        overall = (exact * cls.EXACT_WEIGHT
                   + normalized * cls.NORMALIZED_WEIGHT
                   + title * cls.TITLE_WEIGHT)
        return cls(exact=exact, normalized=normalized, title=title, overall=overall)

    def to_dict(self) -> Dict[str, float]:
        return {
            'exact': self.exact,
            'normalized': self.normalized,
            'title': self.title,
            'overall': self.overall,
        }


@dataclass(frozen=True)
class UrlNormalizationResult:
    """Canonical comparison form of a URL plus its parsed components."""
    original: str
    normalized: str
    domain: str = ''
    path: str = ''
    query_params: Dict[str, str] = field(default_factory=dict)
    fragment: str = ''


@dataclass
class DuplicateGroup:
    """A cluster of two or more bookmarks judged to be the same link."""
    id: str
    url: str
    normalized_url: str
    bookmarks: List[BookmarkSnapshot]
    similarity: float
    duplicate_type: DuplicateType
    detected_at: datetime = field(default_factory=utcnow)

    @property
    def ids(self) -> List[str]:
        return [b.id for b in self.bookmarks]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'url': self.url,
            'normalized_url': self.normalized_url,
            'bookmarks': [b.to_dict() for b in self.bookmarks],
            'similarity': self.similarity,
            'duplicate_type': self.duplicate_type.value,
            'detected_at': self.detected_at.isoformat(),
        }


@dataclass
class DetectionResult:
    """Outcome of a full collection scan."""
    groups: List[DuplicateGroup]
    total_duplicates: int
    exact_matches: int
    normalized_matches: int
    title_similar_matches: int
    scanned_count: int
    elapsed_ms: float

    def stats(self) -> Dict[str, Any]:
        """
        Summary numbers for display.

        ``percentage_duplicates`` is the share of scanned bookmarks that sit
        in some group, rounded to a whole percent.
        """
        percentage = 0
        if self.scanned_count > 0:
            percentage = int(self.total_duplicates / self.scanned_count * 100 + 0.5)
        return {
            'total_groups': len(self.groups),
            'total_duplicates': self.total_duplicates,
            'exact_matches': self.exact_matches,
            'normalized_matches': self.normalized_matches,
            'title_similar_matches': self.title_similar_matches,
            'scanned_count': self.scanned_count,
            'elapsed_ms': self.elapsed_ms,
            'percentage_duplicates': percentage,
        }

    def to_dict(self) -> Dict[str, Any]:
        data = self.stats()
        data['groups'] = [g.to_dict() for g in self.groups]
        return data
