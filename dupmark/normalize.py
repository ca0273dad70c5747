"""
URL normalization for duplicate detection.

The rules run in a fixed order because the order changes the result:

    1. parse (unparseable input is returned unchanged)
    2. ignore_protocol      http:// or https:// -> //
    3. ignore_www           //www.example.com -> //example.com
    4. ignore_trailing_slash  one '/' at the end of the path
    5. ignore_query_params  drop '?...'
    6. always               drop '#...'
    7. not case_sensitive   lower-case everything

Two URLs are normalized duplicates iff the resulting strings are equal.
"""
import logging
import re
from typing import Optional
from urllib.parse import urlsplit, parse_qsl

from dupmark.entities import DetectionOptions, UrlNormalizationResult

logger = logging.getLogger(__name__)

_PROTOCOL_PATTERN = re.compile(r'^https?://', re.IGNORECASE)
_WWW_PATTERN = re.compile(r'^([a-z][a-z0-9+.\-]*:)?//www\.', re.IGNORECASE)
_SEPARATOR_ONLY = re.compile(r'([a-z][a-z0-9+.\-]*:)?/+', re.IGNORECASE)

# Schemes that are meaningless without a host
_HOST_SCHEMES = {'http', 'https', 'ftp', 'ws', 'wss'}


def _parse(url: str) -> Optional[UrlNormalizationResult]:
    """Split ``url`` into its components, or None if it is not a URL."""
    try:
        parts = urlsplit(url)
        # Accessing the port validates it
        parts.port
    except ValueError:
        return None

    if not parts.scheme:
        return None
    if parts.scheme.lower() in _HOST_SCHEMES and not parts.hostname:
        return None

    path = parts.path
    if not path and parts.netloc:
        path = '/'

    return UrlNormalizationResult(
        original=url,
        normalized=url,
        domain=parts.hostname or '',
        path=path,
        query_params=dict(parse_qsl(parts.query, keep_blank_values=True)),
        fragment=f"#{parts.fragment}" if parts.fragment else '',
    )


def _strip_trailing_slash(url: str) -> str:
    cut = len(url)
    for marker in ('?', '#'):
        index = url.find(marker)
        if index != -1:
            cut = min(cut, index)
    head = url[:cut]
    # The slashes of a bare scheme separator ("file:///") are not a path
    if head.endswith('/') and not _SEPARATOR_ONLY.fullmatch(head):
        return head[:-1] + url[cut:]
    return url


def normalize_url(url: str, options: Optional[DetectionOptions] = None) -> UrlNormalizationResult:
    """
    Reduce a URL to its comparison form.

    Never raises: input that cannot be parsed as a URL comes back unchanged
    as ``normalized`` with empty structured fields.

    Args:
        url: URL to normalize
        options: Normalization toggles (defaults when omitted)

    Returns:
        UrlNormalizationResult with the normalized string and parsed parts
    """
    options = options or DetectionOptions()

    parsed = _parse(url) if isinstance(url, str) else None
    if parsed is None:
        logger.debug(f"Not normalizing unparseable URL: {url!r}")
        return UrlNormalizationResult(original=url, normalized=url)

    normalized = url

    if options.ignore_protocol:
        normalized = _PROTOCOL_PATTERN.sub('//', normalized, count=1)

    if options.ignore_www:
        normalized = _WWW_PATTERN.sub(lambda m: f"{m.group(1) or ''}//", normalized, count=1)

    if options.ignore_trailing_slash:
        normalized = _strip_trailing_slash(normalized)

    if options.ignore_query_params:
        normalized = normalized.split('?', 1)[0]

    normalized = normalized.split('#', 1)[0]

    if not options.case_sensitive:
        normalized = normalized.lower()

    return UrlNormalizationResult(
        original=url,
        normalized=normalized,
        domain=parsed.domain,
        path=parsed.path,
        query_params=parsed.query_params,
        fragment=parsed.fragment,
    )


def urls_match(url_a: str, url_b: str, options: Optional[DetectionOptions] = None) -> bool:
    """True if both URLs normalize to the same string."""
    return normalize_url(url_a, options).normalized == normalize_url(url_b, options).normalized
