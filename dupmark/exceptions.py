"""
Exceptions raised by dupmark.

Malformed URLs are deliberately absent: normalization degrades to the
original string instead of raising.
"""


class DupmarkError(Exception):
    """Base class for all dupmark errors."""
    pass


class EmptyMergeSet(DupmarkError, ValueError):
    """Raised when a merge is requested for zero bookmarks."""

    def __init__(self, message: str = "Cannot merge an empty set of duplicates"):
        super().__init__(message)


class InvalidOptionsError(DupmarkError, ValueError):
    """Raised for out-of-range thresholds or unknown merge strategies."""
    pass


class IntegrationError(DupmarkError):
    """Raised at the integration boundary (missing callbacks, unknown ids)."""
    pass
