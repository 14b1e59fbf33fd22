"""Error taxonomy for a ranking run."""

from __future__ import annotations


class PredrankError(Exception):
    """Base class for errors raised by predrank."""


class UpstreamUnavailable(PredrankError):
    """The market feed could not be reached or returned an unusable response."""


class MalformedRecord(PredrankError):
    """A single raw record failed parsing or validation. Never escapes normalize()."""

    def __init__(self, reason: str, message: str = ""):
        self.reason = reason
        super().__init__(message or str(getattr(reason, "value", reason)))


class PersistenceFailure(PredrankError):
    """A datastore write failed."""


class RankingError(PredrankError):
    """Invalid ranking configuration (e.g. k <= 0)."""


class EmptyGeneration(PredrankError):
    """The computed top-K set is empty and empty generations are not allowed."""


class RunInProgress(PredrankError):
    """Another run currently holds the run lock."""
