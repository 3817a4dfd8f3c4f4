"""Custom exception hierarchy for pyreveal."""

from __future__ import annotations


class RevealError(Exception):
    """Base exception for all pyreveal errors."""

    #: Pipeline phase the error originates from, used when logging at the
    #: controller boundary.
    phase: str = "update"


class RevealConfigError(RevealError):
    """Invalid or missing configuration."""


class InvalidGeometry(RevealError):
    """Candidate region is malformed and cannot be merged.

    Raised for degenerate rings (fewer than 3 distinct vertices),
    self-intersecting rings, non-polygonal input and coordinates outside
    the valid longitude/latitude ranges.  Never retried.
    """

    phase = "merge"

    def __init__(self, message: str, *, reason: str = "") -> None:
        self.reason = reason
        super().__init__(message)


class ComputationFailure(RevealError):
    """The caller-supplied candidate region computation raised.

    Handled exactly like :class:`InvalidGeometry`: logged, write skipped.
    """

    phase = "compute"


class StorageFailure(RevealError):
    """Geometry store I/O or durability failure.

    The store never retries internally; the underlying exception is kept on
    ``cause`` (and chained as ``__cause__``) so callers can decide whether
    a retry with backoff makes sense.
    """

    phase = "store"

    def __init__(
        self,
        message: str,
        *,
        operation: str = "",
        cause: BaseException | None = None,
    ) -> None:
        self.operation = operation
        self.cause = cause
        super().__init__(message)


class StorageConflict(StorageFailure):
    """Stored revealed area changed since it was read (stale ``expected_version``).

    Raised when two writers race on the same scope.  The next viewport
    signal re-reads and re-merges from the current stored state.
    """

    def __init__(
        self,
        message: str,
        *,
        operation: str = "",
        expected_version: int | None = None,
        actual_version: int | None = None,
    ) -> None:
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(message, operation=operation)
