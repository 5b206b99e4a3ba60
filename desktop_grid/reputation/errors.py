"""Custom exceptions for reputation system queries."""


class ReputationError(Exception):
    """Base exception for reputation query errors."""

    pass


class ReputationUnavailableError(ReputationError):
    """
    Raised when the reputation system cannot answer right now.

    This can happen when:
    - The trust statistics are being recomputed
    - The backing store is temporarily unreachable

    Transient: queries failing with this error are retried.
    """

    pass


class EstimateUnavailableError(ReputationError):
    """
    Raised when no estimate can be produced for the requested workers.

    This can happen when:
    - A worker has never been observed
    - The requested worker set is empty
    """

    def __init__(self, message: str, workers: frozenset | None = None):
        super().__init__(message)
        self.workers = workers or frozenset()
