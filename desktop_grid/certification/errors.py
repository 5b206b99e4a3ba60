"""Custom exceptions for result certification."""

from __future__ import annotations


class CertificationError(Exception):
    """
    Base exception raised when no result can be certified.

    Always surfaced to the caller: returning an arbitrary result instead
    would hand the decision to whoever colludes.
    """

    pass


class InsufficientRedundancyError(CertificationError):
    """
    Raised when too few results were submitted to cross-check them.

    This can happen when:
    - A single worker executed the job
    - No result was submitted at all
    """

    def __init__(self, message: str, submissions: int = 0):
        super().__init__(message)
        self.submissions = submissions


class ReputationDataError(CertificationError):
    """
    Raised when the reputation system cannot back the decision.

    This can happen when:
    - A collusion likelihood query fails
    - The reputation system returns no estimate for a group
    - An estimate is too uncertain to rank groups with
    """

    pass


class UntrustworthyResultError(CertificationError):
    """
    Raised when the submissions do not single out a trustworthy result.

    This can happen when:
    - Every worker returned a different result
    - The best groups cannot be told apart within their uncertainty
    - The best group is itself likely to be colluding
    - No strict majority exists (majority certificators)
    """

    pass
