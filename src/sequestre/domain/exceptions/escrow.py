"""
Escrow workflow exceptions.
"""

from typing import Optional

from sequestre.domain.exceptions.base import SequestreException


class MilestoneNotReadyError(SequestreException):
    """Raised when a milestone fails its readiness check."""

    def __init__(self, escrow_id: str, milestone_index: int, reason: str):
        """
        Initialize milestone not ready error.

        Args:
            escrow_id: Escrow identifier
            milestone_index: Milestone position within the escrow
            reason: Human-readable readiness failure
        """
        super().__init__(
            f"Milestone {milestone_index} of escrow {escrow_id} "
            f"is not ready: {reason}",
            code="MILESTONE_NOT_READY",
        )
        self.escrow_id = escrow_id
        self.milestone_index = milestone_index
        self.reason = reason


class MirrorInconsistencyError(SequestreException):
    """
    Raised when the off-chain mirror disagrees with the ledger.

    Not user-facing. Signals that the mirror must be reconciled from
    ledger state.
    """

    def __init__(
        self,
        message: str,
        escrow_id: Optional[str] = None,
        tx_hash: Optional[str] = None,
    ):
        super().__init__(message, code="MIRROR_INCONSISTENCY")
        self.escrow_id = escrow_id
        self.tx_hash = tx_hash


class MirrorUnavailableError(SequestreException):
    """Raised when the off-chain mirror store cannot be read or written."""

    def __init__(self, message: str, operation: Optional[str] = None):
        super().__init__(message, code="MIRROR_UNAVAILABLE")
        self.operation = operation
