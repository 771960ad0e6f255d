"""
Ledger-related exceptions.

Defines exceptions for smart contract calls and transaction submission.
"""

from typing import Optional

from sequestre.domain.exceptions.base import SequestreException


class LedgerError(SequestreException):
    """Base exception for ledger operations."""


class LedgerUnavailableError(LedgerError):
    """
    Raised when the ledger node cannot be reached.

    ``submitted`` tells the caller whether a transaction had already been
    sent when the failure happened. A submitted transaction may still land,
    so callers must re-query ledger state instead of resubmitting.
    """

    def __init__(
        self,
        message: str,
        submitted: bool = False,
        tx_hash: Optional[str] = None,
    ):
        """
        Initialize ledger unavailable error.

        Args:
            message: Error message
            submitted: True if the transaction was sent before the failure
            tx_hash: Hash of the sent transaction, if known
        """
        super().__init__(message, code="LEDGER_UNAVAILABLE")
        self.submitted = submitted
        self.tx_hash = tx_hash


class LedgerSubmissionError(LedgerError):
    """Raised when the ledger rejects (reverts) a transaction."""

    def __init__(
        self,
        reason: str,
        operation: Optional[str] = None,
        tx_hash: Optional[str] = None,
    ):
        """
        Initialize ledger submission error.

        Args:
            reason: Revert reason returned by the contract
            operation: Contract operation that reverted
            tx_hash: Hash of the mined (reverted) transaction, if any
        """
        prefix = f"{operation} reverted" if operation else "Transaction reverted"
        super().__init__(f"{prefix}: {reason}", code="LEDGER_SUBMISSION_FAILED")
        self.reason = reason
        self.operation = operation
        self.tx_hash = tx_hash
