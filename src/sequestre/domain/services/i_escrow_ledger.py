"""
Escrow ledger service interface.

Defines operations against the MilestoneEscrow smart contract on one
network. The contract enforces proof matching, strict release order and
escrow activity; implementations surface its revert reasons instead of
duplicating those checks.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal

from sequestre.domain.value_objects.escrow_state import EscrowState
from sequestre.domain.value_objects.network import NetworkConfig


@dataclass(frozen=True)
class EscrowCreationReceipt:
    """Confirmed escrow creation: ledger-assigned id plus tx hash."""

    escrow_id: str
    tx_hash: str
    block_number: int | None = None


class IEscrowLedger(ABC):
    """
    Abstract service interface for milestone escrow contract interaction.

    One instance per network. Write operations are at-most-once from the
    adapter's side: a timeout after sending raises
    ``LedgerUnavailableError(submitted=True)`` and the caller must re-query
    ``get_escrow_details`` before trying again.
    """

    @property
    @abstractmethod
    def network(self) -> NetworkConfig:
        """Network this ledger is bound to."""

    @abstractmethod
    async def create_escrow(
        self,
        funder_key: str,
        beneficiary: str,
        total_amount: Decimal,
        milestone_hashes: list[str],
    ) -> EscrowCreationReceipt:
        """
        Lock ``total_amount`` for ``beneficiary`` behind milestone hashes.

        Args:
            funder_key: Hex private key of the funding account
            beneficiary: Checksummed beneficiary address
            total_amount: Total in native human units
            milestone_hashes: 0x-prefixed commitment hashes, in index order

        Returns:
            Receipt with ledger-assigned escrow id

        Raises:
            ConfigurationError: If network or key material is missing
            LedgerSubmissionError: If the transaction reverts
            LedgerUnavailableError: If the node cannot be reached
        """

    @abstractmethod
    async def release_milestone(
        self,
        admin_key: str,
        escrow_id: str,
        milestone_index: int,
        proof_hash: str,
    ) -> str:
        """
        Release funds for one milestone.

        Returns:
            Transaction hash of the confirmed release

        Raises:
            ConfigurationError: If network or key material is missing
            LedgerSubmissionError: If the contract rejects the release
            LedgerUnavailableError: If the node cannot be reached
        """

    @abstractmethod
    async def get_escrow_details(self, escrow_id: str) -> EscrowState:
        """
        Read escrow state from the contract.

        Raises:
            ConfigurationError: If network is not configured
            LedgerUnavailableError: If the node cannot be reached
        """

    @abstractmethod
    async def get_milestone_hash(self, escrow_id: str, milestone_index: int) -> str:
        """
        Read the stored commitment hash for one milestone.

        Raises:
            ConfigurationError: If network is not configured
            LedgerUnavailableError: If the node cannot be reached
        """

    async def close(self) -> None:
        """Release network resources (no-op by default)."""
