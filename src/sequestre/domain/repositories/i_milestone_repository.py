"""
Milestone repository interface.

Defines contract for the off-chain milestone mirror.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from sequestre.domain.entities.milestone import Milestone


class IMilestoneRepository(ABC):
    """
    Abstract repository interface for milestone mirror rows.

    Rows are keyed by (network, escrow_id, milestone_index), with escrow_id
    in canonical decimal form. The ledger stays authoritative; this store is
    a read-optimized cache of it. Implementations raise
    MirrorUnavailableError when the store itself fails.
    """

    @abstractmethod
    async def insert_milestones(self, milestones: list[Milestone]) -> list[Milestone]:
        """
        Persist one row per milestone.

        Must only be called after the escrow creation is confirmed.

        Raises:
            DuplicateEntityError: If a row with the same key already exists
        """

    @abstractmethod
    async def get_milestone(
        self,
        network: str,
        escrow_id: str,
        milestone_index: int,
    ) -> Optional[Milestone]:
        """Retrieve one milestone, or None if not mirrored."""

    @abstractmethod
    async def list_milestones(self, network: str, escrow_id: str) -> list[Milestone]:
        """List milestones of an escrow ordered by index."""

    @abstractmethod
    async def mark_completed(
        self,
        network: str,
        escrow_id: str,
        milestone_index: int,
        proof_data: Optional[str],
        completed_at: datetime,
    ) -> bool:
        """
        Transition a milestone to completed.

        Idempotent: an already completed row is left untouched.

        Returns:
            True if the row changed, False if it was already completed

        Raises:
            EntityNotFoundError: If the milestone is not mirrored
        """

    @abstractmethod
    async def find_escrow_by_idempotency_key(
        self, idempotency_key: str
    ) -> Optional[tuple[str, str]]:
        """
        Find the escrow created under an idempotency key.

        Returns:
            (network, escrow_id) or None
        """

    @abstractmethod
    async def list_escrows_with_pending(
        self, network: Optional[str] = None
    ) -> list[tuple[str, str]]:
        """List (network, escrow_id) pairs that still have pending rows."""
