"""
Milestone entity - Off-chain mirror of one escrow milestone.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from sequestre.domain.services.units import format_amount
from sequestre.domain.value_objects.milestone_definition import MilestoneDefinition


class MilestoneStatus(str, Enum):
    """Milestone lifecycle states."""

    PENDING = "pending"
    COMPLETED = "completed"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Milestone:
    """
    Milestone entity mirroring ledger milestone state.

    Business rules:
    - (network, escrow_id, milestone_index) identifies the milestone
    - Definition fields and hash are immutable after creation
    - Status transitions: PENDING → COMPLETED (terminal)
    - Completing an already completed milestone is a no-op
    - completed_at / proof_data are set only on completion
    """

    escrow_id: str
    milestone_index: int
    network: str
    title: str
    description: str
    amount: Decimal
    completion_date: datetime
    hash: str
    id: UUID = field(default_factory=uuid4)
    status: MilestoneStatus = field(default=MilestoneStatus.PENDING)
    completed_at: Optional[datetime] = field(default=None)
    proof_data: Optional[str] = field(default=None)
    idempotency_key: Optional[str] = field(default=None)
    created_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        """Validate milestone data after initialization."""
        if not self.escrow_id:
            raise ValueError("Escrow ID is required")

        if self.milestone_index < 0:
            raise ValueError("Milestone index cannot be negative")

        if not self.network:
            raise ValueError("Network is required")

        if not self.hash:
            raise ValueError("Commitment hash is required")

    @classmethod
    def from_definition(
        cls,
        definition: MilestoneDefinition,
        escrow_id: str,
        milestone_index: int,
        network: str,
        commitment_hash: str,
        idempotency_key: Optional[str] = None,
    ) -> "Milestone":
        """Create a pending mirror row for a confirmed escrow."""
        return cls(
            escrow_id=escrow_id,
            milestone_index=milestone_index,
            network=network,
            title=definition.title,
            description=definition.description,
            amount=definition.amount,
            completion_date=definition.completion_date,
            hash=commitment_hash,
            idempotency_key=idempotency_key,
        )

    @property
    def is_completed(self) -> bool:
        return self.status == MilestoneStatus.COMPLETED

    @property
    def definition(self) -> MilestoneDefinition:
        """Hashed fields as a value object."""
        return MilestoneDefinition(
            title=self.title,
            description=self.description,
            amount=self.amount,
            completion_date=self.completion_date,
        )

    def mark_completed(
        self,
        proof_data: Optional[str] = None,
        completed_at: Optional[datetime] = None,
    ) -> bool:
        """
        Transition milestone to COMPLETED.

        Args:
            proof_data: Release proof document, if known
            completed_at: Completion time (defaults to now)

        Returns:
            True if the status changed, False if already completed
        """
        if self.is_completed:
            return False

        self.status = MilestoneStatus.COMPLETED
        self.completed_at = completed_at or utcnow()
        self.proof_data = proof_data
        return True

    def to_dict(self) -> dict:
        """Convert entity to dictionary representation."""
        return {
            "index": self.milestone_index,
            "escrowId": self.escrow_id,
            "network": self.network,
            "title": self.title,
            "description": self.description,
            "amount": format_amount(self.amount),
            "completionDate": self.completion_date.isoformat(),
            "hash": self.hash,
            "status": self.status.value,
            "completedAt": (
                self.completed_at.isoformat() if self.completed_at else None
            ),
        }
