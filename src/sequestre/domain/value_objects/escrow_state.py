"""
EscrowState value object - Snapshot of an escrow as held by the ledger.
"""

from dataclasses import dataclass
from decimal import Decimal

from sequestre.domain.services.units import format_amount


@dataclass(frozen=True)
class EscrowState:
    """
    Read-only view of ledger escrow state.

    The ledger owns this data. Amounts are human units (already converted
    from the smallest unit by the ledger adapter).
    """

    escrow_id: str
    funder: str
    beneficiary: str
    total_amount: Decimal
    released_amount: Decimal
    completed_milestones: int
    total_milestones: int
    is_active: bool

    @property
    def next_releasable_index(self) -> int:
        """Index of the only milestone the ledger will release next."""
        return self.completed_milestones

    @property
    def is_fully_released(self) -> bool:
        return self.completed_milestones >= self.total_milestones

    def to_dict(self) -> dict:
        return {
            "escrowId": self.escrow_id,
            "funder": self.funder,
            "beneficiary": self.beneficiary,
            "totalAmount": format_amount(self.total_amount),
            "releasedAmount": format_amount(self.released_amount),
            "completedMilestones": self.completed_milestones,
            "totalMilestones": self.total_milestones,
            "isActive": self.is_active,
        }
