"""Domain entities."""

from sequestre.domain.entities.milestone import Milestone, MilestoneStatus
from sequestre.domain.entities.stablecoin_transaction import (
    StablecoinTransaction,
    StablecoinTransactionStatus,
)

__all__ = [
    "Milestone",
    "MilestoneStatus",
    "StablecoinTransaction",
    "StablecoinTransactionStatus",
]
