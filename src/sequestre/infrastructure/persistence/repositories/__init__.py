"""SQLAlchemy repository implementations."""

from sequestre.infrastructure.persistence.repositories.milestone_repository import (
    MilestoneRepository,
)
from sequestre.infrastructure.persistence.repositories.stablecoin_transaction_repository import (  # noqa: E501
    StablecoinTransactionRepository,
)

__all__ = [
    "MilestoneRepository",
    "StablecoinTransactionRepository",
]
