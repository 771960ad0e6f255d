"""Domain repository interfaces."""

from sequestre.domain.repositories.i_milestone_repository import (
    IMilestoneRepository,
)
from sequestre.domain.repositories.i_stablecoin_transaction_repository import (
    IStablecoinTransactionRepository,
)

__all__ = [
    "IMilestoneRepository",
    "IStablecoinTransactionRepository",
]
