"""
Stablecoin transaction repository interface.
"""

from abc import ABC, abstractmethod
from typing import Optional

from sequestre.domain.entities.stablecoin_transaction import StablecoinTransaction


class IStablecoinTransactionRepository(ABC):
    """Abstract repository interface for the stablecoin transfer log."""

    @abstractmethod
    async def create(self, transaction: StablecoinTransaction) -> StablecoinTransaction:
        """
        Persist a confirmed transfer.

        Raises:
            DuplicateEntityError: If the transaction hash is already logged
        """

    @abstractmethod
    async def get_by_tx_hash(self, tx_hash: str) -> Optional[StablecoinTransaction]:
        """Retrieve a transfer by transaction hash."""

    @abstractmethod
    async def list_by_address(
        self,
        address: str,
        network: Optional[str] = None,
        limit: int = 100,
    ) -> list[StablecoinTransaction]:
        """List transfers sent or received by ``address``, newest first."""
