"""
Token ledger service interface.

Raw ERC-20 operations on one network. Amounts are integers in the token's
smallest unit; conversion to human units happens in the application layer
using ``decimals`` fetched per call.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from sequestre.domain.value_objects.network import NetworkConfig


@dataclass(frozen=True)
class TokenTransferReceipt:
    """Confirmed token transaction."""

    tx_hash: str
    from_address: str
    block_number: int | None = None
    gas_used: int | None = None
    effective_gas_price: int | None = None


class ITokenLedger(ABC):
    """Abstract service interface for ERC-20 token contracts on one network."""

    @property
    @abstractmethod
    def network(self) -> NetworkConfig:
        """Network this ledger is bound to."""

    @abstractmethod
    async def decimals(self, token_address: str) -> int:
        """Read the token's declared decimal count."""

    @abstractmethod
    async def symbol(self, token_address: str) -> str:
        """Read the token symbol."""

    @abstractmethod
    async def balance_of(self, token_address: str, owner: str) -> int:
        """Read ``owner`` balance in smallest units."""

    @abstractmethod
    async def allowance(self, token_address: str, owner: str, spender: str) -> int:
        """Read the amount ``spender`` may move on behalf of ``owner``."""

    @abstractmethod
    async def estimate_transfer_gas(
        self,
        token_address: str,
        sender: str,
        recipient: str,
        raw_amount: int,
    ) -> int:
        """Estimate gas units for a ``transfer`` call."""

    @abstractmethod
    async def gas_price(self) -> int:
        """Current gas price in wei."""

    @abstractmethod
    async def transfer(
        self,
        sender_key: str,
        token_address: str,
        recipient: str,
        raw_amount: int,
    ) -> TokenTransferReceipt:
        """
        Send tokens and wait for a successful receipt.

        Raises:
            ConfigurationError: If network or key material is missing
            LedgerSubmissionError: If the transfer reverts
            LedgerUnavailableError: If the node cannot be reached
        """

    @abstractmethod
    async def approve(
        self,
        owner_key: str,
        token_address: str,
        spender: str,
        raw_amount: int,
    ) -> TokenTransferReceipt:
        """Approve ``spender`` and wait for a successful receipt."""

    async def close(self) -> None:
        """Release network resources (no-op by default)."""
