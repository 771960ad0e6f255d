"""
StablecoinTransaction entity - Log row for a confirmed token transfer.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from sequestre.domain.services.units import format_amount


class StablecoinTransactionStatus(str, Enum):
    """Recorded transfer outcome."""

    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class StablecoinTransaction:
    """
    Write-once record of a token transfer.

    Business rules:
    - Created only after the transfer receipt is confirmed
    - Transaction hash must be unique
    - Amount is in human units and must be positive
    - No lifecycle after creation
    """

    tx_hash: str
    from_address: str
    to_address: str
    amount: Decimal
    token: str
    network: str
    status: StablecoinTransactionStatus = StablecoinTransactionStatus.COMPLETED
    id: UUID = field(default_factory=uuid4)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    block_number: Optional[int] = None
    gas_used: Optional[int] = None
    effective_gas_price: Optional[int] = None

    def __post_init__(self):
        if not self.tx_hash:
            raise ValueError("Transaction hash is required")

        if self.amount <= 0:
            raise ValueError("Transaction amount must be positive")

        if not self.token:
            raise ValueError("Token symbol is required")

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "txHash": self.tx_hash,
            "fromAddress": self.from_address,
            "toAddress": self.to_address,
            "amount": format_amount(self.amount),
            "token": self.token,
            "network": self.network,
            "status": self.status.value,
            "timestamp": self.timestamp.isoformat(),
            "blockNumber": self.block_number,
        }
