"""
EVM ledger adapters.
"""

from sequestre.infrastructure.blockchain.networks import (
    ESCROW_NETWORK_IDS,
    STABLECOINS,
    NetworkRegistry,
    build_networks,
)
from sequestre.infrastructure.blockchain.unconfigured import (
    UnconfiguredEscrowLedger,
    UnconfiguredTokenLedger,
)
from sequestre.infrastructure.blockchain.web3_client import Web3Client
from sequestre.infrastructure.blockchain.web3_escrow_ledger import Web3EscrowLedger
from sequestre.infrastructure.blockchain.web3_token_ledger import Web3TokenLedger

__all__ = [
    "ESCROW_NETWORK_IDS",
    "STABLECOINS",
    "NetworkRegistry",
    "build_networks",
    "UnconfiguredEscrowLedger",
    "UnconfiguredTokenLedger",
    "Web3Client",
    "Web3EscrowLedger",
    "Web3TokenLedger",
]
