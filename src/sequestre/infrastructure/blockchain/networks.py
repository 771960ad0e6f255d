"""
Supported networks and the registry that builds their ledger adapters.
"""

from typing import Optional

from sequestre.config.settings import Settings
from sequestre.domain.exceptions import LedgerUnavailableError, ValidationError
from sequestre.domain.services.i_escrow_ledger import IEscrowLedger
from sequestre.domain.services.i_ledger_registry import ILedgerRegistry
from sequestre.domain.services.i_token_ledger import ITokenLedger
from sequestre.domain.value_objects.network import NetworkConfig
from sequestre.infrastructure.blockchain.unconfigured import (
    UnconfiguredEscrowLedger,
    UnconfiguredTokenLedger,
)
from sequestre.infrastructure.blockchain.web3_client import Web3Client
from sequestre.infrastructure.blockchain.web3_escrow_ledger import Web3EscrowLedger
from sequestre.infrastructure.blockchain.web3_token_ledger import Web3TokenLedger
from sequestre.infrastructure.monitoring.logger import get_logger
from sequestre.infrastructure.resilience.circuit_breaker import CircuitBreaker
from sequestre.infrastructure.resilience.retry import RetryConfig

logger = get_logger(__name__)

ESCROW_NETWORK_IDS = ("ethereum", "polygon")

STABLECOINS = {
    "ethereum": {
        "USDC": "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
        "USDT": "0xdAC17F958D2ee523a2206206994597C13D831ec7",
    },
    "polygon": {
        "USDC": "0x2791Bca1f2de4661ED88A30C99A7a9449Aa84174",
        "USDT": "0xc2132D05D31c914a87C6611C10748AEb04B58e8F",
    },
    "bsc": {
        "USDC": "0x8AC76a51cc950d9822D68b83fE1Ad97B32Cd580d",
        "USDT": "0x55d398326f99059fF775485246999027B3197955",
    },
}


def build_networks(settings: Settings) -> dict[str, NetworkConfig]:
    """Static network table merged with RPC/contract settings."""
    return {
        "ethereum": NetworkConfig(
            id="ethereum",
            name="Ethereum Mainnet",
            chain_id=1,
            rpc_url=settings.ETH_RPC_URL,
            escrow_contract=settings.MILESTONE_ESCROW_ADDRESS_ETH,
            tokens=STABLECOINS["ethereum"],
        ),
        "polygon": NetworkConfig(
            id="polygon",
            name="Polygon Mainnet",
            chain_id=137,
            rpc_url=settings.POLYGON_RPC_URL,
            escrow_contract=settings.MILESTONE_ESCROW_ADDRESS_POLYGON,
            tokens=STABLECOINS["polygon"],
        ),
        "bsc": NetworkConfig(
            id="bsc",
            name="Binance Smart Chain",
            chain_id=56,
            rpc_url=settings.BSC_RPC_URL,
            tokens=STABLECOINS["bsc"],
        ),
    }


class NetworkRegistry(ILedgerRegistry):
    """
    Registry of supported networks.

    Adapters are built lazily, one web3 client per network shared by the
    escrow and token adapters. Networks missing settings get unconfigured
    adapters.
    """

    def __init__(
        self,
        networks: dict[str, NetworkConfig],
        escrow_network_ids: tuple[str, ...] = ESCROW_NETWORK_IDS,
        retry_config: Optional[RetryConfig] = None,
        request_timeout: float = 30.0,
        receipt_timeout: float = 120.0,
        cb_failure_threshold: int = 5,
        cb_success_threshold: int = 2,
        cb_timeout_seconds: float = 60.0,
    ):
        self._networks = networks
        self._escrow_ids = escrow_network_ids
        self._retry_config = retry_config
        self._request_timeout = request_timeout
        self._receipt_timeout = receipt_timeout
        self._cb_failure_threshold = cb_failure_threshold
        self._cb_success_threshold = cb_success_threshold
        self._cb_timeout_seconds = cb_timeout_seconds

        self._clients: dict[str, Web3Client] = {}
        self._escrow_ledgers: dict[str, IEscrowLedger] = {}
        self._token_ledgers: dict[str, ITokenLedger] = {}

    @classmethod
    def from_settings(cls, settings: Settings) -> "NetworkRegistry":
        registry = cls(
            networks=build_networks(settings),
            retry_config=RetryConfig(
                max_attempts=settings.RETRY_MAX_ATTEMPTS,
                initial_delay=settings.RETRY_INITIAL_DELAY,
                max_delay=settings.RETRY_MAX_DELAY,
                backoff_multiplier=settings.RETRY_EXPONENTIAL_BASE,
            ),
            request_timeout=settings.RPC_REQUEST_TIMEOUT,
            receipt_timeout=settings.TX_RECEIPT_TIMEOUT,
            cb_failure_threshold=settings.CB_FAILURE_THRESHOLD,
            cb_success_threshold=settings.CB_SUCCESS_THRESHOLD,
            cb_timeout_seconds=settings.CB_TIMEOUT_SECONDS,
        )

        for network in registry.escrow_networks():
            missing = network.missing_escrow_settings()
            if missing:
                logger.warning(
                    f"Escrow on {network.id} disabled, missing: {', '.join(missing)}"
                )
        return registry

    def get_network(self, network_id: str) -> NetworkConfig:
        network = self._networks.get(network_id)
        if network is None:
            raise ValidationError("network", f"unsupported network: {network_id}")
        return network

    def escrow_networks(self) -> list[NetworkConfig]:
        return [self._networks[n] for n in self._escrow_ids if n in self._networks]

    def token_networks(self) -> list[NetworkConfig]:
        return [n for n in self._networks.values() if n.tokens]

    def escrow_ledger(self, network_id: str) -> IEscrowLedger:
        network = self.get_network(network_id)
        if network_id not in self._escrow_ids:
            raise ValidationError(
                "network", f"milestone escrow is not available on {network_id}"
            )

        if network_id not in self._escrow_ledgers:
            missing = network.missing_escrow_settings()
            if missing:
                ledger = UnconfiguredEscrowLedger(network, missing)
            else:
                ledger = Web3EscrowLedger(network, self._client(network))
            self._escrow_ledgers[network_id] = ledger
        return self._escrow_ledgers[network_id]

    def token_ledger(self, network_id: str) -> ITokenLedger:
        network = self.get_network(network_id)
        if not network.tokens:
            raise ValidationError("network", f"no stablecoins on {network_id}")

        if network_id not in self._token_ledgers:
            if network.has_rpc:
                ledger = Web3TokenLedger(network, self._client(network))
            else:
                ledger = UnconfiguredTokenLedger(network, ["rpc_url"])
            self._token_ledgers[network_id] = ledger
        return self._token_ledgers[network_id]

    def circuit_breaker_stats(self) -> list[dict]:
        return [c.circuit_breaker.get_stats() for c in self._clients.values()]

    def _client(self, network: NetworkConfig) -> Web3Client:
        if network.id not in self._clients:
            self._clients[network.id] = Web3Client(
                network,
                request_timeout=self._request_timeout,
                receipt_timeout=self._receipt_timeout,
                retry_config=self._retry_config,
                circuit_breaker=CircuitBreaker(
                    name=f"ledger_{network.id}",
                    failure_threshold=self._cb_failure_threshold,
                    success_threshold=self._cb_success_threshold,
                    recovery_timeout=self._cb_timeout_seconds,
                    expected_exception=LedgerUnavailableError,
                ),
            )
        return self._clients[network.id]

    async def close(self) -> None:
        for client in self._clients.values():
            await client.close()
        self._clients.clear()
        self._escrow_ledgers.clear()
        self._token_ledgers.clear()
