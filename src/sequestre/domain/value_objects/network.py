"""
Network value objects - Static ledger network configuration.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class NetworkConfig:
    """
    Configuration of one EVM network.

    ``rpc_url`` and ``escrow_contract`` come from the environment and may be
    missing; adapters built for an incomplete network are unconfigured and
    fail fast.
    """

    id: str
    name: str
    chain_id: int
    rpc_url: Optional[str] = None
    escrow_contract: Optional[str] = None
    tokens: dict[str, str] = field(default_factory=dict)

    @property
    def has_rpc(self) -> bool:
        return bool(self.rpc_url)

    def missing_escrow_settings(self) -> list[str]:
        """Names of settings still required for escrow calls."""
        missing = []
        if not self.rpc_url:
            missing.append("rpc_url")
        if not self.escrow_contract:
            missing.append("escrow_contract")
        return missing

    def describe(self) -> dict:
        """Public description: ``{id, name, chainId}``."""
        return {"id": self.id, "name": self.name, "chainId": self.chain_id}
