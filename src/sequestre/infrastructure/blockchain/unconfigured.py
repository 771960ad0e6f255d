"""
Disabled ledger adapters for networks missing RPC or contract settings.

They fail fast with ``ConfigurationError`` instead of silently returning
placeholders.
"""

from decimal import Decimal
from typing import NoReturn

from sequestre.domain.exceptions import ConfigurationError
from sequestre.domain.services.i_escrow_ledger import (
    EscrowCreationReceipt,
    IEscrowLedger,
)
from sequestre.domain.services.i_token_ledger import (
    ITokenLedger,
    TokenTransferReceipt,
)
from sequestre.domain.value_objects.escrow_state import EscrowState
from sequestre.domain.value_objects.network import NetworkConfig


class _Unconfigured:
    def __init__(self, network: NetworkConfig, missing: list[str]):
        self._network = network
        self.missing = missing

    @property
    def network(self) -> NetworkConfig:
        return self._network

    def _fail(self) -> NoReturn:
        raise ConfigurationError(
            f"{self._network.name} ledger is not configured "
            f"(missing: {', '.join(self.missing)})"
        )


class UnconfiguredEscrowLedger(_Unconfigured, IEscrowLedger):
    """Escrow adapter whose every operation raises ConfigurationError."""

    async def create_escrow(
        self,
        funder_key: str,
        beneficiary: str,
        total_amount: Decimal,
        milestone_hashes: list[str],
    ) -> EscrowCreationReceipt:
        self._fail()

    async def release_milestone(
        self,
        admin_key: str,
        escrow_id: str,
        milestone_index: int,
        proof_hash: str,
    ) -> str:
        self._fail()

    async def get_escrow_details(self, escrow_id: str) -> EscrowState:
        self._fail()

    async def get_milestone_hash(self, escrow_id: str, milestone_index: int) -> str:
        self._fail()


class UnconfiguredTokenLedger(_Unconfigured, ITokenLedger):
    """Token adapter whose every operation raises ConfigurationError."""

    async def decimals(self, token_address: str) -> int:
        self._fail()

    async def symbol(self, token_address: str) -> str:
        self._fail()

    async def balance_of(self, token_address: str, owner: str) -> int:
        self._fail()

    async def allowance(self, token_address: str, owner: str, spender: str) -> int:
        self._fail()

    async def estimate_transfer_gas(
        self,
        token_address: str,
        sender: str,
        recipient: str,
        raw_amount: int,
    ) -> int:
        self._fail()

    async def gas_price(self) -> int:
        self._fail()

    async def transfer(
        self,
        sender_key: str,
        token_address: str,
        recipient: str,
        raw_amount: int,
    ) -> TokenTransferReceipt:
        self._fail()

    async def approve(
        self,
        owner_key: str,
        token_address: str,
        spender: str,
        raw_amount: int,
    ) -> TokenTransferReceipt:
        self._fail()
