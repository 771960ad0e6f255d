"""
MilestoneEscrow contract adapter over web3.
"""

from decimal import Decimal

from web3 import AsyncWeb3
from web3.logs import DISCARD

from sequestre.domain.exceptions import LedgerUnavailableError, ValidationError
from sequestre.domain.services.i_escrow_ledger import (
    EscrowCreationReceipt,
    IEscrowLedger,
)
from sequestre.domain.services.units import (
    NATIVE_DECIMALS,
    from_base_units,
    to_base_units,
)
from sequestre.domain.value_objects.escrow_id import parse_escrow_id
from sequestre.domain.value_objects.escrow_state import EscrowState
from sequestre.domain.value_objects.network import NetworkConfig
from sequestre.infrastructure.blockchain.abis import MILESTONE_ESCROW_ABI
from sequestre.infrastructure.blockchain.web3_client import Web3Client, load_account
from sequestre.infrastructure.monitoring.logger import get_logger

logger = get_logger(__name__)


def to_bytes32(value: str, field: str) -> bytes:
    """
    Decode a 0x-prefixed 32-byte hex string.

    Raises:
        ValidationError: If the value is not 32 bytes of hex
    """
    try:
        raw = AsyncWeb3.to_bytes(hexstr=value)
    except (ValueError, TypeError):
        raise ValidationError(field, f"not hex: {value!r}")
    if len(raw) != 32:
        raise ValidationError(field, f"expected 32 bytes, got {len(raw)}")
    return raw


class Web3EscrowLedger(IEscrowLedger):
    """
    Escrow ledger backed by a deployed MilestoneEscrow contract.

    Amounts cross the contract boundary in wei (18 decimals).
    """

    def __init__(self, network: NetworkConfig, client: Web3Client):
        """
        Initialize adapter.

        Args:
            network: Network with RPC URL and escrow contract address
            client: Web3 client bound to the same network
        """
        self._network = network
        self.client = client
        self.contract = client.contract(network.escrow_contract, MILESTONE_ESCROW_ABI)

    @property
    def network(self) -> NetworkConfig:
        return self._network

    async def create_escrow(
        self,
        funder_key: str,
        beneficiary: str,
        total_amount: Decimal,
        milestone_hashes: list[str],
    ) -> EscrowCreationReceipt:
        account = load_account(funder_key, "Funder")
        total_wei = to_base_units(total_amount, NATIVE_DECIMALS, "total_amount")
        hashes = [to_bytes32(h, "milestone_hashes") for h in milestone_hashes]

        fn = self.contract.functions.createEscrow(
            AsyncWeb3.to_checksum_address(beneficiary),
            total_wei,
            hashes,
        )
        receipt = await self.client.transact(
            "create_escrow", account, fn, value=total_wei
        )
        tx_hash = AsyncWeb3.to_hex(receipt["transactionHash"])

        events = self.contract.events.EscrowCreated().process_receipt(
            receipt, errors=DISCARD
        )
        if not events:
            raise LedgerUnavailableError(
                "EscrowCreated event missing from confirmed receipt",
                submitted=True,
                tx_hash=tx_hash,
            )

        escrow_id = str(events[0]["args"]["escrowId"])
        logger.info(
            f"Escrow {escrow_id} created on {self._network.id}",
            extra={"escrow_id": escrow_id, "tx_hash": tx_hash},
        )

        return EscrowCreationReceipt(
            escrow_id=escrow_id,
            tx_hash=tx_hash,
            block_number=receipt.get("blockNumber"),
        )

    async def release_milestone(
        self,
        admin_key: str,
        escrow_id: str,
        milestone_index: int,
        proof_hash: str,
    ) -> str:
        account = load_account(admin_key, "Admin")
        fn = self.contract.functions.releaseMilestone(
            parse_escrow_id(escrow_id),
            milestone_index,
            to_bytes32(proof_hash, "proof_hash"),
        )
        receipt = await self.client.transact("release_milestone", account, fn)
        return AsyncWeb3.to_hex(receipt["transactionHash"])

    async def get_escrow_details(self, escrow_id: str) -> EscrowState:
        ledger_id = parse_escrow_id(escrow_id)
        fn = self.contract.functions.getEscrowDetails(ledger_id)
        (
            funder,
            beneficiary,
            total_amount,
            released_amount,
            completed_milestones,
            total_milestones,
            is_active,
        ) = await self.client.read("get_escrow_details", fn.call)

        return EscrowState(
            escrow_id=str(ledger_id),
            funder=funder,
            beneficiary=beneficiary,
            total_amount=from_base_units(total_amount, NATIVE_DECIMALS),
            released_amount=from_base_units(released_amount, NATIVE_DECIMALS),
            completed_milestones=int(completed_milestones),
            total_milestones=int(total_milestones),
            is_active=bool(is_active),
        )

    async def get_milestone_hash(self, escrow_id: str, milestone_index: int) -> str:
        fn = self.contract.functions.getMilestoneHash(
            parse_escrow_id(escrow_id), milestone_index
        )
        raw = await self.client.read("get_milestone_hash", fn.call)
        return AsyncWeb3.to_hex(raw)
