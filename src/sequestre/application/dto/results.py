"""
Tagged result objects returned by escrow and stablecoin use cases.

Expected failures (validation, ledger rejection, unreachable node, mirror
divergence) come back as ``success=False`` with the domain exception in
``error`` instead of being raised.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from sequestre.domain.entities.milestone import Milestone
from sequestre.domain.exceptions import SequestreException
from sequestre.domain.services.units import format_amount
from sequestre.domain.value_objects.escrow_state import EscrowState


def failure_dict(error: Optional[SequestreException], **extra) -> dict:
    """Render a failed result: ``{success: False, error, errorCode}``."""
    data = {
        "success": False,
        "error": error.message if error else "Unknown error",
        "errorCode": error.code if error else None,
    }
    data.update({k: v for k, v in extra.items() if v is not None})
    return data


@dataclass
class EscrowCreationResult:
    """Outcome of CreateMilestoneEscrow."""

    success: bool
    escrow_id: Optional[str] = None
    tx_hash: Optional[str] = None
    network: Optional[str] = None
    milestone_hashes: list[str] = field(default_factory=list)
    replayed: bool = False
    error: Optional[SequestreException] = None

    def to_dict(self) -> dict:
        if not self.success:
            # Mirror failures still carry the created escrow for operators
            return failure_dict(
                self.error, escrowId=self.escrow_id, txHash=self.tx_hash
            )
        return {
            "success": True,
            "escrowId": self.escrow_id,
            "txHash": self.tx_hash,
            "network": self.network,
            "milestoneHashes": self.milestone_hashes,
            "replayed": self.replayed,
        }


@dataclass
class ReadinessResult:
    """Outcome of CheckMilestoneReadiness."""

    is_ready: bool
    reason: Optional[str] = None
    milestone: Optional[Milestone] = None
    escrow_state: Optional[EscrowState] = None
    mirror_out_of_sync: bool = False
    error: Optional[SequestreException] = None

    def to_dict(self) -> dict:
        data = {"isReady": self.is_ready}
        if self.reason:
            data["reason"] = self.reason
        if self.error is not None:
            data["errorCode"] = self.error.code
        return data


@dataclass
class ReleaseResult:
    """Outcome of ReleaseMilestone."""

    success: bool
    escrow_id: str
    milestone_index: int
    tx_hash: Optional[str] = None
    error: Optional[SequestreException] = None

    def to_dict(self) -> dict:
        if not self.success:
            return failure_dict(self.error, txHash=self.tx_hash)
        return {
            "success": True,
            "txHash": self.tx_hash,
            "escrowId": self.escrow_id,
            "milestoneIndex": self.milestone_index,
        }


@dataclass
class EscrowOverview:
    """Ledger escrow state merged with its mirrored milestones."""

    success: bool
    network: str
    escrow_state: Optional[EscrowState] = None
    milestones: list[Milestone] = field(default_factory=list)
    error: Optional[SequestreException] = None

    def to_dict(self) -> dict:
        if not self.success:
            return failure_dict(self.error)
        data = {"success": True, "network": self.network}
        data.update(self.escrow_state.to_dict())
        data["milestones"] = [m.to_dict() for m in self.milestones]
        return data


@dataclass
class ReconciliationReport:
    """Outcome of ReconcileEscrowMirror."""

    success: bool
    escrow_id: str
    network: str
    ledger_completed: Optional[int] = None
    repaired: list[int] = field(default_factory=list)
    inconsistent: list[int] = field(default_factory=list)
    missing_mirror: bool = False
    error: Optional[SequestreException] = None

    @property
    def is_consistent(self) -> bool:
        return self.success and not self.inconsistent and not self.missing_mirror

    def to_dict(self) -> dict:
        if not self.success:
            return failure_dict(self.error)
        return {
            "success": True,
            "escrowId": self.escrow_id,
            "network": self.network,
            "ledgerCompletedMilestones": self.ledger_completed,
            "repaired": self.repaired,
            "inconsistent": self.inconsistent,
            "missingMirror": self.missing_mirror,
        }


@dataclass
class RebuildResult:
    """Outcome of RebuildEscrowMirror."""

    success: bool
    escrow_id: str
    network: str
    inserted: int = 0
    completed: int = 0
    error: Optional[SequestreException] = None

    def to_dict(self) -> dict:
        if not self.success:
            return failure_dict(self.error)
        return {
            "success": True,
            "escrowId": self.escrow_id,
            "network": self.network,
            "inserted": self.inserted,
            "completed": self.completed,
        }


@dataclass
class TransferResult:
    """Outcome of a stablecoin transfer."""

    success: bool
    network: str
    token: str
    tx_hash: Optional[str] = None
    from_address: Optional[str] = None
    to_address: Optional[str] = None
    amount: Optional[Decimal] = None
    block_number: Optional[int] = None
    gas_used: Optional[int] = None
    effective_gas_price: Optional[int] = None
    recorded: bool = True
    error: Optional[SequestreException] = None

    def to_dict(self) -> dict:
        if not self.success:
            return failure_dict(self.error, txHash=self.tx_hash)
        return {
            "success": True,
            "txHash": self.tx_hash,
            "from": self.from_address,
            "to": self.to_address,
            "amount": format_amount(self.amount),
            "token": self.token,
            "network": self.network,
            "blockNumber": self.block_number,
            "gasUsed": self.gas_used,
            "effectiveGasPrice": (
                str(self.effective_gas_price)
                if self.effective_gas_price is not None
                else None
            ),
            "recorded": self.recorded,
        }


@dataclass
class ApprovalResult:
    """Outcome of a stablecoin spender approval."""

    success: bool
    network: str
    token: str
    tx_hash: Optional[str] = None
    owner: Optional[str] = None
    spender: Optional[str] = None
    amount: Optional[Decimal] = None
    error: Optional[SequestreException] = None

    def to_dict(self) -> dict:
        if not self.success:
            return failure_dict(self.error, txHash=self.tx_hash)
        return {
            "success": True,
            "txHash": self.tx_hash,
            "owner": self.owner,
            "spender": self.spender,
            "amount": format_amount(self.amount),
            "token": self.token,
            "network": self.network,
        }
