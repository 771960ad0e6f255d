"""
Create Milestone Escrow use case.

Commits milestone hashes to the ledger in one value-bearing transaction and
mirrors the milestones off-chain once the transaction is confirmed.
CRITICAL: Idempotent per client key to prevent double funding.
"""

from decimal import Decimal
from typing import Optional, Union

from sequestre.application.dto.results import EscrowCreationResult
from sequestre.domain.entities.milestone import Milestone
from sequestre.domain.exceptions import (
    ConfigurationError,
    MirrorInconsistencyError,
    SequestreException,
    ValidationError,
)
from sequestre.domain.repositories.i_milestone_repository import (
    IMilestoneRepository,
)
from sequestre.domain.services.commitment_hasher import calculate_milestone_hash
from sequestre.domain.services.i_ledger_registry import ILedgerRegistry
from sequestre.domain.services.units import (
    NATIVE_DECIMALS,
    parse_amount,
    to_base_units,
)
from sequestre.domain.value_objects.evm_address import EvmAddress
from sequestre.domain.value_objects.milestone_definition import MilestoneDefinition
from sequestre.infrastructure.monitoring import metrics
from sequestre.infrastructure.monitoring.logger import get_logger
from sequestre.infrastructure.resilience import IdempotencyKey

logger = get_logger(__name__)

MAX_IDEMPOTENCY_KEY_LENGTH = 64


def scoped_creation_key(network: str, idempotency_key: str) -> str:
    """
    Creation key namespaced by network, shared by creation and rebuild.

    Raises:
        ValidationError: If the key is blank or longer than 64 characters
    """
    key = idempotency_key.strip() if isinstance(idempotency_key, str) else ""
    if not key:
        raise ValidationError("idempotency_key", "cannot be empty")
    if len(key) > MAX_IDEMPOTENCY_KEY_LENGTH:
        raise ValidationError(
            "idempotency_key",
            f"longer than {MAX_IDEMPOTENCY_KEY_LENGTH} characters",
        )
    return IdempotencyKey.scoped("create_escrow", network, key)


class CreateMilestoneEscrow:
    """
    Create an escrow with per-milestone commitment hashes.

    Business rules:
    - Network must support the milestone escrow
    - Beneficiary must be a valid EVM address
    - Total amount must be positive
    - At least one milestone, each with a positive amount
    - Milestone amounts must sum exactly (in wei) to the total
    - Mirror rows are written only after the ledger confirms creation

    Architecture:
    - Ledger is the single source of truth for escrow state
    - Mirror write failures never roll back the ledger; they are reported
      as MirrorInconsistencyError and repaired by RebuildEscrowMirror
    - IDEMPOTENT: same idempotency key returns the existing escrow
    """

    def __init__(
        self,
        ledger_registry: ILedgerRegistry,
        milestone_repository: IMilestoneRepository,
        idempotency_store=None,
        idempotency_ttl: int = 86400,
    ):
        """
        Initialize use case with dependencies.

        Args:
            ledger_registry: Resolves the escrow ledger per network
            milestone_repository: Off-chain milestone mirror
            idempotency_store: Optional result cache (Redis/InMemory)
            idempotency_ttl: Cache lifetime in seconds
        """
        self.ledger_registry = ledger_registry
        self.milestone_repository = milestone_repository
        self.idempotency_store = idempotency_store
        self.idempotency_ttl = idempotency_ttl

    async def execute(
        self,
        funder_key: str,
        beneficiary: str,
        total_amount: Union[str, Decimal],
        milestones: list[Union[MilestoneDefinition, dict]],
        network: str,
        idempotency_key: Optional[str] = None,
    ) -> EscrowCreationResult:
        """
        Execute escrow creation.

        Args:
            funder_key: Hex private key of the funding account
            beneficiary: Address receiving released funds
            total_amount: Escrow total in native units
            milestones: Milestone definitions (objects or camelCase dicts)
            network: Network identifier
            idempotency_key: Optional client key deduplicating retries

        Returns:
            EscrowCreationResult (success=False carries the error)

        Raises:
            ConfigurationError: If the network or funder key is not configured
        """
        try:
            return await self._execute(
                funder_key,
                beneficiary,
                total_amount,
                milestones,
                network,
                idempotency_key,
            )
        except ConfigurationError:
            raise
        except SequestreException as e:
            logger.warning(
                f"Escrow creation on {network} failed: {e.message}",
                extra={"network": network, "error_code": e.code},
            )
            return EscrowCreationResult(
                success=False,
                network=network,
                tx_hash=getattr(e, "tx_hash", None),
                error=e,
            )

    async def _execute(
        self,
        funder_key: str,
        beneficiary: str,
        total_amount: Union[str, Decimal],
        milestones: list[Union[MilestoneDefinition, dict]],
        network: str,
        idempotency_key: Optional[str],
    ) -> EscrowCreationResult:
        # 1. Validate inputs (no ledger call yet)
        ledger = self.ledger_registry.escrow_ledger(network)
        beneficiary_address = EvmAddress.parse(beneficiary, "beneficiary")
        definitions = self._validate_milestones(total_amount, milestones)

        # 2. Replay a previous creation under the same key
        scoped_key = None
        if idempotency_key is not None:
            scoped_key = scoped_creation_key(network, idempotency_key)
            replay = await self._find_replay(network, scoped_key)
            if replay is not None:
                return replay

        # 3. Hash milestones
        hashes = [calculate_milestone_hash(d) for d in definitions]

        # 4. Submit to ledger
        receipt = await ledger.create_escrow(
            funder_key=funder_key,
            beneficiary=beneficiary_address.address,
            total_amount=parse_amount(total_amount, "total_amount"),
            milestone_hashes=hashes,
        )
        metrics.escrows_created_total.labels(network=network).inc()

        # 5. Mirror confirmed escrow
        rows = [
            Milestone.from_definition(
                definition=d,
                escrow_id=receipt.escrow_id,
                milestone_index=i,
                network=network,
                commitment_hash=h,
                idempotency_key=scoped_key,
            )
            for i, (d, h) in enumerate(zip(definitions, hashes))
        ]
        try:
            await self.milestone_repository.insert_milestones(rows)
        except Exception as e:
            # 6. Escrow exists on ledger without mirror rows
            logger.error(
                f"Escrow {receipt.escrow_id} created on {network} "
                f"but mirror write failed: {e}",
                extra={
                    "network": network,
                    "escrow_id": receipt.escrow_id,
                    "tx_hash": receipt.tx_hash,
                },
                exc_info=True,
            )
            metrics.mirror_inconsistencies_total.labels(
                network=network, kind="missing_rows"
            ).inc()
            return EscrowCreationResult(
                success=False,
                escrow_id=receipt.escrow_id,
                tx_hash=receipt.tx_hash,
                network=network,
                milestone_hashes=hashes,
                error=MirrorInconsistencyError(
                    f"Escrow {receipt.escrow_id} created but milestone "
                    f"mirror write failed: {e}",
                    escrow_id=receipt.escrow_id,
                    tx_hash=receipt.tx_hash,
                ),
            )

        result = EscrowCreationResult(
            success=True,
            escrow_id=receipt.escrow_id,
            tx_hash=receipt.tx_hash,
            network=network,
            milestone_hashes=hashes,
        )

        if scoped_key and self.idempotency_store:
            await self.idempotency_store.set_async(
                scoped_key, result.to_dict(), ttl=self.idempotency_ttl
            )

        logger.info(
            f"Escrow {receipt.escrow_id} created on {network} "
            f"with {len(rows)} milestones",
            extra={
                "network": network,
                "escrow_id": receipt.escrow_id,
                "tx_hash": receipt.tx_hash,
            },
        )
        return result

    @staticmethod
    def _validate_milestones(
        total_amount: Union[str, Decimal],
        milestones: list[Union[MilestoneDefinition, dict]],
    ) -> list[MilestoneDefinition]:
        total_wei = to_base_units(total_amount, NATIVE_DECIMALS, "total_amount")
        if total_wei <= 0:
            raise ValidationError("total_amount", "must be positive")

        if not milestones:
            raise ValidationError("milestones", "at least one milestone is required")

        definitions = [
            m if isinstance(m, MilestoneDefinition) else MilestoneDefinition.from_dict(m)
            for m in milestones
        ]

        milestone_sum = 0
        for index, definition in enumerate(definitions):
            amount_wei = to_base_units(definition.amount, NATIVE_DECIMALS, "amount")
            if amount_wei <= 0:
                raise ValidationError(
                    f"milestones[{index}].amount", "must be positive"
                )
            milestone_sum += amount_wei

        if milestone_sum != total_wei:
            raise ValidationError(
                "milestones",
                f"amounts sum to {milestone_sum} wei, total is {total_wei} wei",
            )

        return definitions

    async def _find_replay(
        self, network: str, scoped_key: str
    ) -> Optional[EscrowCreationResult]:
        if self.idempotency_store:
            cached = await self.idempotency_store.get_async(scoped_key)
            if cached:
                logger.info(f"Replaying cached escrow creation {scoped_key}")
                return EscrowCreationResult(
                    success=True,
                    escrow_id=cached["escrowId"],
                    tx_hash=cached.get("txHash"),
                    network=network,
                    milestone_hashes=cached.get("milestoneHashes", []),
                    replayed=True,
                )

        existing = await self.milestone_repository.find_escrow_by_idempotency_key(
            scoped_key
        )
        if existing is None:
            return None

        _, escrow_id = existing
        rows = await self.milestone_repository.list_milestones(network, escrow_id)
        logger.info(
            f"Replaying escrow {escrow_id} on {network} for idempotency key",
            extra={"network": network, "escrow_id": escrow_id},
        )
        return EscrowCreationResult(
            success=True,
            escrow_id=escrow_id,
            network=network,
            milestone_hashes=[m.hash for m in rows],
            replayed=True,
        )
