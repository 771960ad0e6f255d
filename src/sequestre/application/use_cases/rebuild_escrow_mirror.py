"""
Rebuild Escrow Mirror use case.

Repair path for an escrow that exists on the ledger without mirror rows,
e.g. after a mirror write failed at creation.
"""

from typing import Optional, Union

from sequestre.application.dto.results import RebuildResult
from sequestre.application.use_cases.create_milestone_escrow import (
    scoped_creation_key,
)
from sequestre.domain.entities.milestone import Milestone, utcnow
from sequestre.domain.exceptions import (
    ConfigurationError,
    DuplicateEntityError,
    SequestreException,
    ValidationError,
)
from sequestre.domain.repositories.i_milestone_repository import (
    IMilestoneRepository,
)
from sequestre.domain.services.commitment_hasher import calculate_milestone_hash
from sequestre.domain.services.i_ledger_registry import ILedgerRegistry
from sequestre.domain.value_objects.escrow_id import canonical_escrow_id
from sequestre.domain.value_objects.milestone_definition import MilestoneDefinition
from sequestre.infrastructure.monitoring.logger import get_logger

logger = get_logger(__name__)


class RebuildEscrowMirror:
    """
    Recreate mirror rows from caller-supplied definitions.

    Business rules:
    - The escrow must have no mirror rows yet
    - Definition count must equal the ledger's milestone count
    - Each definition's hash must equal the ledger commitment at its index
    - Rows the ledger already released are inserted as completed
    """

    def __init__(
        self,
        ledger_registry: ILedgerRegistry,
        milestone_repository: IMilestoneRepository,
    ):
        self.ledger_registry = ledger_registry
        self.milestone_repository = milestone_repository

    async def execute(
        self,
        escrow_id: str,
        network: str,
        milestones: list[Union[MilestoneDefinition, dict]],
        idempotency_key: Optional[str] = None,
    ) -> RebuildResult:
        """
        Execute mirror rebuild.

        Args:
            escrow_id: Ledger escrow identifier
            network: Network identifier
            milestones: Definitions in ledger order
            idempotency_key: Creation key to attach, so creation retries
                replay this escrow

        Raises:
            ConfigurationError: If the network ledger is not configured
        """
        try:
            return await self._execute(escrow_id, network, milestones, idempotency_key)
        except ConfigurationError:
            raise
        except SequestreException as e:
            logger.warning(
                f"Mirror rebuild of escrow {escrow_id} on {network} failed: "
                f"{e.message}",
                extra={"network": network, "escrow_id": escrow_id},
            )
            return RebuildResult(
                success=False, escrow_id=escrow_id, network=network, error=e
            )

    async def _execute(
        self,
        escrow_id: str,
        network: str,
        milestones: list[Union[MilestoneDefinition, dict]],
        idempotency_key: Optional[str],
    ) -> RebuildResult:
        escrow_id = canonical_escrow_id(escrow_id)
        scoped_key = (
            scoped_creation_key(network, idempotency_key)
            if idempotency_key is not None
            else None
        )
        ledger = self.ledger_registry.escrow_ledger(network)

        # 1. Refuse to overwrite an existing mirror
        existing = await self.milestone_repository.list_milestones(network, escrow_id)
        if existing:
            raise DuplicateEntityError("Escrow mirror", f"escrow_id {escrow_id}")

        # 2. Ledger shape
        state = await ledger.get_escrow_details(escrow_id)
        definitions = [
            m if isinstance(m, MilestoneDefinition) else MilestoneDefinition.from_dict(m)
            for m in milestones or []
        ]
        if len(definitions) != state.total_milestones:
            raise ValidationError(
                "milestones",
                f"got {len(definitions)} definitions, ledger has "
                f"{state.total_milestones} milestones",
            )

        # 3. Verify every commitment against the ledger
        hashes = []
        for index, definition in enumerate(definitions):
            commitment = calculate_milestone_hash(definition)
            on_ledger = await ledger.get_milestone_hash(escrow_id, index)
            if commitment.lower() != on_ledger.lower():
                raise ValidationError(
                    f"milestones[{index}]",
                    "hash does not match the ledger commitment",
                )
            hashes.append(commitment)

        # 4. Insert, completed up to the ledger count
        completed_at = utcnow()
        rows = []
        for index, (definition, commitment) in enumerate(zip(definitions, hashes)):
            row = Milestone.from_definition(
                definition=definition,
                escrow_id=escrow_id,
                milestone_index=index,
                network=network,
                commitment_hash=commitment,
                idempotency_key=scoped_key,
            )
            if index < state.completed_milestones:
                row.mark_completed(completed_at=completed_at)
            rows.append(row)

        await self.milestone_repository.insert_milestones(rows)

        completed = min(state.completed_milestones, len(rows))
        logger.info(
            f"Rebuilt mirror of escrow {escrow_id} on {network}: "
            f"{len(rows)} rows, {completed} completed",
            extra={"network": network, "escrow_id": escrow_id},
        )
        return RebuildResult(
            success=True,
            escrow_id=escrow_id,
            network=network,
            inserted=len(rows),
            completed=completed,
        )
