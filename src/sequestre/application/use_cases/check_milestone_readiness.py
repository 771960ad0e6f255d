"""
Check Milestone Readiness use case.

Combines mirror status with ledger state to decide whether a milestone can
be released now. Read-only.
"""

from sequestre.application.dto.results import ReadinessResult
from sequestre.domain.exceptions import (
    ConfigurationError,
    MirrorInconsistencyError,
    SequestreException,
    ValidationError,
)
from sequestre.domain.repositories.i_milestone_repository import (
    IMilestoneRepository,
)
from sequestre.domain.services.i_ledger_registry import ILedgerRegistry
from sequestre.domain.value_objects.escrow_id import canonical_escrow_id
from sequestre.infrastructure.monitoring import metrics
from sequestre.infrastructure.monitoring.logger import get_logger

logger = get_logger(__name__)

OUT_OF_SYNC_REASON = "Milestone already released on ledger (mirror out of sync)"


class CheckMilestoneReadiness:
    """
    Decide whether a milestone is releasable.

    Business rules:
    - Milestone must be mirrored
    - Mirror status must be pending
    - Escrow must be active on the ledger
    - Ledger must expect exactly this index next (strict ordering)

    A pending mirror row that the ledger has already released is reported
    as out of sync; the mirror is never trusted over the ledger.
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
        milestone_index: int,
        network: str,
    ) -> ReadinessResult:
        """
        Execute readiness check.

        Returns:
            ReadinessResult with ``is_ready`` and a reason when not ready

        Raises:
            ConfigurationError: If the network ledger is not configured
        """
        try:
            return await self._execute(escrow_id, milestone_index, network)
        except ConfigurationError:
            raise
        except SequestreException as e:
            return ReadinessResult(is_ready=False, reason=e.message, error=e)

    async def _execute(
        self,
        escrow_id: str,
        milestone_index: int,
        network: str,
    ) -> ReadinessResult:
        if milestone_index < 0:
            raise ValidationError("milestone_index", "cannot be negative")
        escrow_id = canonical_escrow_id(escrow_id)

        ledger = self.ledger_registry.escrow_ledger(network)

        # 1. Mirror row must exist and be pending
        milestone = await self.milestone_repository.get_milestone(
            network, escrow_id, milestone_index
        )
        if milestone is None:
            return ReadinessResult(is_ready=False, reason="Milestone not found")

        if milestone.is_completed:
            return ReadinessResult(
                is_ready=False,
                reason="Milestone already completed",
                milestone=milestone,
            )

        # 2. Ledger state
        try:
            state = await ledger.get_escrow_details(escrow_id)
        except ConfigurationError:
            raise
        except SequestreException as e:
            logger.warning(
                f"Ledger read failed for escrow {escrow_id} on {network}: "
                f"{e.message}",
                extra={"network": network, "escrow_id": escrow_id},
            )
            return ReadinessResult(
                is_ready=False,
                reason=e.message,
                milestone=milestone,
                error=e,
            )

        # 3. Ledger already past a pending row
        if state.completed_milestones > milestone_index:
            error = MirrorInconsistencyError(
                f"Milestone {milestone_index} of escrow {escrow_id} is pending "
                f"in mirror but the ledger has released "
                f"{state.completed_milestones} milestones",
                escrow_id=escrow_id,
            )
            logger.error(
                error.message,
                extra={"network": network, "escrow_id": escrow_id},
            )
            metrics.mirror_inconsistencies_total.labels(
                network=network, kind="pending_released"
            ).inc()
            return ReadinessResult(
                is_ready=False,
                reason=OUT_OF_SYNC_REASON,
                milestone=milestone,
                escrow_state=state,
                mirror_out_of_sync=True,
                error=error,
            )

        # 4. Escrow active
        if not state.is_active:
            return ReadinessResult(
                is_ready=False,
                reason="Escrow is not active",
                milestone=milestone,
                escrow_state=state,
            )

        # 5. Strict ordering
        if state.completed_milestones != milestone_index:
            return ReadinessResult(
                is_ready=False,
                reason=(
                    f"Expected milestone index {state.completed_milestones}, "
                    f"got {milestone_index}"
                ),
                milestone=milestone,
                escrow_state=state,
            )

        return ReadinessResult(is_ready=True, milestone=milestone, escrow_state=state)
