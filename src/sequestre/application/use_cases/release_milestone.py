"""
Release Milestone use case.

Releases one milestone's funds on the ledger, then marks the mirror row
completed.
CRITICAL: A milestone must never be released twice.
"""

from typing import Optional

from sequestre.application.dto.results import ReleaseResult
from sequestre.application.use_cases.check_milestone_readiness import (
    CheckMilestoneReadiness,
)
from sequestre.application.use_cases.reconcile_escrow_mirror import (
    ReconcileEscrowMirror,
)
from sequestre.domain.entities.milestone import utcnow
from sequestre.domain.exceptions import (
    ConfigurationError,
    MilestoneNotReadyError,
    MirrorInconsistencyError,
    SequestreException,
)
from sequestre.domain.repositories.i_milestone_repository import (
    IMilestoneRepository,
)
from sequestre.domain.services.commitment_hasher import hash_proof_data
from sequestre.domain.services.i_ledger_registry import ILedgerRegistry
from sequestre.domain.value_objects.escrow_id import canonical_escrow_id
from sequestre.infrastructure.monitoring import metrics
from sequestre.infrastructure.monitoring.logger import get_logger

logger = get_logger(__name__)


class ReleaseMilestone:
    """
    Release a milestone against its proof.

    Business rules:
    - Readiness is re-checked immediately before submission
    - Proof hash uses the same scheme as the creation commitment
    - The ledger's ordering and proof checks decide racing releases;
      the loser gets a LedgerSubmissionError and the mirror is untouched
    - Mirror is updated only after the ledger confirms the release

    Architecture:
    - Detected mirror/ledger divergence triggers a reconciliation before
      reporting the milestone as not ready
    - A mirror failure after a confirmed release is reported as
      MirrorInconsistencyError carrying the transaction hash
    """

    def __init__(
        self,
        ledger_registry: ILedgerRegistry,
        milestone_repository: IMilestoneRepository,
        check_readiness: Optional[CheckMilestoneReadiness] = None,
        reconcile_mirror: Optional[ReconcileEscrowMirror] = None,
    ):
        """
        Initialize use case with dependencies.

        Args:
            ledger_registry: Resolves the escrow ledger per network
            milestone_repository: Off-chain milestone mirror
            check_readiness: Readiness check (built from the above if omitted)
            reconcile_mirror: Mirror repair (built from the above if omitted)
        """
        self.ledger_registry = ledger_registry
        self.milestone_repository = milestone_repository
        self.check_readiness = check_readiness or CheckMilestoneReadiness(
            ledger_registry, milestone_repository
        )
        self.reconcile_mirror = reconcile_mirror or ReconcileEscrowMirror(
            ledger_registry, milestone_repository
        )

    async def execute(
        self,
        admin_key: str,
        escrow_id: str,
        milestone_index: int,
        network: str,
        proof_data: str,
    ) -> ReleaseResult:
        """
        Execute milestone release.

        Args:
            admin_key: Hex private key of the escrow admin
            escrow_id: Ledger escrow identifier
            milestone_index: Milestone to release
            network: Network identifier
            proof_data: JSON proof document restating the milestone

        Returns:
            ReleaseResult (success=False carries the error)

        Raises:
            ConfigurationError: If the network or admin key is not configured
        """
        try:
            return await self._execute(
                admin_key, escrow_id, milestone_index, network, proof_data
            )
        except ConfigurationError:
            raise
        except SequestreException as e:
            logger.warning(
                f"Release of milestone {milestone_index} of escrow {escrow_id} "
                f"on {network} failed: {e.message}",
                extra={
                    "network": network,
                    "escrow_id": escrow_id,
                    "error_code": e.code,
                },
            )
            return ReleaseResult(
                success=False,
                escrow_id=escrow_id,
                milestone_index=milestone_index,
                tx_hash=getattr(e, "tx_hash", None),
                error=e,
            )

    async def _execute(
        self,
        admin_key: str,
        escrow_id: str,
        milestone_index: int,
        network: str,
        proof_data: str,
    ) -> ReleaseResult:
        escrow_id = canonical_escrow_id(escrow_id)
        ledger = self.ledger_registry.escrow_ledger(network)

        # 1. Readiness right before submission
        readiness = await self.check_readiness.execute(
            escrow_id, milestone_index, network
        )
        if not readiness.is_ready:
            if readiness.mirror_out_of_sync:
                await self.reconcile_mirror.execute(escrow_id, network)
            raise MilestoneNotReadyError(escrow_id, milestone_index, readiness.reason)

        # 2. Proof hash
        proof_hash = hash_proof_data(proof_data)
        if proof_hash != readiness.milestone.hash:
            logger.warning(
                f"Proof for milestone {milestone_index} of escrow {escrow_id} "
                f"does not match its commitment, ledger will reject it",
                extra={"network": network, "escrow_id": escrow_id},
            )

        # 3. Submit release
        tx_hash = await ledger.release_milestone(
            admin_key=admin_key,
            escrow_id=escrow_id,
            milestone_index=milestone_index,
            proof_hash=proof_hash,
        )
        metrics.milestones_released_total.labels(network=network).inc()

        # 4. Mirror
        try:
            await self.milestone_repository.mark_completed(
                network, escrow_id, milestone_index, proof_data, utcnow()
            )
        except Exception as e:
            logger.error(
                f"Milestone {milestone_index} of escrow {escrow_id} released "
                f"({tx_hash}) but mirror update failed: {e}",
                extra={
                    "network": network,
                    "escrow_id": escrow_id,
                    "tx_hash": tx_hash,
                },
                exc_info=True,
            )
            metrics.mirror_inconsistencies_total.labels(
                network=network, kind="pending_released"
            ).inc()
            return ReleaseResult(
                success=False,
                escrow_id=escrow_id,
                milestone_index=milestone_index,
                tx_hash=tx_hash,
                error=MirrorInconsistencyError(
                    f"Milestone {milestone_index} released but mirror "
                    f"update failed: {e}",
                    escrow_id=escrow_id,
                    tx_hash=tx_hash,
                ),
            )

        logger.info(
            f"Milestone {milestone_index} of escrow {escrow_id} released "
            f"on {network}",
            extra={"network": network, "escrow_id": escrow_id, "tx_hash": tx_hash},
        )
        return ReleaseResult(
            success=True,
            escrow_id=escrow_id,
            milestone_index=milestone_index,
            tx_hash=tx_hash,
        )
