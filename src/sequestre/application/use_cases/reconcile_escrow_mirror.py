"""
Reconcile Escrow Mirror use case.

Brings mirror milestone status in line with the ledger.
"""

from sequestre.application.dto.results import ReconciliationReport
from sequestre.domain.entities.milestone import utcnow
from sequestre.domain.exceptions import (
    ConfigurationError,
    MirrorInconsistencyError,
    SequestreException,
)
from sequestre.domain.repositories.i_milestone_repository import (
    IMilestoneRepository,
)
from sequestre.domain.services.i_ledger_registry import ILedgerRegistry
from sequestre.domain.value_objects.escrow_id import canonical_escrow_id
from sequestre.infrastructure.monitoring import metrics
from sequestre.infrastructure.monitoring.logger import get_logger

logger = get_logger(__name__)


class ReconcileEscrowMirror:
    """
    Re-sync mirror rows from ledger state.

    Business rules:
    - Pending rows below the ledger's completed count are marked completed
      (no proof data is available for them)
    - Completed rows at or above the ledger's count are reported, never
      pushed to the ledger
    - An escrow with no mirror rows is reported as missing
    """

    def __init__(
        self,
        ledger_registry: ILedgerRegistry,
        milestone_repository: IMilestoneRepository,
    ):
        self.ledger_registry = ledger_registry
        self.milestone_repository = milestone_repository

    async def execute(self, escrow_id: str, network: str) -> ReconciliationReport:
        """
        Execute reconciliation.

        Returns:
            ReconciliationReport listing repaired and inconsistent indexes

        Raises:
            ConfigurationError: If the network ledger is not configured
        """
        try:
            return await self._execute(escrow_id, network)
        except ConfigurationError:
            raise
        except SequestreException as e:
            logger.warning(
                f"Reconciliation of escrow {escrow_id} on {network} failed: "
                f"{e.message}",
                extra={"network": network, "escrow_id": escrow_id},
            )
            return ReconciliationReport(
                success=False, escrow_id=escrow_id, network=network, error=e
            )

    async def _execute(self, escrow_id: str, network: str) -> ReconciliationReport:
        escrow_id = canonical_escrow_id(escrow_id)
        ledger = self.ledger_registry.escrow_ledger(network)

        # 1. Ledger first, it is authoritative
        state = await ledger.get_escrow_details(escrow_id)
        rows = await self.milestone_repository.list_milestones(network, escrow_id)

        report = ReconciliationReport(
            success=True,
            escrow_id=escrow_id,
            network=network,
            ledger_completed=state.completed_milestones,
        )

        if not rows:
            report.missing_mirror = True
            logger.error(
                f"Escrow {escrow_id} on {network} has no mirror rows",
                extra={"network": network, "escrow_id": escrow_id},
            )
            metrics.mirror_inconsistencies_total.labels(
                network=network, kind="missing_rows"
            ).inc()
            return report

        if len(rows) != state.total_milestones:
            logger.warning(
                f"Escrow {escrow_id} on {network}: mirror has {len(rows)} rows, "
                f"ledger has {state.total_milestones} milestones",
                extra={"network": network, "escrow_id": escrow_id},
            )

        # 2. Walk rows against the ledger count
        completed_at = utcnow()
        for row in rows:
            index = row.milestone_index
            if index < state.completed_milestones:
                if row.is_completed:
                    continue
                changed = await self.milestone_repository.mark_completed(
                    network, escrow_id, index, None, completed_at
                )
                if changed:
                    report.repaired.append(index)
            elif row.is_completed:
                report.inconsistent.append(index)

        if report.repaired:
            logger.info(
                f"Repaired milestones {report.repaired} of escrow {escrow_id} "
                f"on {network}",
                extra={"network": network, "escrow_id": escrow_id},
            )

        if report.inconsistent:
            error = MirrorInconsistencyError(
                f"Milestones {report.inconsistent} of escrow {escrow_id} are "
                f"completed in mirror but not released on ledger "
                f"({state.completed_milestones} released)",
                escrow_id=escrow_id,
            )
            logger.error(
                error.message,
                extra={"network": network, "escrow_id": escrow_id},
            )
            metrics.mirror_inconsistencies_total.labels(
                network=network, kind="completed_unreleased"
            ).inc()

        return report
