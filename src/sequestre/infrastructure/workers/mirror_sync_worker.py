"""
Mirror sync worker.

Background loop reconciling every escrow that still has pending mirror
rows against the ledger.
"""

import asyncio
import time
from typing import Callable, Optional

from sequestre.application.dto.results import ReconciliationReport
from sequestre.application.use_cases.reconcile_escrow_mirror import (
    ReconcileEscrowMirror,
)
from sequestre.domain.exceptions import ConfigurationError
from sequestre.domain.services.i_ledger_registry import ILedgerRegistry
from sequestre.infrastructure.monitoring.logger import get_logger, log_duration
from sequestre.infrastructure.persistence.repositories.milestone_repository import (
    MilestoneRepository,
)

logger = get_logger(__name__)


class MirrorSyncWorker:
    """
    Periodic mirror reconciliation.

    Each escrow is reconciled in its own session so one failure does not
    roll back the others.
    """

    def __init__(
        self,
        session_factory: Callable,
        ledger_registry: ILedgerRegistry,
        interval_seconds: float = 300.0,
    ):
        """
        Initialize worker.

        Args:
            session_factory: Returns an async context manager yielding a
                session (``Database.session``)
            ledger_registry: Ledger adapters per network
            interval_seconds: Pause between sync passes
        """
        self.session_factory = session_factory
        self.ledger_registry = ledger_registry
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None
        self._stop_event = asyncio.Event()

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.is_running:
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._loop())
        logger.info(f"Mirror sync started (interval: {self.interval_seconds}s)")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._stop_event.set()
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Mirror sync stopped")

    async def _loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                await self.run_once()
            except Exception:
                logger.exception("Mirror sync pass failed")

            try:
                await asyncio.wait_for(
                    self._stop_event.wait(), timeout=self.interval_seconds
                )
            except asyncio.TimeoutError:
                continue

    async def run_once(self) -> list[ReconciliationReport]:
        """Reconcile every escrow with pending rows once."""
        start_time = time.perf_counter()
        async with self.session_factory() as session:
            pending = await MilestoneRepository(session).list_escrows_with_pending()

        reports = []
        for network, escrow_id in pending:
            report = await self._reconcile(network, escrow_id)
            if report is not None:
                reports.append(report)

        log_duration(
            logger,
            "mirror_sync_pass",
            start_time,
            escrows=len(pending),
            repaired=sum(len(r.repaired) for r in reports),
        )
        return reports

    async def _reconcile(
        self, network: str, escrow_id: str
    ) -> Optional[ReconciliationReport]:
        try:
            async with self.session_factory() as session:
                use_case = ReconcileEscrowMirror(
                    ledger_registry=self.ledger_registry,
                    milestone_repository=MilestoneRepository(session),
                )
                return await use_case.execute(escrow_id, network)
        except ConfigurationError as e:
            logger.warning(f"Skipping escrow {escrow_id} on {network}: {e.message}")
            return None
