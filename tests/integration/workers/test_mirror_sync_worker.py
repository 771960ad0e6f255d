"""
Integration tests for MirrorSyncWorker.

Usage:
    pytest tests/integration/workers/test_mirror_sync_worker.py
"""

import asyncio
from decimal import Decimal

from sequestre.infrastructure.blockchain.unconfigured import UnconfiguredEscrowLedger
from sequestre.infrastructure.persistence.repositories.milestone_repository import (
    MilestoneRepository,
)
from sequestre.infrastructure.workers.mirror_sync_worker import MirrorSyncWorker
from tests.helpers.factories import FUNDER_KEY, mirror_rows
from tests.helpers.fakes import BENEFICIARY_ADDRESS, FakeLedgerRegistry


class TestMirrorSyncWorker:
    """Integration tests for MirrorSyncWorker."""

    # ================================================================
    # Helper Methods
    # ================================================================

    async def _seed(self, test_db, registry, network: str = "ethereum") -> str:
        """Create an escrow on the fake ledger with matching mirror rows."""
        rows = mirror_rows(network=network)
        receipt = await registry.escrow_ledger(network).create_escrow(
            funder_key=FUNDER_KEY,
            beneficiary=BENEFICIARY_ADDRESS,
            total_amount=Decimal("1.0"),
            milestone_hashes=[r.hash for r in rows],
        )
        for row in rows:
            row.escrow_id = receipt.escrow_id
        async with test_db.session() as session:
            await MilestoneRepository(session).insert_milestones(rows)
        return receipt.escrow_id

    # ================================================================
    # Test Methods
    # ================================================================

    async def test_run_once_repairs_released_milestones(self, test_db):
        """Test rows released out of band are completed by a sync pass."""
        registry = FakeLedgerRegistry()
        escrow_id = await self._seed(test_db, registry)
        registry.escrow_ledger("ethereum").force_release(escrow_id, 1)
        worker = MirrorSyncWorker(test_db.session, registry)

        reports = await worker.run_once()

        assert len(reports) == 1
        assert reports[0].repaired == [0]
        async with test_db.session() as session:
            rows = await MilestoneRepository(session).list_milestones(
                "ethereum", escrow_id
            )
        assert [r.is_completed for r in rows] == [True, False]
        assert rows[0].proof_data is None

    async def test_run_once_skips_unconfigured_networks(self, test_db):
        """Test a network without ledger settings is skipped, not fatal."""
        registry = FakeLedgerRegistry()
        await self._seed(test_db, registry, network="polygon")
        escrow_id = await self._seed(test_db, registry, network="ethereum")
        registry.escrow_ledger("ethereum").force_release(escrow_id, 2)
        registry.escrow_ledgers["polygon"] = UnconfiguredEscrowLedger(
            registry.get_network("polygon"), ["rpc_url"]
        )
        worker = MirrorSyncWorker(test_db.session, registry)

        reports = await worker.run_once()

        assert [(r.network, r.repaired) for r in reports] == [("ethereum", [0, 1])]

    async def test_fully_synced_escrows_not_checked(self, test_db):
        """Test escrows without pending rows are left alone."""
        registry = FakeLedgerRegistry()
        escrow_id = await self._seed(test_db, registry)
        registry.escrow_ledger("ethereum").force_release(escrow_id, 2)
        worker = MirrorSyncWorker(test_db.session, registry)
        await worker.run_once()

        assert await worker.run_once() == []

    async def test_start_and_stop(self, test_db):
        """Test the background loop starts and stops cleanly."""
        worker = MirrorSyncWorker(
            test_db.session, FakeLedgerRegistry(), interval_seconds=3600
        )

        worker.start()
        await asyncio.sleep(0)
        assert worker.is_running

        await worker.stop()
        assert not worker.is_running
