"""
Unit tests for ReleaseMilestone use case.

Tests proof hashing, readiness gating, mirror updates and the
reconciliation triggered by a ledger that is ahead of the mirror.

Usage:
    pytest tests/unit/application/test_release_milestone.py
"""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from sequestre.application.use_cases.release_milestone import ReleaseMilestone
from sequestre.domain.exceptions import (
    ConfigurationError,
    LedgerSubmissionError,
    LedgerUnavailableError,
    MilestoneNotReadyError,
    MirrorInconsistencyError,
    ValidationError,
)
from sequestre.domain.services.commitment_hasher import build_proof_data
from tests.helpers.factories import ADMIN_KEY, FUNDER_KEY, mirror_rows
from tests.helpers.fakes import BENEFICIARY_ADDRESS, FakeLedgerRegistry


class TestReleaseMilestone:
    """Unit tests for ReleaseMilestone use case."""

    # ================================================================
    # Helper Methods
    # ================================================================

    async def _setup(self):
        """Escrow "1" with two milestones and a mocked mirror."""
        registry = FakeLedgerRegistry()
        rows = mirror_rows()
        await registry.escrow_ledger("ethereum").create_escrow(
            funder_key=FUNDER_KEY,
            beneficiary=BENEFICIARY_ADDRESS,
            total_amount=Decimal("1.0"),
            milestone_hashes=[r.hash for r in rows],
        )

        repo = AsyncMock()
        repo.get_milestone.side_effect = lambda network, escrow_id, index: (
            rows[index] if index < len(rows) else None
        )
        repo.list_milestones.return_value = rows
        repo.mark_completed.return_value = True
        self.rows = rows
        return registry, repo, ReleaseMilestone(registry, repo)

    def _proof(self, index: int = 0, **evidence) -> str:
        return build_proof_data(self.rows[index].definition, **evidence)

    # ================================================================
    # Test Methods - Success
    # ================================================================

    async def test_release_success(self):
        """Test a valid proof releases funds and completes the mirror row."""
        registry, repo, use_case = await self._setup()
        proof = self._proof(0, evidence="https://example.com/report.pdf")

        result = await use_case.execute(ADMIN_KEY, "1", 0, "ethereum", proof)

        ledger = registry.escrow_ledger("ethereum")
        assert result.success is True
        assert result.tx_hash.startswith("0x")
        assert ledger.escrows["1"]["completed"] == 1
        assert ledger.escrows["1"]["released"] == Decimal("0.5")

        repo.mark_completed.assert_awaited_once()
        args = repo.mark_completed.await_args.args
        assert args[:4] == ("ethereum", "1", 0, proof)
        assert args[4].tzinfo is not None

    async def test_release_all_milestones_in_order(self):
        """Test releasing every milestone deactivates the escrow."""
        registry, _, use_case = await self._setup()

        await use_case.execute(ADMIN_KEY, "1", 0, "ethereum", self._proof(0))
        self.rows[0].mark_completed()
        result = await use_case.execute(ADMIN_KEY, "1", 1, "ethereum", self._proof(1))

        escrow = registry.escrow_ledger("ethereum").escrows["1"]
        assert result.success is True
        assert escrow["completed"] == 2
        assert escrow["active"] is False

    # ================================================================
    # Test Methods - Proof Failures
    # ================================================================

    async def test_wrong_proof_rejected_by_ledger(self):
        """Test a proof for another milestone is rejected by the ledger."""
        registry, repo, use_case = await self._setup()

        result = await use_case.execute(
            ADMIN_KEY, "1", 0, "ethereum", self._proof(1)
        )

        assert result.success is False
        assert isinstance(result.error, LedgerSubmissionError)
        assert "Invalid milestone proof" in result.error.message
        assert registry.escrow_ledger("ethereum").escrows["1"]["completed"] == 0
        repo.mark_completed.assert_not_awaited()

    @pytest.mark.parametrize("proof", ["", "not json", '{"title": "Design"}'])
    async def test_malformed_proof_rejected(self, proof):
        """Test unparseable proofs fail validation before submission."""
        registry, repo, use_case = await self._setup()

        result = await use_case.execute(ADMIN_KEY, "1", 0, "ethereum", proof)

        assert result.success is False
        assert isinstance(result.error, ValidationError)
        assert registry.escrow_ledger("ethereum").release_calls == 0
        repo.mark_completed.assert_not_awaited()

    # ================================================================
    # Test Methods - Readiness
    # ================================================================

    async def test_out_of_order_release_refused(self):
        """Test skipping a milestone is refused before submission."""
        registry, _, use_case = await self._setup()

        result = await use_case.execute(
            ADMIN_KEY, "1", 1, "ethereum", self._proof(1)
        )

        assert result.success is False
        assert isinstance(result.error, MilestoneNotReadyError)
        assert result.error.reason == "Expected milestone index 0, got 1"
        assert result.to_dict()["errorCode"] == "MILESTONE_NOT_READY"
        assert registry.escrow_ledger("ethereum").release_calls == 0

    async def test_ledger_ahead_triggers_reconciliation(self):
        """Test a milestone released out of band repairs the mirror."""
        registry, repo, use_case = await self._setup()
        registry.escrow_ledger("ethereum").force_release("1", 1)

        result = await use_case.execute(
            ADMIN_KEY, "1", 0, "ethereum", self._proof(0)
        )

        assert result.success is False
        assert isinstance(result.error, MilestoneNotReadyError)
        assert registry.escrow_ledger("ethereum").release_calls == 0
        # Reconciliation marked the released row, without proof
        repo.mark_completed.assert_awaited_once()
        args = repo.mark_completed.await_args.args
        assert args[:4] == ("ethereum", "1", 0, None)

    async def test_unknown_milestone_refused(self):
        """Test releasing an unmirrored milestone is refused."""
        _, _, use_case = await self._setup()

        result = await use_case.execute(
            ADMIN_KEY, "1", 7, "ethereum", self._proof(0)
        )

        assert result.success is False
        assert result.error.reason == "Milestone not found"

    # ================================================================
    # Test Methods - Ledger & Mirror Failures
    # ================================================================

    async def test_mirror_failure_after_release(self):
        """Test a mirror failure after a confirmed release keeps the tx hash."""
        registry, repo, use_case = await self._setup()
        repo.mark_completed.side_effect = RuntimeError("database is down")

        result = await use_case.execute(
            ADMIN_KEY, "1", 0, "ethereum", self._proof(0)
        )

        assert result.success is False
        assert isinstance(result.error, MirrorInconsistencyError)
        assert result.tx_hash is not None
        assert result.error.tx_hash == result.tx_hash
        assert registry.escrow_ledger("ethereum").escrows["1"]["completed"] == 1

    async def test_submitted_timeout_reports_tx_hash(self):
        """Test an unconfirmed release reports the sent transaction."""
        registry, repo, use_case = await self._setup()
        registry.escrow_ledger("ethereum").fail_next(
            "release_milestone",
            LedgerUnavailableError("not mined", submitted=True, tx_hash="0xbeef"),
        )

        result = await use_case.execute(
            ADMIN_KEY, "1", 0, "ethereum", self._proof(0)
        )

        assert result.success is False
        assert result.tx_hash == "0xbeef"
        assert result.error.submitted is True
        repo.mark_completed.assert_not_awaited()

    async def test_missing_admin_key_raises(self):
        """Test a missing admin key raises ConfigurationError."""
        _, _, use_case = await self._setup()

        with pytest.raises(ConfigurationError):
            await use_case.execute(None, "1", 0, "ethereum", self._proof(0))
