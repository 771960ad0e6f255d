"""
Unit tests for RebuildEscrowMirror use case.

Usage:
    pytest tests/unit/application/test_rebuild_escrow_mirror.py
"""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from sequestre.application.use_cases.rebuild_escrow_mirror import (
    RebuildEscrowMirror,
)
from sequestre.domain.exceptions import (
    DuplicateEntityError,
    MirrorUnavailableError,
    ValidationError,
)
from sequestre.domain.services.commitment_hasher import calculate_milestone_hash
from tests.helpers.factories import (
    FUNDER_KEY,
    milestone_dict,
    mirror_rows,
    sample_milestones,
)
from tests.helpers.fakes import BENEFICIARY_ADDRESS, FakeLedgerRegistry


class TestRebuildEscrowMirror:
    """Unit tests for RebuildEscrowMirror use case."""

    # ================================================================
    # Helper Methods
    # ================================================================

    async def _setup(self, ledger_completed: int = 0):
        registry = FakeLedgerRegistry()
        ledger = registry.escrow_ledger("ethereum")
        await ledger.create_escrow(
            funder_key=FUNDER_KEY,
            beneficiary=BENEFICIARY_ADDRESS,
            total_amount=Decimal("1.0"),
            milestone_hashes=[calculate_milestone_hash(m) for m in sample_milestones()],
        )
        if ledger_completed:
            ledger.force_release("1", ledger_completed)

        repo = AsyncMock()
        repo.list_milestones.return_value = []
        return registry, repo, RebuildEscrowMirror(registry, repo)

    # ================================================================
    # Test Methods
    # ================================================================

    async def test_rebuild_inserts_rows(self):
        """Test verified definitions are inserted in ledger order."""
        _, repo, use_case = await self._setup(ledger_completed=1)

        result = await use_case.execute(
            "1", "ethereum", sample_milestones(), idempotency_key="order-1"
        )

        assert result.success is True
        assert result.inserted == 2
        assert result.completed == 1

        rows = repo.insert_milestones.await_args.args[0]
        assert [r.milestone_index for r in rows] == [0, 1]
        assert rows[0].is_completed and rows[0].proof_data is None
        assert not rows[1].is_completed
        assert rows[0].idempotency_key == "create_escrow_ethereum_order-1"

    async def test_existing_mirror_refused(self):
        """Test an existing mirror is never overwritten."""
        _, repo, use_case = await self._setup()
        repo.list_milestones.return_value = mirror_rows()

        result = await use_case.execute("1", "ethereum", sample_milestones())

        assert result.success is False
        assert isinstance(result.error, DuplicateEntityError)
        repo.insert_milestones.assert_not_awaited()

    async def test_count_mismatch_refused(self):
        """Test the definition count must equal the ledger's."""
        _, repo, use_case = await self._setup()

        result = await use_case.execute("1", "ethereum", sample_milestones()[:1])

        assert result.success is False
        assert result.error.field == "milestones"
        repo.insert_milestones.assert_not_awaited()

    async def test_hash_mismatch_refused(self):
        """Test definitions must hash to the ledger commitments."""
        _, repo, use_case = await self._setup()
        milestones = sample_milestones()
        milestones[1] = milestone_dict("Build", "0.6", "2027-03-02T00:00:00Z")

        result = await use_case.execute("1", "ethereum", milestones)

        assert result.success is False
        assert isinstance(result.error, ValidationError)
        assert result.error.field == "milestones[1]"
        repo.insert_milestones.assert_not_awaited()

    async def test_unknown_escrow_refused(self):
        """Test an escrow absent from the ledger has zero milestones."""
        _, repo, use_case = await self._setup()

        result = await use_case.execute("99", "ethereum", sample_milestones())

        assert result.success is False
        assert result.error.field == "milestones"

    async def test_zero_padded_id_refused_over_existing_mirror(self):
        """Test "01" is refused when escrow "1" is already mirrored."""
        _, repo, use_case = await self._setup()
        repo.list_milestones.side_effect = lambda network, escrow_id: (
            mirror_rows() if escrow_id == "1" else []
        )

        result = await use_case.execute("01", "ethereum", sample_milestones())

        assert result.success is False
        assert isinstance(result.error, DuplicateEntityError)
        repo.insert_milestones.assert_not_awaited()

    async def test_key_stripped_like_creation(self):
        """Test the attached key is scoped exactly as creation scopes it."""
        _, repo, use_case = await self._setup()

        result = await use_case.execute(
            "1", "ethereum", sample_milestones(), idempotency_key="  order-1 "
        )

        assert result.success is True
        rows = repo.insert_milestones.await_args.args[0]
        assert {r.idempotency_key for r in rows} == {"create_escrow_ethereum_order-1"}

    @pytest.mark.parametrize("key", ["   ", "k" * 65])
    async def test_invalid_key_refused(self, key):
        """Test blank and over-long keys fail before any ledger read."""
        _, repo, use_case = await self._setup()

        result = await use_case.execute(
            "1", "ethereum", sample_milestones(), idempotency_key=key
        )

        assert result.success is False
        assert result.error.field == "idempotency_key"
        repo.list_milestones.assert_not_awaited()
        repo.insert_milestones.assert_not_awaited()

    async def test_mirror_unavailable(self):
        """Test a failing mirror store returns a failed rebuild."""
        _, repo, use_case = await self._setup()
        repo.insert_milestones.side_effect = MirrorUnavailableError(
            "Mirror store unavailable during insert_milestones"
        )

        result = await use_case.execute("1", "ethereum", sample_milestones())

        assert result.success is False
        assert result.to_dict()["errorCode"] == "MIRROR_UNAVAILABLE"
