"""
Integration tests for escrow API routes.

Runs the FastAPI app against the in-memory SQLite mirror and in-memory
ledgers, covering creation, replay, readiness, release and mirror repair.

Usage:
    pytest tests/integration/api/test_escrow_routes.py
"""

from decimal import Decimal

import pytest

from sequestre.config.settings import override_settings
from sequestre.domain.exceptions import LedgerUnavailableError
from sequestre.domain.services.commitment_hasher import calculate_milestone_hash
from sequestre.domain.value_objects.milestone_definition import MilestoneDefinition
from sequestre.infrastructure.persistence.repositories.milestone_repository import (
    MilestoneRepository,
)
from tests.helpers.factories import FUNDER_KEY, milestone_dict, sample_milestones
from tests.helpers.fakes import BENEFICIARY_ADDRESS

ESCROW_URL = "/api/escrow"


class TestEscrowRoutes:
    """Integration tests for escrow API routes."""

    # ================================================================
    # Helper Methods
    # ================================================================

    def _create_payload(self, **overrides) -> dict:
        payload = {
            "network": "ethereum",
            "beneficiary": BENEFICIARY_ADDRESS,
            "totalAmount": "1.0",
            "milestones": sample_milestones(),
        }
        payload.update(overrides)
        return payload

    async def _create_escrow(self, client, admin_headers, **overrides) -> dict:
        response = await client.post(
            ESCROW_URL, json=self._create_payload(**overrides), headers=admin_headers
        )
        assert response.status_code == 201
        return response.json()

    async def _mirror(self, test_db, escrow_id: str = "1", network: str = "ethereum"):
        async with test_db.session() as session:
            return await MilestoneRepository(session).list_milestones(
                network, escrow_id
            )

    # ================================================================
    # Test Methods - Networks
    # ================================================================

    async def test_list_networks(self, client):
        """Test only escrow-enabled networks are listed."""
        response = await client.get(f"{ESCROW_URL}/networks")

        assert response.status_code == 200
        assert response.json() == {
            "networks": [
                {"id": "ethereum", "name": "Ethereum Mainnet", "chainId": 1},
                {"id": "polygon", "name": "Polygon Mainnet", "chainId": 137},
            ]
        }

    # ================================================================
    # Test Methods - Create
    # ================================================================

    async def test_create_escrow(self, client, admin_headers, ledger_registry, test_db):
        """Test creation locks funds and mirrors every milestone."""
        data = await self._create_escrow(client, admin_headers)

        assert data["success"] is True
        assert data["escrowId"] == "1"
        assert data["network"] == "ethereum"
        assert data["replayed"] is False
        assert len(data["milestoneHashes"]) == 2

        escrow = ledger_registry.escrow_ledger("ethereum").escrows["1"]
        assert escrow["total"] == Decimal("1.0")
        assert escrow["hashes"] == data["milestoneHashes"]

        rows = await self._mirror(test_db)
        assert [r.title for r in rows] == ["Design", "Build"]
        assert [r.hash for r in rows] == data["milestoneHashes"]
        assert all(not r.is_completed for r in rows)

    async def test_create_requires_admin_token(self, client, ledger_registry):
        """Test creation is refused without a valid admin token."""
        response = await client.post(
            ESCROW_URL,
            json=self._create_payload(),
            headers={"X-Admin-Token": "wrong"},
        )

        assert response.status_code == 401
        assert ledger_registry.escrow_ledger("ethereum").create_calls == 0

    async def test_admin_routes_disabled_without_token(
        self, client, test_settings, ledger_registry
    ):
        """Test admin routes answer 503 when no admin token is configured."""
        override_settings(test_settings.model_copy(update={"ADMIN_API_TOKEN": None}))

        response = await client.post(
            ESCROW_URL,
            json=self._create_payload(),
            headers={"X-Admin-Token": "anything"},
        )

        assert response.status_code == 503
        assert ledger_registry.escrow_ledger("ethereum").create_calls == 0

    async def test_create_replay_by_body_key(
        self, client, admin_headers, ledger_registry
    ):
        """Test a repeated idempotency key returns the original escrow."""
        first = await self._create_escrow(
            client, admin_headers, idempotencyKey="order-42"
        )

        response = await client.post(
            ESCROW_URL,
            json=self._create_payload(idempotencyKey="order-42"),
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["replayed"] is True
        assert data["escrowId"] == first["escrowId"]
        assert data["milestoneHashes"] == first["milestoneHashes"]
        assert ledger_registry.escrow_ledger("ethereum").create_calls == 1

    async def test_create_replay_by_header_key(
        self, client, admin_headers, ledger_registry
    ):
        """Test the Idempotency-Key header works like the body field."""
        headers = {**admin_headers, "Idempotency-Key": "order-43"}

        first = await client.post(
            ESCROW_URL, json=self._create_payload(), headers=headers
        )
        second = await client.post(
            ESCROW_URL, json=self._create_payload(), headers=headers
        )

        assert first.status_code == 201
        assert second.status_code == 200
        assert second.json()["escrowId"] == first.json()["escrowId"]
        assert ledger_registry.escrow_ledger("ethereum").create_calls == 1

    async def test_create_without_key_creates_twice(
        self, client, admin_headers, ledger_registry
    ):
        """Test requests without a key are never deduplicated."""
        first = await self._create_escrow(client, admin_headers)
        second = await self._create_escrow(client, admin_headers)

        assert first["escrowId"] == "1"
        assert second["escrowId"] == "2"
        assert ledger_registry.escrow_ledger("ethereum").create_calls == 2

    @pytest.mark.parametrize(
        "overrides,field",
        [
            ({"totalAmount": "2.0"}, "milestones"),
            ({"totalAmount": "0"}, "total_amount"),
            ({"beneficiary": "0x1234"}, "beneficiary"),
            ({"network": "bsc"}, "network"),
            ({"network": "solana"}, "network"),
        ],
    )
    async def test_create_validation_errors(
        self, client, admin_headers, ledger_registry, test_db, overrides, field
    ):
        """Test invalid requests are rejected before any ledger call."""
        response = await client.post(
            ESCROW_URL, json=self._create_payload(**overrides), headers=admin_headers
        )

        assert response.status_code == 422
        data = response.json()
        assert data["success"] is False
        assert data["errorCode"] == "VALIDATION_ERROR"
        assert field in data["error"]
        assert ledger_registry.escrow_ledger("ethereum").create_calls == 0
        assert await self._mirror(test_db) == []

    async def test_create_rejects_zero_milestone(self, client, admin_headers):
        """Test a zero-amount milestone is refused."""
        milestones = [
            milestone_dict("Design", "0"),
            milestone_dict("Build", "1.0", "2027-03-01T00:00:00Z"),
        ]

        response = await client.post(
            ESCROW_URL,
            json=self._create_payload(milestones=milestones),
            headers=admin_headers,
        )

        assert response.status_code == 422
        assert "milestones[0].amount" in response.json()["error"]

    async def test_create_malformed_body(self, client, admin_headers):
        """Test schema violations are rejected by request validation."""
        response = await client.post(
            ESCROW_URL,
            json={"network": "ethereum", "milestones": []},
            headers=admin_headers,
        )

        assert response.status_code == 422

    async def test_create_ledger_unavailable(
        self, client, admin_headers, ledger_registry, test_db
    ):
        """Test an unreachable ledger returns 503 and writes nothing."""
        ledger_registry.escrow_ledger("ethereum").fail_next(
            "create_escrow", LedgerUnavailableError("RPC timeout")
        )

        response = await client.post(
            ESCROW_URL, json=self._create_payload(), headers=admin_headers
        )

        assert response.status_code == 503
        assert response.json()["errorCode"] == "LEDGER_UNAVAILABLE"
        assert await self._mirror(test_db) == []

    async def test_create_submitted_but_unconfirmed(
        self, client, admin_headers, ledger_registry
    ):
        """Test a sent but unconfirmed creation answers 504."""
        ledger_registry.escrow_ledger("ethereum").fail_next(
            "create_escrow",
            LedgerUnavailableError("not mined", submitted=True, tx_hash="0xabc"),
        )

        response = await client.post(
            ESCROW_URL, json=self._create_payload(), headers=admin_headers
        )

        assert response.status_code == 504
        assert response.json()["errorCode"] == "LEDGER_UNAVAILABLE"

    # ================================================================
    # Test Methods - Overview & Readiness
    # ================================================================

    async def test_get_overview(self, client, admin_headers):
        """Test the overview merges ledger amounts and mirror metadata."""
        await self._create_escrow(client, admin_headers)

        response = await client.get(f"{ESCROW_URL}/ethereum/1")

        assert response.status_code == 200
        data = response.json()
        assert data["escrowId"] == "1"
        assert data["beneficiary"] == BENEFICIARY_ADDRESS
        assert data["totalAmount"] == "1"
        assert data["releasedAmount"] == "0"
        assert data["totalMilestones"] == 2
        assert data["isActive"] is True
        assert [m["title"] for m in data["milestones"]] == ["Design", "Build"]
        assert data["milestones"][0]["amount"] == "0.4"

    async def test_overview_unsupported_network(self, client):
        """Test overviews on a network without escrow are refused."""
        response = await client.get(f"{ESCROW_URL}/bsc/1")

        assert response.status_code == 422

    async def test_readiness(self, client, admin_headers):
        """Test only the next milestone in order is ready."""
        await self._create_escrow(client, admin_headers)

        first = await client.get(f"{ESCROW_URL}/ethereum/1/milestones/0/readiness")
        second = await client.get(f"{ESCROW_URL}/ethereum/1/milestones/1/readiness")

        assert first.status_code == 200
        assert first.json() == {"isReady": True}
        assert second.status_code == 200
        assert second.json() == {
            "isReady": False,
            "reason": "Expected milestone index 0, got 1",
        }

    async def test_readiness_unknown_milestone(self, client, admin_headers):
        """Test readiness of an unmirrored milestone is reported, not raised."""
        await self._create_escrow(client, admin_headers)

        response = await client.get(f"{ESCROW_URL}/ethereum/1/milestones/5/readiness")

        assert response.status_code == 200
        assert response.json()["isReady"] is False
        assert response.json()["reason"] == "Milestone not found"

    async def test_zero_padded_escrow_id(self, client, admin_headers):
        """Test "01" addresses the mirror of escrow "1" on every route."""
        await self._create_escrow(client, admin_headers)

        readiness = await client.get(
            f"{ESCROW_URL}/ethereum/01/milestones/0/readiness"
        )
        rebuild = await client.post(
            f"{ESCROW_URL}/ethereum/001/rebuild",
            json={"milestones": sample_milestones()},
            headers=admin_headers,
        )

        assert readiness.json() == {"isReady": True}
        assert rebuild.status_code == 409
        assert rebuild.json()["errorCode"] == "DUPLICATE_ENTITY"

    # ================================================================
    # Test Methods - Release
    # ================================================================

    async def test_release_with_object_proof(
        self, client, admin_headers, ledger_registry, test_db
    ):
        """Test a proof object restating the milestone releases its funds."""
        await self._create_escrow(client, admin_headers)
        proof = {**sample_milestones()[0], "evidence": "https://example.com/a.pdf"}

        response = await client.post(
            f"{ESCROW_URL}/ethereum/1/milestones/0/release",
            json={"proofData": proof},
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["milestoneIndex"] == 0
        assert data["txHash"].startswith("0x")

        escrow = ledger_registry.escrow_ledger("ethereum").escrows["1"]
        assert escrow["completed"] == 1

        rows = await self._mirror(test_db)
        assert rows[0].is_completed
        assert "example.com" in rows[0].proof_data
        assert not rows[1].is_completed

    async def test_release_out_of_order(self, client, admin_headers, ledger_registry):
        """Test releasing ahead of the ledger order answers 409."""
        await self._create_escrow(client, admin_headers)

        response = await client.post(
            f"{ESCROW_URL}/ethereum/1/milestones/1/release",
            json={"proofData": sample_milestones()[1]},
            headers=admin_headers,
        )

        assert response.status_code == 409
        assert response.json()["errorCode"] == "MILESTONE_NOT_READY"
        assert ledger_registry.escrow_ledger("ethereum").release_calls == 0

    async def test_release_wrong_proof(self, client, admin_headers, test_db):
        """Test the ledger rejects a proof for another milestone."""
        await self._create_escrow(client, admin_headers)

        response = await client.post(
            f"{ESCROW_URL}/ethereum/1/milestones/0/release",
            json={"proofData": sample_milestones()[1]},
            headers=admin_headers,
        )

        assert response.status_code == 409
        data = response.json()
        assert data["errorCode"] == "LEDGER_SUBMISSION_FAILED"
        assert "Invalid milestone proof" in data["error"]

        rows = await self._mirror(test_db)
        assert not rows[0].is_completed

    async def test_release_malformed_proof(self, client, admin_headers):
        """Test a proof that is not a JSON object fails validation."""
        await self._create_escrow(client, admin_headers)

        response = await client.post(
            f"{ESCROW_URL}/ethereum/1/milestones/0/release",
            json={"proofData": "approved"},
            headers=admin_headers,
        )

        assert response.status_code == 422
        assert response.json()["errorCode"] == "VALIDATION_ERROR"

    async def test_release_requires_admin_token(self, client):
        """Test releases are admin-only."""
        response = await client.post(
            f"{ESCROW_URL}/ethereum/1/milestones/0/release",
            json={"proofData": sample_milestones()[0]},
        )

        assert response.status_code == 401

    async def test_release_when_ledger_ahead_repairs_mirror(
        self, client, admin_headers, ledger_registry, test_db
    ):
        """Test an out-of-band release is refused and repaired in the mirror."""
        await self._create_escrow(client, admin_headers)
        ledger_registry.escrow_ledger("ethereum").force_release("1", 1)

        response = await client.post(
            f"{ESCROW_URL}/ethereum/1/milestones/0/release",
            json={"proofData": sample_milestones()[0]},
            headers=admin_headers,
        )

        assert response.status_code == 409
        assert response.json()["errorCode"] == "MILESTONE_NOT_READY"

        rows = await self._mirror(test_db)
        assert rows[0].is_completed
        assert rows[0].proof_data is None

    # ================================================================
    # Test Methods - Mirror Repair
    # ================================================================

    async def test_reconcile(self, client, admin_headers, ledger_registry, test_db):
        """Test reconciliation marks rows the ledger already released."""
        await self._create_escrow(client, admin_headers)
        ledger_registry.escrow_ledger("ethereum").force_release("1", 2)

        response = await client.post(
            f"{ESCROW_URL}/ethereum/1/reconcile", headers=admin_headers
        )

        assert response.status_code == 200
        data = response.json()
        assert data["ledgerCompletedMilestones"] == 2
        assert data["repaired"] == [0, 1]
        assert data["inconsistent"] == []
        assert data["missingMirror"] is False

        rows = await self._mirror(test_db)
        assert all(r.is_completed for r in rows)

    async def test_rebuild_missing_mirror(
        self, client, admin_headers, ledger_registry, test_db
    ):
        """Test an escrow known only to the ledger gets its mirror back."""
        definitions = [MilestoneDefinition.from_dict(m) for m in sample_milestones()]
        ledger = ledger_registry.escrow_ledger("ethereum")
        await ledger.create_escrow(
            funder_key=FUNDER_KEY,
            beneficiary=BENEFICIARY_ADDRESS,
            total_amount=Decimal("1.0"),
            milestone_hashes=[calculate_milestone_hash(d) for d in definitions],
        )
        ledger.force_release("1", 1)

        response = await client.post(
            f"{ESCROW_URL}/ethereum/1/rebuild",
            json={"milestones": sample_milestones()},
            headers=admin_headers,
        )

        assert response.status_code == 201
        assert response.json()["inserted"] == 2
        assert response.json()["completed"] == 1

        rows = await self._mirror(test_db)
        assert [r.is_completed for r in rows] == [True, False]

        again = await client.post(
            f"{ESCROW_URL}/ethereum/1/rebuild",
            json={"milestones": sample_milestones()},
            headers=admin_headers,
        )
        assert again.status_code == 409
        assert again.json()["errorCode"] == "DUPLICATE_ENTITY"

    # ================================================================
    # Test Methods - Lifecycle
    # ================================================================

    async def test_full_escrow_lifecycle(
        self, client, admin_headers, ledger_registry, test_db
    ):
        """Test create, release both milestones, then a final overview."""
        created = await self._create_escrow(
            client, admin_headers, network="polygon", idempotencyKey="deal-7"
        )
        escrow_id = created["escrowId"]
        base = f"{ESCROW_URL}/polygon/{escrow_id}"

        for index, milestone in enumerate(sample_milestones()):
            response = await client.post(
                f"{base}/milestones/{index}/release",
                json={"proofData": milestone},
                headers=admin_headers,
            )
            assert response.status_code == 200

        overview = (await client.get(base)).json()
        assert overview["releasedAmount"] == "1"
        assert overview["completedMilestones"] == 2
        assert overview["isActive"] is False
        assert [m["status"] for m in overview["milestones"]] == [
            "completed",
            "completed",
        ]

        readiness = await client.get(f"{base}/milestones/1/readiness")
        assert readiness.json()["isReady"] is False

        reconcile = await client.post(f"{base}/reconcile", headers=admin_headers)
        assert reconcile.json()["repaired"] == []
        assert ledger_registry.escrow_ledger("ethereum").escrows == {}
