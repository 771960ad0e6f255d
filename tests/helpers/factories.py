"""Builders for milestone test data."""

from datetime import datetime, timezone

from sequestre.domain.entities.milestone import Milestone
from sequestre.domain.services.commitment_hasher import calculate_milestone_hash
from sequestre.domain.value_objects.milestone_definition import MilestoneDefinition

TOTAL_AMOUNT = "1.0"

ADMIN_TOKEN = "test-admin-token"
FUNDER_KEY = "0x" + "01" * 32
ADMIN_KEY = "0x" + "02" * 32
TREASURY_KEY = "0x" + "03" * 32


def milestone_dict(
    title: str = "Design",
    amount: str = "0.4",
    completion_date: str = "2027-01-01T00:00:00Z",
    description: str = "Wireframes and mockups",
) -> dict:
    return {
        "title": title,
        "description": description,
        "amount": amount,
        "completionDate": completion_date,
    }


def sample_milestones() -> list[dict]:
    """Two milestones summing to TOTAL_AMOUNT."""
    return [
        milestone_dict("Design", "0.4", "2027-01-01T00:00:00Z"),
        milestone_dict(
            "Build", "0.6", "2027-03-01T00:00:00Z", "Working implementation"
        ),
    ]


def mirror_rows(
    escrow_id: str = "1",
    network: str = "ethereum",
    completed: int = 0,
    milestones: list[dict] | None = None,
) -> list[Milestone]:
    """Mirror rows for ``milestones``, the first ``completed`` already done."""
    rows = []
    for index, data in enumerate(milestones or sample_milestones()):
        definition = MilestoneDefinition.from_dict(data)
        row = Milestone.from_definition(
            definition=definition,
            escrow_id=escrow_id,
            milestone_index=index,
            network=network,
            commitment_hash=calculate_milestone_hash(definition),
        )
        if index < completed:
            row.mark_completed(completed_at=datetime(2027, 1, 2, tzinfo=timezone.utc))
        rows.append(row)
    return rows
