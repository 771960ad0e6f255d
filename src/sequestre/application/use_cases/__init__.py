"""Application use cases."""

from sequestre.application.use_cases.check_milestone_readiness import (
    CheckMilestoneReadiness,
)
from sequestre.application.use_cases.create_milestone_escrow import (
    CreateMilestoneEscrow,
)
from sequestre.application.use_cases.get_escrow_overview import (
    GetEscrowOverview,
)
from sequestre.application.use_cases.rebuild_escrow_mirror import (
    RebuildEscrowMirror,
)
from sequestre.application.use_cases.reconcile_escrow_mirror import (
    ReconcileEscrowMirror,
)
from sequestre.application.use_cases.release_milestone import (
    ReleaseMilestone,
)

__all__ = [
    "CreateMilestoneEscrow",
    "CheckMilestoneReadiness",
    "ReleaseMilestone",
    "GetEscrowOverview",
    "ReconcileEscrowMirror",
    "RebuildEscrowMirror",
]
