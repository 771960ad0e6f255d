"""Application result objects."""

from sequestre.application.dto.results import (
    ApprovalResult,
    EscrowCreationResult,
    EscrowOverview,
    ReadinessResult,
    RebuildResult,
    ReconciliationReport,
    ReleaseResult,
    TransferResult,
    failure_dict,
)

__all__ = [
    "ApprovalResult",
    "EscrowCreationResult",
    "EscrowOverview",
    "ReadinessResult",
    "RebuildResult",
    "ReconciliationReport",
    "ReleaseResult",
    "TransferResult",
    "failure_dict",
]
