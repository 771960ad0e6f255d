"""API request schemas."""

from sequestre.presentation.schemas.escrow_schemas import (
    CreateEscrowRequest,
    MilestoneSchema,
    RebuildMirrorRequest,
    ReleaseMilestoneRequest,
)
from sequestre.presentation.schemas.stablecoin_schemas import (
    ApproveRequest,
    EstimateGasRequest,
    TransferRequest,
)

__all__ = [
    "ApproveRequest",
    "CreateEscrowRequest",
    "EstimateGasRequest",
    "MilestoneSchema",
    "RebuildMirrorRequest",
    "ReleaseMilestoneRequest",
    "TransferRequest",
]
