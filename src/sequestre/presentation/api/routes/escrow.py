"""
Escrow API routes.

Handles milestone escrow creation, readiness, release and mirror repair.
Signing keys come from settings, never from requests.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Header, status

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
from sequestre.application.use_cases.release_milestone import ReleaseMilestone
from sequestre.config.settings import get_settings
from sequestre.di.dependencies import (
    get_check_milestone_readiness,
    get_create_milestone_escrow,
    get_escrow_overview,
    get_ledger_registry,
    get_rebuild_escrow_mirror,
    get_reconcile_escrow_mirror,
    get_release_milestone,
)
from sequestre.domain.services.i_ledger_registry import ILedgerRegistry
from sequestre.presentation.api.middleware.auth import require_admin_token
from sequestre.presentation.api.responses import result_response
from sequestre.presentation.schemas.escrow_schemas import (
    CreateEscrowRequest,
    RebuildMirrorRequest,
    ReleaseMilestoneRequest,
)

router = APIRouter(prefix="/escrow", tags=["escrow"])


# ================================================================
# Networks
# ================================================================


@router.get("/networks", summary="List escrow networks")
async def list_escrow_networks(
    registry: ILedgerRegistry = Depends(get_ledger_registry),
):
    """Networks the milestone escrow is deployed to (no ledger call)."""
    return {"networks": [n.describe() for n in registry.escrow_networks()]}


# ================================================================
# Create Escrow
# ================================================================


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Create milestone escrow",
    dependencies=[Depends(require_admin_token)],
)
async def create_escrow(
    request: CreateEscrowRequest,
    idempotency_key: Optional[str] = Header(default=None, alias="Idempotency-Key"),
    use_case: CreateMilestoneEscrow = Depends(get_create_milestone_escrow),
):
    """
    Lock funds from the platform funder account into a new escrow.

    The idempotency key may come from the body or the ``Idempotency-Key``
    header; a replayed key returns the original escrow with 200.
    """
    result = await use_case.execute(
        funder_key=get_settings().FUNDER_PRIVATE_KEY,
        beneficiary=request.beneficiary,
        total_amount=request.total_amount,
        milestones=[m.to_definition_dict() for m in request.milestones],
        network=request.network,
        idempotency_key=request.idempotency_key or idempotency_key,
    )

    success_status = (
        status.HTTP_200_OK if result.replayed else status.HTTP_201_CREATED
    )
    return result_response(result, success_status)


# ================================================================
# Overview & Readiness
# ================================================================


@router.get("/{network}/{escrow_id}", summary="Get escrow overview")
async def get_escrow(
    network: str,
    escrow_id: str,
    use_case: GetEscrowOverview = Depends(get_escrow_overview),
):
    """Ledger escrow state with mirrored milestones."""
    result = await use_case.execute(escrow_id=escrow_id, network=network)
    return result_response(result)


@router.get(
    "/{network}/{escrow_id}/milestones/{milestone_index}/readiness",
    summary="Check milestone readiness",
)
async def check_readiness(
    network: str,
    escrow_id: str,
    milestone_index: int,
    use_case: CheckMilestoneReadiness = Depends(get_check_milestone_readiness),
):
    """Whether the milestone can be released now, with a reason if not."""
    result = await use_case.execute(
        escrow_id=escrow_id,
        milestone_index=milestone_index,
        network=network,
    )
    return result.to_dict()


# ================================================================
# Release
# ================================================================


@router.post(
    "/{network}/{escrow_id}/milestones/{milestone_index}/release",
    summary="Release milestone",
    dependencies=[Depends(require_admin_token)],
)
async def release_milestone(
    network: str,
    escrow_id: str,
    milestone_index: int,
    request: ReleaseMilestoneRequest,
    use_case: ReleaseMilestone = Depends(get_release_milestone),
):
    """Release a milestone's funds to the beneficiary against its proof."""
    result = await use_case.execute(
        admin_key=get_settings().ADMIN_PRIVATE_KEY,
        escrow_id=escrow_id,
        milestone_index=milestone_index,
        network=network,
        proof_data=request.proof_document(),
    )
    return result_response(result)


# ================================================================
# Mirror Repair
# ================================================================


@router.post(
    "/{network}/{escrow_id}/reconcile",
    summary="Reconcile mirror with ledger",
    dependencies=[Depends(require_admin_token)],
)
async def reconcile_escrow(
    network: str,
    escrow_id: str,
    use_case: ReconcileEscrowMirror = Depends(get_reconcile_escrow_mirror),
):
    result = await use_case.execute(escrow_id=escrow_id, network=network)
    return result_response(result)


@router.post(
    "/{network}/{escrow_id}/rebuild",
    status_code=status.HTTP_201_CREATED,
    summary="Rebuild missing mirror rows",
    dependencies=[Depends(require_admin_token)],
)
async def rebuild_escrow(
    network: str,
    escrow_id: str,
    request: RebuildMirrorRequest,
    use_case: RebuildEscrowMirror = Depends(get_rebuild_escrow_mirror),
):
    """Recreate mirror rows for an escrow that exists only on the ledger."""
    result = await use_case.execute(
        escrow_id=escrow_id,
        network=network,
        milestones=[m.to_definition_dict() for m in request.milestones],
        idempotency_key=request.idempotency_key,
    )
    return result_response(result, status.HTTP_201_CREATED)
