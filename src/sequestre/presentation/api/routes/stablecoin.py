"""
Stablecoin API routes.

Balance, allowance and gas queries are public. Transfers and approvals
spend from the platform treasury account and are admin-only.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from sequestre.application.services.stablecoin_service import StablecoinService
from sequestre.config.settings import get_settings
from sequestre.di.dependencies import get_stablecoin_service
from sequestre.presentation.api.middleware.auth import require_admin_token
from sequestre.presentation.api.responses import result_response
from sequestre.presentation.schemas.stablecoin_schemas import (
    ApproveRequest,
    EstimateGasRequest,
    TransferRequest,
)

router = APIRouter(prefix="/stablecoin", tags=["stablecoin"])


# ================================================================
# Queries
# ================================================================


@router.get("/networks", summary="List networks and tokens")
async def list_networks(
    service: StablecoinService = Depends(get_stablecoin_service),
):
    return service.get_supported_networks_and_tokens()


@router.get("/transactions/{address}", summary="List recorded transfers")
async def list_transactions(
    address: str,
    network: Optional[str] = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    service: StablecoinService = Depends(get_stablecoin_service),
):
    transactions = await service.get_transaction_history(
        address, network=network, limit=limit
    )
    return {"transactions": [t.to_dict() for t in transactions]}


@router.get("/{network}/{token}/balance/{address}", summary="Get token balance")
async def get_balance(
    network: str,
    token: str,
    address: str,
    service: StablecoinService = Depends(get_stablecoin_service),
):
    return await service.get_token_balance(address, network, token)


@router.get("/{network}/{token}/allowance", summary="Get spender allowance")
async def get_allowance(
    network: str,
    token: str,
    owner: str = Query(...),
    spender: str = Query(...),
    service: StablecoinService = Depends(get_stablecoin_service),
):
    return await service.get_allowance(owner, spender, network, token)


@router.post("/{network}/{token}/estimate-gas", summary="Estimate transfer gas")
async def estimate_gas(
    network: str,
    token: str,
    request: EstimateGasRequest,
    service: StablecoinService = Depends(get_stablecoin_service),
):
    return await service.estimate_transfer_gas(
        request.sender, request.recipient, request.amount, network, token
    )


# ================================================================
# Treasury Transactions
# ================================================================


@router.post(
    "/{network}/{token}/transfer",
    summary="Transfer from treasury",
    dependencies=[Depends(require_admin_token)],
)
async def transfer(
    network: str,
    token: str,
    request: TransferRequest,
    service: StablecoinService = Depends(get_stablecoin_service),
):
    result = await service.transfer_tokens(
        sender_key=get_settings().TREASURY_PRIVATE_KEY,
        recipient=request.recipient,
        amount=request.amount,
        network=network,
        token=token,
    )
    return result_response(result)


@router.post(
    "/{network}/{token}/approve",
    summary="Approve spender from treasury",
    dependencies=[Depends(require_admin_token)],
)
async def approve(
    network: str,
    token: str,
    request: ApproveRequest,
    service: StablecoinService = Depends(get_stablecoin_service),
):
    result = await service.approve_spender(
        owner_key=get_settings().TREASURY_PRIVATE_KEY,
        spender=request.spender,
        amount=request.amount,
        network=network,
        token=token,
    )
    return result_response(result)
