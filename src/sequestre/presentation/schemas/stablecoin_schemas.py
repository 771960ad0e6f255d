"""
API schemas for stablecoin operations.
"""

from decimal import Decimal

from pydantic import BaseModel, Field


class EstimateGasRequest(BaseModel):
    """Request schema for transfer gas estimation."""

    sender: str = Field(..., description="Sending address")
    recipient: str = Field(..., description="Receiving address")
    amount: Decimal = Field(..., gt=0, description="Amount in token units")


class TransferRequest(BaseModel):
    """Request schema for a treasury transfer."""

    recipient: str = Field(..., description="Receiving address")
    amount: Decimal = Field(..., gt=0, description="Amount in token units")


class ApproveRequest(BaseModel):
    """Request schema for a treasury spender approval."""

    spender: str = Field(..., description="Spender address")
    amount: Decimal = Field(..., ge=0, description="Allowance in token units")
