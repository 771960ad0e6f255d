"""
API schemas for escrow operations.

Request models for escrow endpoints. Field names follow the camelCase JSON
used by clients; snake_case is accepted too.
"""

import json
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

# ================================================================
# Request Schemas
# ================================================================


class MilestoneSchema(BaseModel):
    """One milestone definition."""

    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(default="")
    amount: Decimal = Field(..., description="Amount in native units")
    completion_date: Union[datetime, int] = Field(
        ...,
        alias="completionDate",
        description="ISO-8601 datetime (UTC if naive) or epoch seconds",
    )

    def to_definition_dict(self) -> dict:
        return {
            "title": self.title,
            "description": self.description,
            "amount": self.amount,
            "completionDate": self.completion_date,
        }


class CreateEscrowRequest(BaseModel):
    """Request schema for creating a milestone escrow."""

    model_config = ConfigDict(populate_by_name=True)

    network: str = Field(..., description="Network id (ethereum, polygon)")
    beneficiary: str = Field(..., description="Beneficiary address")
    total_amount: Decimal = Field(..., alias="totalAmount")
    milestones: list[MilestoneSchema] = Field(..., min_length=1)
    idempotency_key: Optional[str] = Field(
        default=None, alias="idempotencyKey", max_length=64
    )


class ReleaseMilestoneRequest(BaseModel):
    """
    Request schema for releasing a milestone.

    ``proofData`` is the proof document, either as a JSON string or as an
    object restating the milestone (plus optional evidence keys).
    """

    model_config = ConfigDict(populate_by_name=True)

    proof_data: Union[str, dict[str, Any]] = Field(..., alias="proofData")

    def proof_document(self) -> str:
        if isinstance(self.proof_data, str):
            return self.proof_data
        return json.dumps(self.proof_data, sort_keys=True, default=str)


class RebuildMirrorRequest(BaseModel):
    """Request schema for rebuilding a missing escrow mirror."""

    model_config = ConfigDict(populate_by_name=True)

    milestones: list[MilestoneSchema] = Field(..., min_length=1)
    idempotency_key: Optional[str] = Field(
        default=None, alias="idempotencyKey", max_length=64
    )
