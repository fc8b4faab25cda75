"""Pydantic schemas for contingencies, milestones, documents, funds and disbursements."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from deal_room.domain.enums import ContingencyStatus, DocumentStatus, FundStatus

# ---------------------------------------------------------------------------
# Contingencies
# ---------------------------------------------------------------------------


class ContingencyCreate(BaseModel):
    contingency_type: str = Field(..., min_length=1, max_length=64, examples=["inspection"])
    deadline: datetime | None = None
    notes: str | None = None


class ContingencyUpdate(BaseModel):
    status: ContingencyStatus | None = None
    notes: str | None = None
    deadline: datetime | None = None
    waived_by_party_id: uuid.UUID | None = None


class ContingencyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    deal_id: uuid.UUID
    contingency_type: str
    status: str
    deadline: datetime | None = None
    satisfied_at: datetime | None = None
    waived_at: datetime | None = None
    waived_by_party_id: uuid.UUID | None = None
    notes: str | None = None
    created_at: datetime


# ---------------------------------------------------------------------------
# Milestones
# ---------------------------------------------------------------------------


class MilestoneCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    due_date: datetime | None = None
    is_required: bool = True
    order_index: int | None = Field(default=None, ge=0, description="Defaults to the end of the list")


class MilestoneUpdate(BaseModel):
    completed: bool | None = None
    completed_by_party_id: uuid.UUID | None = None
    due_date: datetime | None = None
    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None


class MilestoneResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    deal_id: uuid.UUID
    name: str
    description: str | None = None
    due_date: datetime | None = None
    completed_at: datetime | None = None
    completed_by_party_id: uuid.UUID | None = None
    is_required: bool
    order_index: int
    created_at: datetime


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


class DocumentCreate(BaseModel):
    document_type: str = Field(..., min_length=1, max_length=64, examples=["purchase_agreement"])
    name: str = Field(..., min_length=1, max_length=300)
    uploaded_by_party_id: uuid.UUID | None = None
    file_url: str | None = None
    file_hash: str | None = Field(default=None, max_length=128)
    requires_signatures: bool = False


class DocumentUpdate(BaseModel):
    status: DocumentStatus | None = None
    file_url: str | None = None
    file_hash: str | None = Field(default=None, max_length=128)


class DocumentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    deal_id: uuid.UUID
    document_type: str
    name: str
    uploaded_by_party_id: uuid.UUID | None = None
    file_url: str | None = None
    file_hash: str | None = None
    status: str
    requires_signatures: bool
    created_at: datetime


# ---------------------------------------------------------------------------
# Funds and disbursements
# ---------------------------------------------------------------------------


class FundCreate(BaseModel):
    fund_type: str = Field(..., min_length=1, max_length=64, examples=["emd"])
    description: str | None = None
    amount: Decimal | None = Field(default=None, ge=0)
    amount_usd: Decimal | None = Field(default=None, ge=0)
    escrow_policy_id: uuid.UUID | None = None


class FundUpdate(BaseModel):
    status: FundStatus | None = None
    funded_txid: str | None = Field(default=None, max_length=64)
    released_txid: str | None = Field(default=None, max_length=64)


class FundResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    deal_id: uuid.UUID
    fund_type: str
    description: str | None = None
    amount: Decimal | None = None
    amount_usd: Decimal | None = None
    escrow_policy_id: uuid.UUID | None = None
    status: str
    funded_txid: str | None = None
    released_txid: str | None = None
    created_at: datetime


class DisbursementCreate(BaseModel):
    payee_name: str = Field(..., min_length=1, max_length=200)
    payee_type: str = Field(..., min_length=1, max_length=64, examples=["seller"])
    amount: Decimal | None = Field(default=None, ge=0)
    amount_usd: Decimal | None = Field(default=None, ge=0)
    description: str | None = None
    address: str | None = Field(default=None, max_length=100)


class DisbursementPay(BaseModel):
    paid_txid: str | None = Field(default=None, max_length=64)


class DisbursementResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    deal_id: uuid.UUID
    payee_name: str
    payee_type: str
    amount: Decimal | None = None
    amount_usd: Decimal | None = None
    description: str | None = None
    address: str | None = None
    status: str
    paid_txid: str | None = None
    paid_at: datetime | None = None
    created_at: datetime
