"""Pydantic schemas for deals, parties and the audit ledger.

These schemas define the request/response shapes for the REST API. They are
separate from the ORM models to keep the API and database layers apart.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from deal_room.domain.enums import DealStatus, TransactionType

# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------


class CreateDealRequest(BaseModel):
    """Request body for opening a new deal."""

    property_address: str = Field(
        ...,
        min_length=1,
        max_length=500,
        examples=["742 Evergreen Terrace, Springfield"],
    )
    transaction_type: TransactionType = Field(
        default=TransactionType.CASH_PURCHASE,
        description="Financed deals get appraisal and loan milestones",
    )
    purchase_price: Decimal | None = Field(default=None, ge=0, description="USD")
    emd_amount: Decimal | None = Field(
        default=None,
        ge=0,
        description="Earnest money deposit in BTC",
    )
    deadline_funding: datetime | None = None
    deadline_close: datetime | None = None
    jurisdiction: str | None = Field(default=None, max_length=64, examples=["CA"])


class OverrideDealRequest(BaseModel):
    """Manual correction of a deal. Bypasses the lifecycle guards."""

    status: DealStatus | None = None
    deadline_funding: datetime | None = None
    deadline_close: datetime | None = None
    actor_party_id: uuid.UUID | None = Field(
        default=None,
        description="Party performing the correction (must belong to the deal)",
    )


class InvitePartyRequest(BaseModel):
    """Request body for adding a participant to a deal."""

    role: str = Field(
        ...,
        min_length=1,
        max_length=32,
        description="buyer, seller, buyer_agent, seller_agent, title, lender or another role",
        examples=["buyer"],
    )
    display_name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., min_length=3, max_length=320)
    phone: str | None = Field(default=None, max_length=40)
    company_name: str | None = Field(default=None, max_length=200)
    license_number: str | None = Field(default=None, max_length=64)
    signing_authority: bool | None = Field(
        default=None,
        description="Defaults to true for buyer, seller and title",
    )
    wallet_descriptor: str | None = None
    pubkey: str | None = Field(default=None, max_length=130)


class AttachWalletRequest(BaseModel):
    wallet_descriptor: str | None = None
    pubkey: str | None = Field(default=None, max_length=130)


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------


class PartyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    deal_id: uuid.UUID
    role: str
    display_name: str
    email: str
    phone: str | None = None
    company_name: str | None = None
    license_number: str | None = None
    signing_authority: bool
    wallet_descriptor: str | None = None
    pubkey: str | None = None
    created_at: datetime


class DealResponse(BaseModel):
    """Public representation of a deal."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    status: str
    transaction_type: str
    property_address: str
    purchase_price: Decimal | None = None
    emd_amount: Decimal | None = None
    deadline_funding: datetime | None = None
    deadline_close: datetime | None = None
    jurisdiction: str | None = None
    created_at: datetime
    updated_at: datetime


class DealDetailResponse(DealResponse):
    """A deal together with its participants."""

    parties: list[PartyResponse] = Field(default_factory=list)


class DealStatusResponse(BaseModel):
    """Current status plus the triggers that would advance it."""

    deal_id: uuid.UUID
    status: str
    allowed_triggers: list[str] = Field(
        default_factory=list,
        description="Deal triggers whose guard currently holds",
    )


class AuditEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    sequence: int
    deal_id: uuid.UUID
    event_type: str
    actor_party_id: uuid.UUID | None = None
    payload: dict
    external_ref: str | None = None
    old_status: str | None = None
    new_status: str | None = None
    created_at: datetime


class DealReplayResponse(BaseModel):
    """Deal state rebuilt from its audit entries alone."""

    model_config = ConfigDict(from_attributes=True)

    deal_id: uuid.UUID
    status: str | None = None
    deal: dict | None = None
    entities: dict[str, dict[str, dict]] = Field(default_factory=dict)
    event_count: int
    last_sequence: int | None = None


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str
    environment: str
    database: str = "ok"
