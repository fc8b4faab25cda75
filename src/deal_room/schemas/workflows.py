"""Pydantic schemas for the proof-of-funds, escrow and signing workflows."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Proof of funds
# ---------------------------------------------------------------------------


class PofRequestCreate(BaseModel):
    requester_name: str = Field(..., min_length=1, max_length=200, examples=["Alice Buyer"])
    requested_amount: Decimal | None = Field(default=None, ge=0, description="BTC")
    requested_amount_usd: Decimal | None = Field(default=None, ge=0)


class PofAttestRequest(BaseModel):
    """A party's claim of control over funds. The signature is stored, not checked."""

    party_id: uuid.UUID
    proof_type: str = Field(
        ...,
        min_length=1,
        max_length=32,
        examples=["bip322_message"],
    )
    address_or_descriptor: str | None = None
    signature: str | None = None
    claimed_total: Decimal | None = Field(default=None, ge=0)


class PofRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    deal_id: uuid.UUID
    requester_name: str
    challenge: str
    requested_amount: Decimal | None = None
    requested_amount_usd: Decimal | None = None
    created_at: datetime


class PofAttestationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    deal_id: uuid.UUID
    party_id: uuid.UUID | None = None
    proof_type: str
    address_or_descriptor: str | None = None
    signature: str | None = None
    claimed_total: Decimal | None = None
    verified: bool
    verified_at: datetime | None = None
    created_at: datetime


class PofPacketResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    deal_id: uuid.UUID
    property_address: str
    request: PofRequestResponse | None = None
    attestation: PofAttestationResponse
    signature_fingerprint: str = Field(..., description="SHA-256 of the attestation signature")
    generated_at: datetime


# ---------------------------------------------------------------------------
# Escrow
# ---------------------------------------------------------------------------


class EscrowPolicyCreate(BaseModel):
    """Omitted fields fall back to the configured escrow defaults."""

    descriptor: str | None = None
    refund_timelock: datetime | None = None
    address: str | None = Field(default=None, max_length=100)


class EscrowFundingCreate(BaseModel):
    txid: str = Field(..., min_length=1, max_length=64)
    amount: Decimal | None = Field(default=None, ge=0)
    confirmations: int = Field(default=0, ge=0)
    funded_at: datetime | None = None


class EscrowPolicyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    deal_id: uuid.UUID
    policy_type: str
    descriptor: str | None = None
    address: str | None = None
    refund_timelock: datetime | None = None
    terms_hash: str
    created_at: datetime


class EscrowFundingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    deal_id: uuid.UUID
    txid: str
    amount: Decimal | None = None
    confirmations: int
    funded_at: datetime | None = None
    created_at: datetime


class EscrowReceiptResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    deal_id: uuid.UUID
    funding: EscrowFundingResponse
    policy: EscrowPolicyResponse | None = None


# ---------------------------------------------------------------------------
# PSBT signing
# ---------------------------------------------------------------------------


class SigningSessionCreate(BaseModel):
    session_type: str = Field(
        ...,
        min_length=1,
        max_length=32,
        description="funding, release, refund, closing or another type",
        examples=["release"],
    )
    psbt_payload: str | None = Field(default=None, description="Opaque PSBT (base64)")
    created_by_party_id: uuid.UUID | None = None


class SignatureRequestCreate(BaseModel):
    party_id: uuid.UUID


class SignatureSubmit(BaseModel):
    party_id: uuid.UUID
    signed_payload: str = Field(..., min_length=1)


class FinalizeSessionRequest(BaseModel):
    external_ref: str | None = Field(
        default=None,
        max_length=100,
        description="Broadcast transaction id, if any",
    )
    party_id: uuid.UUID | None = None


class PsbtSignatureResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    session_id: uuid.UUID
    deal_id: uuid.UUID
    party_id: uuid.UUID | None = None
    status: str
    signed_payload: str | None = None
    signed_at: datetime | None = None
    created_at: datetime


class SigningSessionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    deal_id: uuid.UUID
    session_type: str
    psbt_payload: str | None = None
    psbt_hash: str
    status: str
    created_by_party_id: uuid.UUID | None = None
    finalized_at: datetime | None = None
    created_at: datetime


class SigningSessionDetailResponse(SigningSessionResponse):
    signatures: list[PsbtSignatureResponse] = Field(default_factory=list)
