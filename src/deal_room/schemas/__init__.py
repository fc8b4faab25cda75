"""Pydantic API schemas."""

from deal_room.schemas.checklists import (
    ContingencyCreate,
    ContingencyResponse,
    ContingencyUpdate,
    DisbursementCreate,
    DisbursementPay,
    DisbursementResponse,
    DocumentCreate,
    DocumentResponse,
    DocumentUpdate,
    FundCreate,
    FundResponse,
    FundUpdate,
    MilestoneCreate,
    MilestoneResponse,
    MilestoneUpdate,
)
from deal_room.schemas.deal import (
    AttachWalletRequest,
    AuditEventResponse,
    CreateDealRequest,
    DealDetailResponse,
    DealReplayResponse,
    DealResponse,
    DealStatusResponse,
    HealthResponse,
    InvitePartyRequest,
    OverrideDealRequest,
    PartyResponse,
)
from deal_room.schemas.workflows import (
    EscrowFundingCreate,
    EscrowFundingResponse,
    EscrowPolicyCreate,
    EscrowPolicyResponse,
    EscrowReceiptResponse,
    FinalizeSessionRequest,
    PofAttestationResponse,
    PofAttestRequest,
    PofPacketResponse,
    PofRequestCreate,
    PofRequestResponse,
    PsbtSignatureResponse,
    SignatureRequestCreate,
    SignatureSubmit,
    SigningSessionCreate,
    SigningSessionDetailResponse,
    SigningSessionResponse,
)

__all__ = [
    "AttachWalletRequest",
    "AuditEventResponse",
    "ContingencyCreate",
    "ContingencyResponse",
    "ContingencyUpdate",
    "CreateDealRequest",
    "DealDetailResponse",
    "DealReplayResponse",
    "DealResponse",
    "DealStatusResponse",
    "DisbursementCreate",
    "DisbursementPay",
    "DisbursementResponse",
    "DocumentCreate",
    "DocumentResponse",
    "DocumentUpdate",
    "EscrowFundingCreate",
    "EscrowFundingResponse",
    "EscrowPolicyCreate",
    "EscrowPolicyResponse",
    "EscrowReceiptResponse",
    "FinalizeSessionRequest",
    "FundCreate",
    "FundResponse",
    "FundUpdate",
    "HealthResponse",
    "InvitePartyRequest",
    "MilestoneCreate",
    "MilestoneResponse",
    "MilestoneUpdate",
    "OverrideDealRequest",
    "PartyResponse",
    "PofAttestRequest",
    "PofAttestationResponse",
    "PofPacketResponse",
    "PofRequestCreate",
    "PofRequestResponse",
    "PsbtSignatureResponse",
    "SignatureRequestCreate",
    "SignatureSubmit",
    "SigningSessionCreate",
    "SigningSessionDetailResponse",
    "SigningSessionResponse",
]
