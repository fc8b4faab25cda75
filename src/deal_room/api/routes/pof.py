"""Proof-of-funds REST API routes.

Routes:
    POST   /api/v1/deals/{id}/pof/request   — Issue a challenge
    POST   /api/v1/deals/{id}/pof/attest    — Record a party's attestation
    POST   /api/v1/deals/{id}/pof/verify    — Accept the latest attestation
    GET    /api/v1/deals/{id}/pof/packet    — Review bundle
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from deal_room.api.deps import get_db_session
from deal_room.schemas.workflows import (
    PofAttestationResponse,
    PofAttestRequest,
    PofPacketResponse,
    PofRequestCreate,
    PofRequestResponse,
)
from deal_room.services.pof_service import PofService

router = APIRouter(prefix="/api/v1/deals/{deal_id}/pof", tags=["Proof of Funds"])


@router.post(
    "/request",
    response_model=PofRequestResponse,
    status_code=201,
    summary="Request proof of funds",
)
async def request_proof(
    deal_id: uuid.UUID,
    request: PofRequestCreate,
    session: AsyncSession = Depends(get_db_session),
) -> PofRequestResponse:
    pof_request = await PofService(session).request_proof(deal_id, **request.model_dump())
    return PofRequestResponse.model_validate(pof_request)


@router.post(
    "/attest",
    response_model=PofAttestationResponse,
    status_code=201,
    summary="Attest to control of funds",
)
async def attest(
    deal_id: uuid.UUID,
    request: PofAttestRequest,
    session: AsyncSession = Depends(get_db_session),
) -> PofAttestationResponse:
    attestation = await PofService(session).attest(deal_id, **request.model_dump())
    return PofAttestationResponse.model_validate(attestation)


@router.post(
    "/verify",
    response_model=PofAttestationResponse,
    summary="Verify the latest attestation",
)
async def verify(
    deal_id: uuid.UUID,
    session: AsyncSession = Depends(get_db_session),
) -> PofAttestationResponse:
    attestation = await PofService(session).verify(deal_id)
    return PofAttestationResponse.model_validate(attestation)


@router.get(
    "/packet",
    response_model=PofPacketResponse,
    summary="Get the proof-of-funds review packet",
)
async def packet(
    deal_id: uuid.UUID,
    session: AsyncSession = Depends(get_db_session),
) -> PofPacketResponse:
    bundle = await PofService(session).packet(deal_id)
    return PofPacketResponse.model_validate(bundle)
