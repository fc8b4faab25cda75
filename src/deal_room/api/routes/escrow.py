"""Escrow REST API routes.

Routes:
    POST   /api/v1/deals/{id}/escrow/policy    — Create (replace) the escrow policy
    GET    /api/v1/deals/{id}/escrow           — Current policy
    POST   /api/v1/deals/{id}/escrow/funding   — Record a funding transaction
    GET    /api/v1/deals/{id}/escrow/receipt   — Latest funding with its policy
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from deal_room.api.deps import get_db_session
from deal_room.schemas.workflows import (
    EscrowFundingCreate,
    EscrowFundingResponse,
    EscrowPolicyCreate,
    EscrowPolicyResponse,
    EscrowReceiptResponse,
)
from deal_room.services.escrow_service import EscrowService

router = APIRouter(prefix="/api/v1/deals/{deal_id}/escrow", tags=["Escrow"])


@router.post(
    "/policy",
    response_model=EscrowPolicyResponse,
    status_code=201,
    summary="Create an escrow policy",
)
async def create_policy(
    deal_id: uuid.UUID,
    request: EscrowPolicyCreate,
    session: AsyncSession = Depends(get_db_session),
) -> EscrowPolicyResponse:
    """Omitted descriptor and address fall back to the configured defaults."""
    policy = await EscrowService(session).create_policy(deal_id, **request.model_dump())
    return EscrowPolicyResponse.model_validate(policy)


@router.get("", response_model=EscrowPolicyResponse, summary="Get the current escrow policy")
async def current_policy(
    deal_id: uuid.UUID,
    session: AsyncSession = Depends(get_db_session),
) -> EscrowPolicyResponse:
    policy = await EscrowService(session).current_policy(deal_id)
    return EscrowPolicyResponse.model_validate(policy)


@router.post(
    "/funding",
    response_model=EscrowFundingResponse,
    status_code=201,
    summary="Record escrow funding",
)
async def record_funding(
    deal_id: uuid.UUID,
    request: EscrowFundingCreate,
    session: AsyncSession = Depends(get_db_session),
) -> EscrowFundingResponse:
    funding = await EscrowService(session).record_funding(deal_id, **request.model_dump())
    return EscrowFundingResponse.model_validate(funding)


@router.get(
    "/receipt",
    response_model=EscrowReceiptResponse,
    summary="Get the escrow funding receipt",
)
async def receipt(
    deal_id: uuid.UUID,
    session: AsyncSession = Depends(get_db_session),
) -> EscrowReceiptResponse:
    result = await EscrowService(session).receipt(deal_id)
    return EscrowReceiptResponse.model_validate(result)
