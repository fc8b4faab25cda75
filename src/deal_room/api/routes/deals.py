"""Deal REST API routes.

Routes:
    POST   /api/v1/deals                     — Open a new deal
    GET    /api/v1/deals                     — List deals
    GET    /api/v1/deals/{id}                — Deal details with parties
    PATCH  /api/v1/deals/{id}                — Manual override of status/deadlines
    GET    /api/v1/deals/{id}/status         — Status and currently allowed triggers
    GET    /api/v1/deals/{id}/audit          — Audit ledger, newest first
    GET    /api/v1/deals/{id}/audit/replay   — Deal state rebuilt from the ledger
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from deal_room.api.deps import get_db_session
from deal_room.schemas.deal import (
    AuditEventResponse,
    CreateDealRequest,
    DealDetailResponse,
    DealReplayResponse,
    DealResponse,
    DealStatusResponse,
    OverrideDealRequest,
)
from deal_room.services.audit_ledger import AuditLedger
from deal_room.services.deal_service import DealService

router = APIRouter(prefix="/api/v1/deals", tags=["Deals"])


@router.post(
    "",
    response_model=DealDetailResponse,
    status_code=201,
    summary="Open a new deal",
)
async def create_deal(
    request: CreateDealRequest,
    session: AsyncSession = Depends(get_db_session),
) -> DealDetailResponse:
    """Create a deal in DRAFT state."""
    svc = DealService(session)
    deal = await svc.create_deal(**request.model_dump())
    return DealDetailResponse.model_validate(deal)


@router.get("", response_model=list[DealResponse], summary="List deals")
async def list_deals(
    session: AsyncSession = Depends(get_db_session),
) -> list[DealResponse]:
    deals = await DealService(session).list_deals()
    return [DealResponse.model_validate(d) for d in deals]


@router.get("/{deal_id}", response_model=DealDetailResponse, summary="Get deal details")
async def get_deal(
    deal_id: uuid.UUID,
    session: AsyncSession = Depends(get_db_session),
) -> DealDetailResponse:
    deal = await DealService(session).get_deal(deal_id)
    return DealDetailResponse.model_validate(deal)


@router.patch(
    "/{deal_id}",
    response_model=DealDetailResponse,
    summary="Override deal status or deadlines",
)
async def override_deal(
    deal_id: uuid.UUID,
    request: OverrideDealRequest,
    session: AsyncSession = Depends(get_db_session),
) -> DealDetailResponse:
    """Manual correction. Bypasses the lifecycle guards and is audited."""
    deal = await DealService(session).override(
        deal_id,
        status=request.status,
        deadline_funding=request.deadline_funding,
        deadline_close=request.deadline_close,
        actor_party_id=request.actor_party_id,
    )
    return DealDetailResponse.model_validate(deal)


@router.get(
    "/{deal_id}/status",
    response_model=DealStatusResponse,
    summary="Lightweight status check",
)
async def get_deal_status(
    deal_id: uuid.UUID,
    session: AsyncSession = Depends(get_db_session),
) -> DealStatusResponse:
    report = await DealService(session).status_report(deal_id)
    return DealStatusResponse(**report)


@router.get(
    "/{deal_id}/audit",
    response_model=list[AuditEventResponse],
    summary="Get the audit ledger",
)
async def get_audit_history(
    deal_id: uuid.UUID,
    session: AsyncSession = Depends(get_db_session),
) -> list[AuditEventResponse]:
    """Every recorded mutation of the deal, newest first."""
    deal = await DealService(session).get_deal(deal_id)
    events = await AuditLedger(session).history(deal.id)
    return [AuditEventResponse.model_validate(e) for e in events]


@router.get(
    "/{deal_id}/audit/replay",
    response_model=DealReplayResponse,
    summary="Rebuild deal state from the audit ledger",
)
async def replay_audit(
    deal_id: uuid.UUID,
    session: AsyncSession = Depends(get_db_session),
) -> DealReplayResponse:
    deal = await DealService(session).get_deal(deal_id)
    replay = await AuditLedger(session).replay(deal.id)
    return DealReplayResponse.model_validate(replay)
