"""Contingency and milestone REST API routes.

Routes:
    POST   /api/v1/deals/{id}/contingencies         — Add a contingency
    GET    /api/v1/deals/{id}/contingencies         — List (soonest deadline first)
    PATCH  /api/v1/contingencies/{id}               — Resolve / edit
    POST   /api/v1/deals/{id}/milestones            — Add a milestone
    GET    /api/v1/deals/{id}/milestones            — List in checklist order
    POST   /api/v1/deals/{id}/milestones/defaults   — Seed the standard checklist
    PATCH  /api/v1/milestones/{id}                  — Complete / edit
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from deal_room.api.deps import get_db_session
from deal_room.schemas.checklists import (
    ContingencyCreate,
    ContingencyResponse,
    ContingencyUpdate,
    MilestoneCreate,
    MilestoneResponse,
    MilestoneUpdate,
)
from deal_room.services.contingency_service import ContingencyService
from deal_room.services.milestone_service import MilestoneService

router = APIRouter(prefix="/api/v1", tags=["Checklists"])


# ---------------------------------------------------------------------------
# Contingencies
# ---------------------------------------------------------------------------


@router.post(
    "/deals/{deal_id}/contingencies",
    response_model=ContingencyResponse,
    status_code=201,
    summary="Add a contingency",
)
async def add_contingency(
    deal_id: uuid.UUID,
    request: ContingencyCreate,
    session: AsyncSession = Depends(get_db_session),
) -> ContingencyResponse:
    contingency = await ContingencyService(session).add(deal_id, **request.model_dump())
    return ContingencyResponse.model_validate(contingency)


@router.get(
    "/deals/{deal_id}/contingencies",
    response_model=list[ContingencyResponse],
    summary="List contingencies",
)
async def list_contingencies(
    deal_id: uuid.UUID,
    session: AsyncSession = Depends(get_db_session),
) -> list[ContingencyResponse]:
    contingencies = await ContingencyService(session).list_for_deal(deal_id)
    return [ContingencyResponse.model_validate(c) for c in contingencies]


@router.patch(
    "/contingencies/{contingency_id}",
    response_model=ContingencyResponse,
    summary="Update a contingency",
)
async def update_contingency(
    contingency_id: uuid.UUID,
    request: ContingencyUpdate,
    session: AsyncSession = Depends(get_db_session),
) -> ContingencyResponse:
    contingency = await ContingencyService(session).update(contingency_id, **request.model_dump())
    return ContingencyResponse.model_validate(contingency)


# ---------------------------------------------------------------------------
# Milestones
# ---------------------------------------------------------------------------


@router.post(
    "/deals/{deal_id}/milestones",
    response_model=MilestoneResponse,
    status_code=201,
    summary="Add a milestone",
)
async def add_milestone(
    deal_id: uuid.UUID,
    request: MilestoneCreate,
    session: AsyncSession = Depends(get_db_session),
) -> MilestoneResponse:
    milestone = await MilestoneService(session).add(deal_id, **request.model_dump())
    return MilestoneResponse.model_validate(milestone)


@router.get(
    "/deals/{deal_id}/milestones",
    response_model=list[MilestoneResponse],
    summary="List milestones",
)
async def list_milestones(
    deal_id: uuid.UUID,
    session: AsyncSession = Depends(get_db_session),
) -> list[MilestoneResponse]:
    milestones = await MilestoneService(session).list_for_deal(deal_id)
    return [MilestoneResponse.model_validate(m) for m in milestones]


@router.post(
    "/deals/{deal_id}/milestones/defaults",
    response_model=list[MilestoneResponse],
    status_code=201,
    summary="Seed the default milestone checklist",
)
async def seed_default_milestones(
    deal_id: uuid.UUID,
    session: AsyncSession = Depends(get_db_session),
) -> list[MilestoneResponse]:
    """Returns only the milestones created by this call."""
    milestones = await MilestoneService(session).seed_defaults(deal_id)
    return [MilestoneResponse.model_validate(m) for m in milestones]


@router.patch(
    "/milestones/{milestone_id}",
    response_model=MilestoneResponse,
    summary="Update a milestone",
)
async def update_milestone(
    milestone_id: uuid.UUID,
    request: MilestoneUpdate,
    session: AsyncSession = Depends(get_db_session),
) -> MilestoneResponse:
    milestone = await MilestoneService(session).update(milestone_id, **request.model_dump())
    return MilestoneResponse.model_validate(milestone)
