"""Party REST API routes.

Routes:
    POST   /api/v1/deals/{id}/parties   — Invite a participant
    GET    /api/v1/deals/{id}/parties   — List participants
    PATCH  /api/v1/parties/{id}         — Attach wallet descriptor / pubkey
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from deal_room.api.deps import get_db_session
from deal_room.schemas.deal import AttachWalletRequest, InvitePartyRequest, PartyResponse
from deal_room.services.party_service import PartyService

router = APIRouter(prefix="/api/v1", tags=["Parties"])


@router.post(
    "/deals/{deal_id}/parties",
    response_model=PartyResponse,
    status_code=201,
    summary="Invite a party to a deal",
)
async def invite_party(
    deal_id: uuid.UUID,
    request: InvitePartyRequest,
    session: AsyncSession = Depends(get_db_session),
) -> PartyResponse:
    party = await PartyService(session).invite(deal_id, **request.model_dump())
    return PartyResponse.model_validate(party)


@router.get(
    "/deals/{deal_id}/parties",
    response_model=list[PartyResponse],
    summary="List a deal's parties",
)
async def list_parties(
    deal_id: uuid.UUID,
    session: AsyncSession = Depends(get_db_session),
) -> list[PartyResponse]:
    parties = await PartyService(session).list_parties(deal_id)
    return [PartyResponse.model_validate(p) for p in parties]


@router.patch(
    "/parties/{party_id}",
    response_model=PartyResponse,
    summary="Attach wallet material to a party",
)
async def attach_wallet(
    party_id: uuid.UUID,
    request: AttachWalletRequest,
    session: AsyncSession = Depends(get_db_session),
) -> PartyResponse:
    """Only the wallet descriptor and public key of a party can change."""
    party = await PartyService(session).attach_wallet(
        party_id,
        wallet_descriptor=request.wallet_descriptor,
        pubkey=request.pubkey,
    )
    return PartyResponse.model_validate(party)
