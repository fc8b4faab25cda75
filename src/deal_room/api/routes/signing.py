"""PSBT signing REST API routes.

Routes:
    POST   /api/v1/deals/{id}/psbt                  — Open a signing session
    GET    /api/v1/deals/{id}/psbt                  — List sessions
    GET    /api/v1/psbt/{id}                        — Session with signatures
    POST   /api/v1/psbt/{id}/request-signature      — Ask a party to sign
    POST   /api/v1/psbt/{id}/submit-signature       — Record a signed PSBT
    POST   /api/v1/psbt/{id}/finalize               — Finalize the session
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from deal_room.api.deps import get_db_session
from deal_room.schemas.workflows import (
    FinalizeSessionRequest,
    PsbtSignatureResponse,
    SignatureRequestCreate,
    SignatureSubmit,
    SigningSessionCreate,
    SigningSessionDetailResponse,
    SigningSessionResponse,
)
from deal_room.services.signing_service import SigningService

router = APIRouter(prefix="/api/v1", tags=["PSBT Signing"])


@router.post(
    "/deals/{deal_id}/psbt",
    response_model=SigningSessionResponse,
    status_code=201,
    summary="Open a PSBT signing session",
)
async def create_session(
    deal_id: uuid.UUID,
    request: SigningSessionCreate,
    session: AsyncSession = Depends(get_db_session),
) -> SigningSessionResponse:
    """Release and closing sessions move a funded deal into closing."""
    signing_session = await SigningService(session).create_session(deal_id, **request.model_dump())
    return SigningSessionResponse.model_validate(signing_session)


@router.get(
    "/deals/{deal_id}/psbt",
    response_model=list[SigningSessionResponse],
    summary="List a deal's signing sessions",
)
async def list_sessions(
    deal_id: uuid.UUID,
    session: AsyncSession = Depends(get_db_session),
) -> list[SigningSessionResponse]:
    sessions = await SigningService(session).list_sessions(deal_id)
    return [SigningSessionResponse.model_validate(s) for s in sessions]


@router.get(
    "/psbt/{session_id}",
    response_model=SigningSessionDetailResponse,
    summary="Get a signing session with its signatures",
)
async def get_session(
    session_id: uuid.UUID,
    session: AsyncSession = Depends(get_db_session),
) -> SigningSessionDetailResponse:
    svc = SigningService(session)
    signing_session = await svc.get_session(session_id)
    signatures = await svc.list_signatures(session_id)
    return SigningSessionDetailResponse.model_validate(
        {
            **SigningSessionResponse.model_validate(signing_session).model_dump(),
            "signatures": [PsbtSignatureResponse.model_validate(s) for s in signatures],
        }
    )


@router.post(
    "/psbt/{session_id}/request-signature",
    response_model=PsbtSignatureResponse,
    summary="Request a party's signature",
)
async def request_signature(
    session_id: uuid.UUID,
    request: SignatureRequestCreate,
    session: AsyncSession = Depends(get_db_session),
) -> PsbtSignatureResponse:
    signature = await SigningService(session).request_signature(session_id, request.party_id)
    return PsbtSignatureResponse.model_validate(signature)


@router.post(
    "/psbt/{session_id}/submit-signature",
    response_model=PsbtSignatureResponse,
    summary="Submit a signed PSBT",
)
async def submit_signature(
    session_id: uuid.UUID,
    request: SignatureSubmit,
    session: AsyncSession = Depends(get_db_session),
) -> PsbtSignatureResponse:
    signature = await SigningService(session).submit_signature(
        session_id, request.party_id, request.signed_payload
    )
    return PsbtSignatureResponse.model_validate(signature)


@router.post(
    "/psbt/{session_id}/finalize",
    response_model=SigningSessionResponse,
    summary="Finalize a signing session",
)
async def finalize(
    session_id: uuid.UUID,
    request: FinalizeSessionRequest,
    session: AsyncSession = Depends(get_db_session),
) -> SigningSessionResponse:
    """Refund sessions cancel a closing deal; every other type closes it."""
    signing_session = await SigningService(session).finalize(
        session_id,
        external_ref=request.external_ref,
        party_id=request.party_id,
    )
    return SigningSessionResponse.model_validate(signing_session)
