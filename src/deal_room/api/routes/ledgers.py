"""Document, fund and disbursement REST API routes.

Routes:
    POST   /api/v1/deals/{id}/documents         — Register a document
    GET    /api/v1/deals/{id}/documents         — List (newest first)
    PATCH  /api/v1/documents/{id}               — Status / file reference
    POST   /api/v1/deals/{id}/funds             — Add a fund
    GET    /api/v1/deals/{id}/funds             — List
    PATCH  /api/v1/funds/{id}                   — Status / txids
    POST   /api/v1/deals/{id}/disbursements     — Add a disbursement
    GET    /api/v1/deals/{id}/disbursements     — List
    POST   /api/v1/disbursements/{id}/pay       — Mark paid
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from deal_room.api.deps import get_db_session
from deal_room.schemas.checklists import (
    DisbursementCreate,
    DisbursementPay,
    DisbursementResponse,
    DocumentCreate,
    DocumentResponse,
    DocumentUpdate,
    FundCreate,
    FundResponse,
    FundUpdate,
)
from deal_room.services.document_service import DocumentService
from deal_room.services.fund_service import DisbursementService, FundService

router = APIRouter(prefix="/api/v1", tags=["Ledgers"])


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


@router.post(
    "/deals/{deal_id}/documents",
    response_model=DocumentResponse,
    status_code=201,
    summary="Register a document",
)
async def upload_document(
    deal_id: uuid.UUID,
    request: DocumentCreate,
    session: AsyncSession = Depends(get_db_session),
) -> DocumentResponse:
    document = await DocumentService(session).upload(deal_id, **request.model_dump())
    return DocumentResponse.model_validate(document)


@router.get(
    "/deals/{deal_id}/documents",
    response_model=list[DocumentResponse],
    summary="List documents",
)
async def list_documents(
    deal_id: uuid.UUID,
    session: AsyncSession = Depends(get_db_session),
) -> list[DocumentResponse]:
    documents = await DocumentService(session).list_for_deal(deal_id)
    return [DocumentResponse.model_validate(d) for d in documents]


@router.patch(
    "/documents/{document_id}",
    response_model=DocumentResponse,
    summary="Update a document",
)
async def update_document(
    document_id: uuid.UUID,
    request: DocumentUpdate,
    session: AsyncSession = Depends(get_db_session),
) -> DocumentResponse:
    document = await DocumentService(session).update(document_id, **request.model_dump())
    return DocumentResponse.model_validate(document)


# ---------------------------------------------------------------------------
# Funds
# ---------------------------------------------------------------------------


@router.post(
    "/deals/{deal_id}/funds",
    response_model=FundResponse,
    status_code=201,
    summary="Add a fund",
)
async def add_fund(
    deal_id: uuid.UUID,
    request: FundCreate,
    session: AsyncSession = Depends(get_db_session),
) -> FundResponse:
    fund = await FundService(session).add(deal_id, **request.model_dump())
    return FundResponse.model_validate(fund)


@router.get("/deals/{deal_id}/funds", response_model=list[FundResponse], summary="List funds")
async def list_funds(
    deal_id: uuid.UUID,
    session: AsyncSession = Depends(get_db_session),
) -> list[FundResponse]:
    funds = await FundService(session).list_for_deal(deal_id)
    return [FundResponse.model_validate(f) for f in funds]


@router.patch("/funds/{fund_id}", response_model=FundResponse, summary="Update a fund")
async def update_fund(
    fund_id: uuid.UUID,
    request: FundUpdate,
    session: AsyncSession = Depends(get_db_session),
) -> FundResponse:
    fund = await FundService(session).update(fund_id, **request.model_dump())
    return FundResponse.model_validate(fund)


# ---------------------------------------------------------------------------
# Disbursements
# ---------------------------------------------------------------------------


@router.post(
    "/deals/{deal_id}/disbursements",
    response_model=DisbursementResponse,
    status_code=201,
    summary="Add a disbursement",
)
async def add_disbursement(
    deal_id: uuid.UUID,
    request: DisbursementCreate,
    session: AsyncSession = Depends(get_db_session),
) -> DisbursementResponse:
    disbursement = await DisbursementService(session).add(deal_id, **request.model_dump())
    return DisbursementResponse.model_validate(disbursement)


@router.get(
    "/deals/{deal_id}/disbursements",
    response_model=list[DisbursementResponse],
    summary="List disbursements",
)
async def list_disbursements(
    deal_id: uuid.UUID,
    session: AsyncSession = Depends(get_db_session),
) -> list[DisbursementResponse]:
    disbursements = await DisbursementService(session).list_for_deal(deal_id)
    return [DisbursementResponse.model_validate(d) for d in disbursements]


@router.post(
    "/disbursements/{disbursement_id}/pay",
    response_model=DisbursementResponse,
    summary="Mark a disbursement paid",
)
async def pay_disbursement(
    disbursement_id: uuid.UUID,
    request: DisbursementPay,
    session: AsyncSession = Depends(get_db_session),
) -> DisbursementResponse:
    disbursement = await DisbursementService(session).pay(disbursement_id, request.paid_txid)
    return DisbursementResponse.model_validate(disbursement)
