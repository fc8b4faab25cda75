"""Document ledger — references to deal paperwork and their signing status.

File contents never pass through this service; only a URL and a hash are
kept. Status: draft -> active -> signed (draft -> signed allowed).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from deal_room.domain.enums import DocumentStatus, EventType
from deal_room.domain.exceptions import EntityNotFoundError
from deal_room.domain.state_machine import DOCUMENT_EVENTS, DocumentStateMachine, transition_to
from deal_room.infrastructure.database.orm_models import Document
from deal_room.infrastructure.database.repositories import DocumentRepository
from deal_room.logging_config import get_logger
from deal_room.services.audit_ledger import AuditLedger, entity_payload
from deal_room.services.deal_service import DealService
from deal_room.services.party_service import PartyService

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


class DocumentService:
    def __init__(self, session: AsyncSession) -> None:
        self._document_repo = DocumentRepository(session)
        self._deals = DealService(session)
        self._parties = PartyService(session)
        self._ledger = AuditLedger(session)

    async def upload(
        self,
        deal_id: uuid.UUID,
        document_type: str,
        name: str,
        uploaded_by_party_id: uuid.UUID | None = None,
        file_url: str | None = None,
        file_hash: str | None = None,
        requires_signatures: bool = False,
    ) -> Document:
        deal = await self._deals.get_deal(deal_id)
        await self._parties.require_party_in_deal(deal.id, uploaded_by_party_id)

        document = Document(
            deal_id=deal.id,
            document_type=document_type,
            name=name,
            uploaded_by_party_id=uploaded_by_party_id,
            file_url=file_url,
            file_hash=file_hash,
            status=DocumentStatus.DRAFT.value,
            requires_signatures=requires_signatures,
        )
        document = await self._document_repo.create(document)

        await self._ledger.record(
            deal_id=deal.id,
            event_type=EventType.DOCUMENT_UPLOADED,
            payload=entity_payload("document", after=document),
            actor_party_id=uploaded_by_party_id,
        )

        logger.info("document.uploaded", deal_id=deal.id, document_id=document.id, type=document_type)
        return document

    async def list_for_deal(self, deal_id: uuid.UUID) -> list[Document]:
        deal = await self._deals.get_deal(deal_id)
        return await self._document_repo.list_for_deal(deal.id)

    async def update(
        self,
        document_id: uuid.UUID,
        status: DocumentStatus | None = None,
        file_url: str | None = None,
        file_hash: str | None = None,
    ) -> Document:
        document = await self._document_repo.get_by_id(document_id)
        if document is None:
            raise EntityNotFoundError("Document", document_id)

        before = document.to_snapshot()
        if status is not None and transition_to(
            DocumentStateMachine, DOCUMENT_EVENTS, document.status, status
        ):
            document.status = DocumentStatus(status).value
        if file_url is not None:
            document.file_url = file_url
        if file_hash is not None:
            document.file_hash = file_hash
        await self._document_repo.save(document)

        await self._ledger.record(
            deal_id=document.deal_id,
            event_type=EventType.DOCUMENT_UPDATED,
            payload=entity_payload("document", before=before, after=document),
        )

        logger.info("document.updated", document_id=document.id, status=document.status)
        return document
