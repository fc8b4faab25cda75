"""Contingency Tracker — conditions a deal depends on.

pending -> satisfied | waived | failed. Notes and deadline remain editable
after a contingency resolves; its status does not.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from deal_room.domain.enums import ContingencyStatus, EventType
from deal_room.domain.exceptions import EntityNotFoundError
from deal_room.domain.state_machine import CONTINGENCY_EVENTS, ContingencyStateMachine, transition_to
from deal_room.infrastructure.database.orm_models import Contingency
from deal_room.infrastructure.database.repositories import ContingencyRepository
from deal_room.logging_config import get_logger
from deal_room.services.audit_ledger import AuditLedger, entity_payload
from deal_room.services.deal_service import DealService
from deal_room.services.party_service import PartyService

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


class ContingencyService:
    def __init__(self, session: AsyncSession) -> None:
        self._contingency_repo = ContingencyRepository(session)
        self._deals = DealService(session)
        self._parties = PartyService(session)
        self._ledger = AuditLedger(session)

    async def add(
        self,
        deal_id: uuid.UUID,
        contingency_type: str,
        deadline: datetime | None = None,
        notes: str | None = None,
    ) -> Contingency:
        deal = await self._deals.get_deal(deal_id)
        contingency = Contingency(
            deal_id=deal.id,
            contingency_type=contingency_type,
            status=ContingencyStatus.PENDING.value,
            deadline=deadline,
            notes=notes,
        )
        contingency = await self._contingency_repo.create(contingency)

        await self._ledger.record(
            deal_id=deal.id,
            event_type=EventType.CONTINGENCY_ADDED,
            payload=entity_payload("contingency", after=contingency),
        )

        logger.info("contingency.added", deal_id=deal.id, contingency_id=contingency.id, type=contingency_type)
        return contingency

    async def list_for_deal(self, deal_id: uuid.UUID) -> list[Contingency]:
        deal = await self._deals.get_deal(deal_id)
        return await self._contingency_repo.list_for_deal(deal.id)

    async def update(
        self,
        contingency_id: uuid.UUID,
        status: ContingencyStatus | None = None,
        notes: str | None = None,
        deadline: datetime | None = None,
        waived_by_party_id: uuid.UUID | None = None,
    ) -> Contingency:
        """Resolve a contingency and/or edit its notes and deadline.

        Re-applying the current status changes nothing; moving a resolved
        contingency to a different status raises InvalidStateTransitionError.
        """
        contingency = await self._contingency_repo.get_by_id(contingency_id)
        if contingency is None:
            raise EntityNotFoundError("Contingency", contingency_id)
        await self._parties.require_party_in_deal(contingency.deal_id, waived_by_party_id)

        before = contingency.to_snapshot()
        now = datetime.now(UTC)

        if status is not None and transition_to(
            ContingencyStateMachine, CONTINGENCY_EVENTS, contingency.status, status
        ):
            contingency.status = ContingencyStatus(status).value
            if status == ContingencyStatus.SATISFIED:
                contingency.satisfied_at = now
            elif status == ContingencyStatus.WAIVED:
                contingency.waived_at = now
                contingency.waived_by_party_id = waived_by_party_id
        if notes is not None:
            contingency.notes = notes
        if deadline is not None:
            contingency.deadline = deadline
        await self._contingency_repo.save(contingency)

        await self._ledger.record(
            deal_id=contingency.deal_id,
            event_type=EventType.CONTINGENCY_UPDATED,
            payload=entity_payload("contingency", before=before, after=contingency),
            actor_party_id=waived_by_party_id,
        )

        logger.info(
            "contingency.updated",
            contingency_id=contingency.id,
            old=before["status"],
            new=contingency.status,
        )
        return contingency
