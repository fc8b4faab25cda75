"""Milestone Tracker — the deal's closing checklist."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from deal_room.domain.enums import EventType, TransactionType
from deal_room.domain.exceptions import EntityNotFoundError
from deal_room.domain.milestones import default_milestones
from deal_room.infrastructure.database.orm_models import Milestone
from deal_room.infrastructure.database.repositories import MilestoneRepository
from deal_room.logging_config import get_logger
from deal_room.services.audit_ledger import AuditLedger, entity_payload
from deal_room.services.deal_service import DealService
from deal_room.services.party_service import PartyService

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


class MilestoneService:
    def __init__(self, session: AsyncSession) -> None:
        self._milestone_repo = MilestoneRepository(session)
        self._deals = DealService(session)
        self._parties = PartyService(session)
        self._ledger = AuditLedger(session)

    async def add(
        self,
        deal_id: uuid.UUID,
        name: str,
        description: str | None = None,
        due_date: datetime | None = None,
        is_required: bool = True,
        order_index: int | None = None,
    ) -> Milestone:
        """Append a milestone; without an order_index it goes to the end of the list."""
        deal = await self._deals.get_deal(deal_id)
        if order_index is None:
            existing = await self._milestone_repo.list_for_deal(deal.id)
            order_index = max((m.order_index for m in existing), default=0) + 1

        milestone = Milestone(
            deal_id=deal.id,
            name=name,
            description=description,
            due_date=due_date,
            is_required=is_required,
            order_index=order_index,
        )
        milestone = await self._milestone_repo.create(milestone)

        await self._ledger.record(
            deal_id=deal.id,
            event_type=EventType.MILESTONE_ADDED,
            payload=entity_payload("milestone", after=milestone),
        )

        logger.info("milestone.added", deal_id=deal.id, milestone_id=milestone.id, name=name)
        return milestone

    async def list_for_deal(self, deal_id: uuid.UUID) -> list[Milestone]:
        deal = await self._deals.get_deal(deal_id)
        return await self._milestone_repo.list_for_deal(deal.id)

    async def update(
        self,
        milestone_id: uuid.UUID,
        completed: bool | None = None,
        completed_by_party_id: uuid.UUID | None = None,
        due_date: datetime | None = None,
        name: str | None = None,
        description: str | None = None,
    ) -> Milestone:
        """Edit a milestone or mark it (in)complete.

        Completing an already-completed milestone keeps the first timestamp.
        """
        milestone = await self._milestone_repo.get_by_id(milestone_id)
        if milestone is None:
            raise EntityNotFoundError("Milestone", milestone_id)
        await self._parties.require_party_in_deal(milestone.deal_id, completed_by_party_id)

        before = milestone.to_snapshot()
        if completed is True and milestone.completed_at is None:
            milestone.completed_at = datetime.now(UTC)
            milestone.completed_by_party_id = completed_by_party_id
        elif completed is False:
            milestone.completed_at = None
            milestone.completed_by_party_id = None
        if due_date is not None:
            milestone.due_date = due_date
        if name is not None:
            milestone.name = name
        if description is not None:
            milestone.description = description
        await self._milestone_repo.save(milestone)

        await self._ledger.record(
            deal_id=milestone.deal_id,
            event_type=EventType.MILESTONE_UPDATED,
            payload=entity_payload("milestone", before=before, after=milestone),
            actor_party_id=completed_by_party_id,
        )

        logger.info(
            "milestone.updated",
            milestone_id=milestone.id,
            completed=milestone.completed_at is not None,
        )
        return milestone

    async def seed_defaults(self, deal_id: uuid.UUID) -> list[Milestone]:
        """Create the standard checklist, skipping names the deal already has.

        Appraisal and loan approval are added only for financed deals.
        """
        deal = await self._deals.get_deal(deal_id)
        existing = {m.name for m in await self._milestone_repo.list_for_deal(deal.id)}

        created: list[Milestone] = []
        skipped: list[str] = []
        for template in default_milestones(deal.transaction_type):
            if template.name in existing:
                skipped.append(template.name)
                continue
            created.append(
                Milestone(
                    deal_id=deal.id,
                    name=template.name,
                    is_required=True,
                    order_index=template.order_index,
                )
            )
        if created:
            await self._milestone_repo.add_all(created)

        await self._ledger.record(
            deal_id=deal.id,
            event_type=EventType.MILESTONES_DEFAULTS_CREATED,
            payload=entity_payload(
                "milestone",
                after=created,
                skipped=skipped,
                financed=deal.transaction_type == TransactionType.FINANCED,
            ),
        )

        logger.info(
            "milestones.defaults_created",
            deal_id=deal.id,
            created=len(created),
            skipped=len(skipped),
        )
        return created
