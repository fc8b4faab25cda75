"""Deal Service — deal records and the lifecycle status guard.

Sub-workflow services never write `deal.status` themselves. They hand a
trigger to `DealService.apply_trigger`, which consults DealStateMachine and
writes the new status with a compare-and-set on the prior status. A trigger
whose guard fails is a no-op: the calling operation's entity write and its
audit entry still go through.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from deal_room.domain.enums import DealStatus, EventType, TransactionType
from deal_room.domain.exceptions import EntityNotFoundError
from deal_room.domain.state_machine import TransitionOutcome, allowed_triggers, next_status
from deal_room.infrastructure.database.orm_models import Deal, Party
from deal_room.infrastructure.database.repositories import DealRepository, PartyRepository
from deal_room.logging_config import bind_deal_context, get_logger
from deal_room.services.audit_ledger import AuditLedger, entity_payload

if TYPE_CHECKING:
    import uuid
    from datetime import datetime
    from decimal import Decimal

    from sqlalchemy.ext.asyncio import AsyncSession

    from deal_room.domain.enums import DealTrigger

logger = get_logger(__name__)


class DealService:
    """Manages deals and their status lifecycle."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._deal_repo = DealRepository(session)
        self._party_repo = PartyRepository(session)
        self._ledger = AuditLedger(session)

    # ------------------------------------------------------------------
    # Deal records
    # ------------------------------------------------------------------

    async def create_deal(
        self,
        property_address: str,
        transaction_type: TransactionType = TransactionType.CASH_PURCHASE,
        purchase_price: Decimal | None = None,
        emd_amount: Decimal | None = None,
        deadline_funding: datetime | None = None,
        deadline_close: datetime | None = None,
        jurisdiction: str | None = None,
    ) -> Deal:
        """Create a new deal in DRAFT state."""
        deal = Deal(
            status=DealStatus.DRAFT.value,
            transaction_type=TransactionType(transaction_type).value,
            property_address=property_address,
            purchase_price=purchase_price,
            emd_amount=emd_amount,
            deadline_funding=deadline_funding,
            deadline_close=deadline_close,
            jurisdiction=jurisdiction,
            parties=[],
        )
        deal = await self._deal_repo.create(deal)
        bind_deal_context(deal.id)

        await self._ledger.record(
            deal_id=deal.id,
            event_type=EventType.DEAL_CREATED,
            payload=entity_payload("deal", after=deal),
        )

        logger.info(
            "deal.created",
            deal_id=deal.id,
            transaction_type=deal.transaction_type,
            status=deal.status,
        )
        return deal

    async def get_deal(self, deal_id: uuid.UUID) -> Deal:
        """Get a deal or raise."""
        deal = await self._deal_repo.get_by_id(deal_id)
        if deal is None:
            raise EntityNotFoundError("Deal", deal_id)
        bind_deal_context(deal.id)
        return deal

    async def list_deals(self) -> list[Deal]:
        return await self._deal_repo.list_all()

    async def status_report(self, deal_id: uuid.UUID) -> dict:
        """Get deal status with the triggers that would currently fire."""
        deal = await self.get_deal(deal_id)
        return {
            "deal_id": deal.id,
            "status": deal.status,
            "allowed_triggers": allowed_triggers(deal.status),
        }

    # ------------------------------------------------------------------
    # Status guard
    # ------------------------------------------------------------------

    async def apply_trigger(self, deal: Deal, trigger: DealTrigger) -> TransitionOutcome:
        """Advance the deal if the trigger's guard holds; otherwise leave it alone.

        Emits no audit entry of its own: the caller records the returned
        outcome in its single event.
        """
        before = DealStatus(deal.status)
        target = next_status(deal.status, trigger)
        if target is None:
            logger.info(
                "deal.transition_skipped",
                deal_id=deal.id,
                trigger=trigger,
                status=before,
                reason="guard_failed",
            )
            return TransitionOutcome.unchanged(before, trigger)

        if not await self._deal_repo.compare_and_set_status(deal, before, target):
            logger.warning(
                "deal.transition_skipped",
                deal_id=deal.id,
                trigger=trigger,
                expected=before,
                stored=deal.status,
                reason="concurrent_update",
            )
            return TransitionOutcome.unchanged(deal.status, trigger)

        logger.info("deal.transitioned", deal_id=deal.id, trigger=trigger, old=before, new=target)
        return TransitionOutcome(trigger=trigger, before=before, after=target)

    # ------------------------------------------------------------------
    # Manual override
    # ------------------------------------------------------------------

    async def override(
        self,
        deal_id: uuid.UUID,
        status: DealStatus | None = None,
        deadline_funding: datetime | None = None,
        deadline_close: datetime | None = None,
        actor_party_id: uuid.UUID | None = None,
    ) -> Deal:
        """Correct a deal's status or deadlines by hand, bypassing the guard table."""
        deal = await self.get_deal(deal_id)
        if actor_party_id is not None:
            await self._require_party(deal, actor_party_id)

        before = deal.to_snapshot()
        old_status = DealStatus(deal.status)

        if status is not None:
            deal.status = DealStatus(status).value
        if deadline_funding is not None:
            deal.deadline_funding = deadline_funding
        if deadline_close is not None:
            deal.deadline_close = deadline_close
        await self._deal_repo.save(deal)

        outcome = TransitionOutcome(trigger=None, before=old_status, after=DealStatus(deal.status))
        await self._ledger.record(
            deal_id=deal.id,
            event_type=EventType.DEAL_UPDATED,
            payload=entity_payload("deal", before=before, after=deal, override=True),
            actor_party_id=actor_party_id,
            outcome=outcome,
        )

        logger.info(
            "deal.overridden",
            deal_id=deal.id,
            old=old_status,
            new=deal.status,
            actor_party_id=actor_party_id,
        )
        return deal

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _require_party(self, deal: Deal, party_id: uuid.UUID) -> Party:
        party = await self._party_repo.get_by_id(party_id)
        if party is None or party.deal_id != deal.id:
            raise EntityNotFoundError("Party", party_id)
        return party
