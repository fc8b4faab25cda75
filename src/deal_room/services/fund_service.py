"""Funds and disbursements ledgers.

Both are bookkeeping only: statuses record what the parties report, no
money moves and no transaction id is checked. Neither drives deal status.

    Fund:          pending -> funded -> released
    Disbursement:  pending -> paid
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from deal_room.domain.enums import DisbursementStatus, EventType, FundStatus
from deal_room.domain.exceptions import EntityNotFoundError
from deal_room.domain.state_machine import (
    DISBURSEMENT_EVENTS,
    FUND_EVENTS,
    DisbursementStateMachine,
    FundStateMachine,
    transition_to,
)
from deal_room.infrastructure.database.orm_models import Disbursement, EscrowPolicy, Fund
from deal_room.infrastructure.database.repositories import (
    DisbursementRepository,
    EscrowRepository,
    FundRepository,
)
from deal_room.logging_config import get_logger
from deal_room.services.audit_ledger import AuditLedger, entity_payload
from deal_room.services.deal_service import DealService

if TYPE_CHECKING:
    import uuid
    from decimal import Decimal

    from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


class FundService:
    """Tracks deposits and other money held for a deal."""

    def __init__(self, session: AsyncSession) -> None:
        self._fund_repo = FundRepository(session)
        self._escrow_repo = EscrowRepository(session)
        self._deals = DealService(session)
        self._ledger = AuditLedger(session)

    async def add(
        self,
        deal_id: uuid.UUID,
        fund_type: str,
        description: str | None = None,
        amount: Decimal | None = None,
        amount_usd: Decimal | None = None,
        escrow_policy_id: uuid.UUID | None = None,
    ) -> Fund:
        deal = await self._deals.get_deal(deal_id)
        if escrow_policy_id is not None:
            await self._require_policy(deal.id, escrow_policy_id)

        fund = Fund(
            deal_id=deal.id,
            fund_type=fund_type,
            description=description,
            amount=amount,
            amount_usd=amount_usd,
            escrow_policy_id=escrow_policy_id,
            status=FundStatus.PENDING.value,
        )
        fund = await self._fund_repo.create(fund)

        await self._ledger.record(
            deal_id=deal.id,
            event_type=EventType.FUND_ADDED,
            payload=entity_payload("fund", after=fund),
        )

        logger.info("fund.added", deal_id=deal.id, fund_id=fund.id, fund_type=fund_type)
        return fund

    async def list_for_deal(self, deal_id: uuid.UUID) -> list[Fund]:
        deal = await self._deals.get_deal(deal_id)
        return await self._fund_repo.list_for_deal(deal.id)

    async def update(
        self,
        fund_id: uuid.UUID,
        status: FundStatus | None = None,
        funded_txid: str | None = None,
        released_txid: str | None = None,
    ) -> Fund:
        """Move a fund along pending -> funded -> released, recording txids."""
        fund = await self._fund_repo.get_by_id(fund_id)
        if fund is None:
            raise EntityNotFoundError("Fund", fund_id)

        before = fund.to_snapshot()
        if status is not None and transition_to(FundStateMachine, FUND_EVENTS, fund.status, status):
            fund.status = FundStatus(status).value
        if funded_txid is not None:
            fund.funded_txid = funded_txid
        if released_txid is not None:
            fund.released_txid = released_txid
        await self._fund_repo.save(fund)

        await self._ledger.record(
            deal_id=fund.deal_id,
            event_type=EventType.FUND_UPDATED,
            payload=entity_payload("fund", before=before, after=fund),
            external_ref=released_txid or funded_txid,
        )

        logger.info("fund.updated", fund_id=fund.id, old=before["status"], new=fund.status)
        return fund

    async def _require_policy(self, deal_id: uuid.UUID, policy_id: uuid.UUID) -> EscrowPolicy:
        policy = await self._escrow_repo.policies.get_by_id(policy_id)
        if policy is None or policy.deal_id != deal_id:
            raise EntityNotFoundError("EscrowPolicy", policy_id)
        return policy


class DisbursementService:
    """Tracks payouts at closing."""

    def __init__(self, session: AsyncSession) -> None:
        self._disbursement_repo = DisbursementRepository(session)
        self._deals = DealService(session)
        self._ledger = AuditLedger(session)

    async def add(
        self,
        deal_id: uuid.UUID,
        payee_name: str,
        payee_type: str,
        amount: Decimal | None = None,
        amount_usd: Decimal | None = None,
        description: str | None = None,
        address: str | None = None,
    ) -> Disbursement:
        deal = await self._deals.get_deal(deal_id)
        disbursement = Disbursement(
            deal_id=deal.id,
            payee_name=payee_name,
            payee_type=payee_type,
            amount=amount,
            amount_usd=amount_usd,
            description=description,
            address=address,
            status=DisbursementStatus.PENDING.value,
        )
        disbursement = await self._disbursement_repo.create(disbursement)

        await self._ledger.record(
            deal_id=deal.id,
            event_type=EventType.DISBURSEMENT_ADDED,
            payload=entity_payload("disbursement", after=disbursement),
        )

        logger.info("disbursement.added", deal_id=deal.id, disbursement_id=disbursement.id, payee=payee_name)
        return disbursement

    async def list_for_deal(self, deal_id: uuid.UUID) -> list[Disbursement]:
        deal = await self._deals.get_deal(deal_id)
        return await self._disbursement_repo.list_for_deal(deal.id)

    async def pay(self, disbursement_id: uuid.UUID, paid_txid: str | None = None) -> Disbursement:
        """Mark a disbursement paid. Paying it again keeps the first paid_at."""
        disbursement = await self._disbursement_repo.get_by_id(disbursement_id)
        if disbursement is None:
            raise EntityNotFoundError("Disbursement", disbursement_id)

        before = disbursement.to_snapshot()
        if transition_to(
            DisbursementStateMachine,
            DISBURSEMENT_EVENTS,
            disbursement.status,
            DisbursementStatus.PAID.value,
        ):
            disbursement.status = DisbursementStatus.PAID.value
            disbursement.paid_at = datetime.now(UTC)
        if paid_txid is not None:
            disbursement.paid_txid = paid_txid
        await self._disbursement_repo.save(disbursement)

        await self._ledger.record(
            deal_id=disbursement.deal_id,
            event_type=EventType.DISBURSEMENT_PAID,
            payload=entity_payload("disbursement", before=before, after=disbursement),
            external_ref=paid_txid,
        )

        logger.info("disbursement.paid", disbursement_id=disbursement.id, paid_txid=paid_txid)
        return disbursement
