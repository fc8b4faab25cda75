"""Escrow Workflow — custody policy, funding records and receipts.

Nothing here touches a chain: funding is whatever the caller reports, and
the policy's terms_hash only makes the submitted terms tamper-evident.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from deal_room.config import get_settings
from deal_room.domain.enums import DealTrigger, EventType
from deal_room.domain.exceptions import EntityNotFoundError
from deal_room.domain.fingerprints import terms_hash
from deal_room.infrastructure.database.orm_models import EscrowFunding, EscrowPolicy
from deal_room.infrastructure.database.repositories import EscrowRepository
from deal_room.logging_config import get_logger
from deal_room.services.audit_ledger import AuditLedger, entity_payload
from deal_room.services.deal_service import DealService

if TYPE_CHECKING:
    import uuid
    from decimal import Decimal

    from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


@dataclass
class EscrowReceipt:
    deal_id: uuid.UUID
    funding: EscrowFunding
    policy: EscrowPolicy | None


class EscrowService:
    """Creates escrow policies and records funding for a deal."""

    def __init__(self, session: AsyncSession) -> None:
        self._escrow_repo = EscrowRepository(session)
        self._deals = DealService(session)
        self._ledger = AuditLedger(session)

    # ------------------------------------------------------------------
    # Policy
    # ------------------------------------------------------------------

    async def create_policy(
        self,
        deal_id: uuid.UUID,
        descriptor: str | None = None,
        refund_timelock: datetime | None = None,
        address: str | None = None,
    ) -> EscrowPolicy:
        """Append a new policy; the newest one is the deal's current policy."""
        deal = await self._deals.get_deal(deal_id)
        settings = get_settings()

        terms = {
            "deal_id": str(deal.id),
            "policy_type": settings.escrow_policy_type,
            "descriptor": descriptor or settings.escrow_default_descriptor,
            "address": address or settings.escrow_default_address,
            "refund_timelock": refund_timelock.isoformat() if refund_timelock else None,
        }
        policy = EscrowPolicy(
            deal_id=deal.id,
            policy_type=terms["policy_type"],
            descriptor=terms["descriptor"],
            address=terms["address"],
            refund_timelock=refund_timelock,
            terms_hash=terms_hash(terms),
        )
        policy = await self._escrow_repo.add_policy(policy)

        outcome = await self._deals.apply_trigger(deal, DealTrigger.CREATE_ESCROW_POLICY)
        await self._ledger.record(
            deal_id=deal.id,
            event_type=EventType.ESCROW_POLICY_CREATED,
            payload=entity_payload("escrow_policy", after=policy),
            outcome=outcome,
        )

        logger.info(
            "escrow.policy_created",
            deal_id=deal.id,
            policy_id=policy.id,
            terms_hash=policy.terms_hash,
            applied=outcome.applied,
        )
        return policy

    async def current_policy(self, deal_id: uuid.UUID) -> EscrowPolicy:
        """Get the latest policy or raise."""
        deal = await self._deals.get_deal(deal_id)
        policy = await self._escrow_repo.latest_policy(deal.id)
        if policy is None:
            raise EntityNotFoundError("EscrowPolicy")
        return policy

    # ------------------------------------------------------------------
    # Funding
    # ------------------------------------------------------------------

    async def record_funding(
        self,
        deal_id: uuid.UUID,
        txid: str,
        amount: Decimal | None = None,
        confirmations: int = 0,
        funded_at: datetime | None = None,
    ) -> EscrowFunding:
        """Record a reported funding transaction and move escrow_created deals to funded."""
        deal = await self._deals.get_deal(deal_id)

        funding = EscrowFunding(
            deal_id=deal.id,
            txid=txid,
            amount=amount,
            confirmations=confirmations,
            funded_at=funded_at or datetime.now(UTC),
        )
        funding = await self._escrow_repo.add_funding(funding)

        outcome = await self._deals.apply_trigger(deal, DealTrigger.RECORD_FUNDING)
        await self._ledger.record(
            deal_id=deal.id,
            event_type=EventType.ESCROW_FUNDED,
            payload=entity_payload("escrow_funding", after=funding),
            external_ref=txid,
            outcome=outcome,
        )

        logger.info(
            "escrow.funded",
            deal_id=deal.id,
            txid=txid,
            confirmations=confirmations,
            applied=outcome.applied,
        )
        return funding

    async def receipt(self, deal_id: uuid.UUID) -> EscrowReceipt:
        """Latest funding joined with the latest policy. Read-only."""
        deal = await self._deals.get_deal(deal_id)
        funding = await self._escrow_repo.latest_funding(deal.id)
        if funding is None:
            raise EntityNotFoundError("EscrowFunding")
        policy = await self._escrow_repo.latest_policy(deal.id)
        return EscrowReceipt(deal_id=deal.id, funding=funding, policy=policy)
