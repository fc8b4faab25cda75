"""End-to-end lifecycle tests driven through the workflow services.

A deal is walked draft -> closed (and draft -> cancelled) purely by the
sub-workflows firing their triggers; no test writes deal.status directly
except through the audited override.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

import pytest

from deal_room.domain.enums import DealStatus, EventType, SessionType
from deal_room.domain.exceptions import EntityNotFoundError
from deal_room.services.audit_ledger import AuditLedger
from deal_room.services.deal_service import DealService
from deal_room.services.escrow_service import EscrowService
from deal_room.services.party_service import PartyService
from deal_room.services.pof_service import PofService
from deal_room.services.signing_service import SigningService


class TestCreateDeal:
    @pytest.mark.asyncio
    async def test_new_deal_starts_in_draft(self, deal) -> None:
        assert deal.status == DealStatus.DRAFT
        assert deal.transaction_type == "cash_purchase"
        assert deal.parties == []

    @pytest.mark.asyncio
    async def test_creation_is_audited(self, session, deal) -> None:
        events = await AuditLedger(session).history(deal.id)
        assert [e.event_type for e in events] == [EventType.DEAL_CREATED]
        assert events[0].payload["entity"] == "deal"
        assert events[0].payload["before"] is None
        assert events[0].payload["after"]["status"] == "draft"

    @pytest.mark.asyncio
    async def test_unknown_deal_raises_not_found(self, session) -> None:
        with pytest.raises(EntityNotFoundError) as exc_info:
            await DealService(session).get_deal(uuid.uuid4())
        assert exc_info.value.entity == "Deal"

    @pytest.mark.asyncio
    async def test_list_deals(self, session, deal) -> None:
        other = await DealService(session).create_deal(property_address="1 Main St", transaction_type="financed")
        ids = {d.id for d in await DealService(session).list_deals()}
        assert ids == {deal.id, other.id}


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_full_lifecycle_to_closed(self, session, deal, buyer, advance_deal) -> None:
        await advance_deal(deal, buyer, DealStatus.CLOSING)

        signing = SigningService(session)
        sessions = await signing.list_sessions(deal.id)
        assert len(sessions) == 1

        await signing.finalize(sessions[0].id, external_ref="f" * 64)
        assert deal.status == DealStatus.CLOSED

        report = await DealService(session).status_report(deal.id)
        assert report["status"] == "closed"
        assert report["allowed_triggers"] == []

    @pytest.mark.asyncio
    async def test_refund_session_cancels(self, session, deal, buyer, advance_deal) -> None:
        await advance_deal(deal, buyer, DealStatus.CLOSING)

        signing = SigningService(session)
        refund = await signing.create_session(deal.id, SessionType.REFUND.value, "cHNidP8BAHEC")
        # Creating a refund session is not a settlement trigger.
        assert deal.status == DealStatus.CLOSING

        await signing.finalize(refund.id)
        assert deal.status == DealStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_funding_session_does_not_open_settlement(self, session, deal, buyer, advance_deal) -> None:
        await advance_deal(deal, buyer, DealStatus.FUNDED)
        await SigningService(session).create_session(deal.id, SessionType.FUNDING.value, None)
        assert deal.status == DealStatus.FUNDED


class TestGuardNoOps:
    @pytest.mark.asyncio
    async def test_out_of_order_trigger_still_writes_entity(self, session, deal) -> None:
        """Recording funding on a draft deal stores the row but leaves the status."""
        funding = await EscrowService(session).record_funding(deal.id, "cd" * 32)
        assert funding.id is not None
        assert deal.status == DealStatus.DRAFT

        latest = (await AuditLedger(session).history(deal.id))[0]
        assert latest.event_type == EventType.ESCROW_FUNDED
        assert latest.external_ref == "cd" * 32
        assert latest.old_status == latest.new_status == "draft"
        assert latest.payload["deal_status"]["applied"] is False

    @pytest.mark.asyncio
    async def test_repeated_request_does_not_move_backwards(self, session, deal, buyer, advance_deal) -> None:
        await advance_deal(deal, buyer, DealStatus.POF_VERIFIED)
        await PofService(session).request_proof(deal.id, "Alice Buyer")
        assert deal.status == DealStatus.POF_VERIFIED

    @pytest.mark.asyncio
    async def test_closed_deal_ignores_further_triggers(self, session, deal, buyer, advance_deal) -> None:
        await advance_deal(deal, buyer, DealStatus.CLOSING)
        signing = SigningService(session)
        first = (await signing.list_sessions(deal.id))[0]
        await signing.finalize(first.id)

        refund = await signing.create_session(deal.id, SessionType.REFUND.value, None)
        await signing.finalize(refund.id)
        assert deal.status == DealStatus.CLOSED


class TestOverride:
    @pytest.mark.asyncio
    async def test_override_bypasses_guards_and_is_audited(self, session, deal, buyer) -> None:
        close_by = datetime(2026, 12, 1, tzinfo=UTC)
        updated = await DealService(session).override(
            deal.id,
            status=DealStatus.FUNDED,
            deadline_close=close_by,
            actor_party_id=buyer.id,
        )
        assert updated.status == DealStatus.FUNDED

        latest = (await AuditLedger(session).history(deal.id))[0]
        assert latest.event_type == EventType.DEAL_UPDATED
        assert latest.actor_party_id == buyer.id
        assert latest.old_status == "draft"
        assert latest.new_status == "funded"
        assert latest.payload["override"] is True
        assert latest.payload["deal_status"]["trigger"] is None
        assert latest.payload["before"]["status"] == "draft"
        assert latest.payload["after"]["status"] == "funded"

    @pytest.mark.asyncio
    async def test_override_rejects_foreign_party(self, session, deal) -> None:
        other = await DealService(session).create_deal(property_address="9 Elm St")
        stranger = await PartyService(session).invite(other.id, role="buyer", display_name="Eve", email="e@x.io")
        with pytest.raises(EntityNotFoundError):
            await DealService(session).override(deal.id, status=DealStatus.CLOSED, actor_party_id=stranger.id)
        assert deal.status == DealStatus.DRAFT
