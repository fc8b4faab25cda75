"""Tests for contingencies, milestones, documents, funds and disbursements.

None of these drive the deal status; each mutation still writes one audit event.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from decimal import Decimal

import pytest

from deal_room.domain.enums import ContingencyStatus, DealStatus, EventType
from deal_room.domain.exceptions import EntityNotFoundError, InvalidStateTransitionError
from deal_room.services.audit_ledger import AuditLedger
from deal_room.services.contingency_service import ContingencyService
from deal_room.services.deal_service import DealService
from deal_room.services.document_service import DocumentService
from deal_room.services.escrow_service import EscrowService
from deal_room.services.fund_service import DisbursementService, FundService
from deal_room.services.milestone_service import MilestoneService


async def _latest_event(session, deal_id):  # noqa: ANN001, ANN202
    return (await AuditLedger(session).history(deal_id))[0]


class TestContingencies:
    @pytest.mark.asyncio
    async def test_listed_by_deadline_with_undated_last(self, session, deal) -> None:
        svc = ContingencyService(session)
        undated = await svc.add(deal.id, "hoa_review")
        late = await svc.add(deal.id, "appraisal", deadline=datetime(2026, 6, 1, tzinfo=UTC))
        early = await svc.add(deal.id, "inspection", deadline=datetime(2026, 5, 1, tzinfo=UTC))

        listed = await svc.list_for_deal(deal.id)
        assert [c.id for c in listed] == [early.id, late.id, undated.id]
        assert all(c.status == ContingencyStatus.PENDING for c in listed)

    @pytest.mark.asyncio
    async def test_satisfy_sets_timestamp(self, session, deal) -> None:
        svc = ContingencyService(session)
        contingency = await svc.add(deal.id, "inspection")
        updated = await svc.update(contingency.id, status=ContingencyStatus.SATISFIED, notes="all clear")
        assert updated.status == ContingencyStatus.SATISFIED
        assert updated.satisfied_at is not None
        assert updated.notes == "all clear"

        latest = await _latest_event(session, deal.id)
        assert latest.event_type == EventType.CONTINGENCY_UPDATED
        assert latest.payload["before"]["status"] == "pending"
        assert latest.payload["after"]["status"] == "satisfied"

    @pytest.mark.asyncio
    async def test_waive_records_party(self, session, deal, buyer) -> None:
        svc = ContingencyService(session)
        contingency = await svc.add(deal.id, "financing")
        updated = await svc.update(contingency.id, status="waived", waived_by_party_id=buyer.id)
        assert updated.waived_by_party_id == buyer.id
        assert updated.waived_at is not None
        assert (await _latest_event(session, deal.id)).actor_party_id == buyer.id

    @pytest.mark.asyncio
    async def test_resolved_status_is_final(self, session, deal) -> None:
        svc = ContingencyService(session)
        contingency = await svc.add(deal.id, "inspection")
        await svc.update(contingency.id, status=ContingencyStatus.FAILED)

        with pytest.raises(InvalidStateTransitionError):
            await svc.update(contingency.id, status=ContingencyStatus.SATISFIED)

        # Same status again is a no-op that still allows editing notes.
        again = await svc.update(contingency.id, status=ContingencyStatus.FAILED, notes="seller refused repairs")
        assert again.status == ContingencyStatus.FAILED
        assert again.notes == "seller refused repairs"

    @pytest.mark.asyncio
    async def test_unknown_contingency(self, session) -> None:
        with pytest.raises(EntityNotFoundError):
            await ContingencyService(session).update(uuid.uuid4(), status=ContingencyStatus.SATISFIED)


class TestMilestones:
    @pytest.mark.asyncio
    async def test_cash_deal_seeds_eleven(self, session, deal) -> None:
        created = await MilestoneService(session).seed_defaults(deal.id)
        assert len(created) == 11
        names = [m.name for m in created]
        assert "Loan Approved" not in names

        latest = await _latest_event(session, deal.id)
        assert latest.event_type == EventType.MILESTONES_DEFAULTS_CREATED
        assert latest.payload["financed"] is False
        assert len(latest.payload["after"]) == 11

    @pytest.mark.asyncio
    async def test_financed_deal_seeds_thirteen(self, session) -> None:
        financed = await DealService(session).create_deal(
            property_address="12 Oak Ave", transaction_type="financed"
        )
        created = await MilestoneService(session).seed_defaults(financed.id)
        assert len(created) == 13

    @pytest.mark.asyncio
    async def test_seeding_twice_skips_existing(self, session, deal) -> None:
        svc = MilestoneService(session)
        await svc.seed_defaults(deal.id)
        created = await svc.seed_defaults(deal.id)
        assert created == []
        assert len(await svc.list_for_deal(deal.id)) == 11

        latest = await _latest_event(session, deal.id)
        assert len(latest.payload["skipped"]) == 11

    @pytest.mark.asyncio
    async def test_add_appends_after_last(self, session, deal) -> None:
        svc = MilestoneService(session)
        await svc.seed_defaults(deal.id)
        custom = await svc.add(deal.id, "HOA Docs Delivered")
        assert custom.order_index == 14

        listed = await svc.list_for_deal(deal.id)
        assert listed[-1].id == custom.id
        assert [m.order_index for m in listed] == sorted(m.order_index for m in listed)

    @pytest.mark.asyncio
    async def test_first_milestone_starts_at_one(self, session, deal) -> None:
        first = await MilestoneService(session).add(deal.id, "Contract Executed")
        assert first.order_index == 1

    @pytest.mark.asyncio
    async def test_complete_keeps_first_timestamp_and_can_reopen(self, session, deal, title) -> None:
        svc = MilestoneService(session)
        milestone = await svc.add(deal.id, "Title Cleared")

        done = await svc.update(milestone.id, completed=True, completed_by_party_id=title.id)
        first_completed_at = done.completed_at
        assert done.completed_by_party_id == title.id

        again = await svc.update(milestone.id, completed=True)
        assert again.completed_at == first_completed_at

        reopened = await svc.update(milestone.id, completed=False)
        assert reopened.completed_at is None
        assert reopened.completed_by_party_id is None

    @pytest.mark.asyncio
    async def test_milestones_do_not_move_the_deal(self, session, deal) -> None:
        svc = MilestoneService(session)
        for milestone in await svc.seed_defaults(deal.id):
            await svc.update(milestone.id, completed=True)
        assert deal.status == DealStatus.DRAFT


class TestDocuments:
    @pytest.mark.asyncio
    async def test_upload_and_sign(self, session, deal, seller) -> None:
        svc = DocumentService(session)
        document = await svc.upload(
            deal.id,
            document_type="purchase_agreement",
            name="PSA.pdf",
            uploaded_by_party_id=seller.id,
            file_hash="ab" * 32,
            requires_signatures=True,
        )
        assert document.status == "draft"
        assert (await _latest_event(session, deal.id)).actor_party_id == seller.id

        active = await svc.update(document.id, status="active")
        assert active.status == "active"
        signed = await svc.update(document.id, status="signed", file_url="s3://deals/psa-signed.pdf")
        assert signed.status == "signed"
        assert signed.file_url == "s3://deals/psa-signed.pdf"

    @pytest.mark.asyncio
    async def test_signed_document_cannot_reactivate(self, session, deal) -> None:
        svc = DocumentService(session)
        document = await svc.upload(deal.id, "disclosure", "Disclosure.pdf")
        await svc.update(document.id, status="signed")
        with pytest.raises(InvalidStateTransitionError):
            await svc.update(document.id, status="active")

    @pytest.mark.asyncio
    async def test_list_documents(self, session, deal) -> None:
        svc = DocumentService(session)
        a = await svc.upload(deal.id, "disclosure", "A.pdf")
        b = await svc.upload(deal.id, "addendum", "B.pdf")
        assert {d.id for d in await svc.list_for_deal(deal.id)} == {a.id, b.id}

    @pytest.mark.asyncio
    async def test_unknown_document(self, session) -> None:
        with pytest.raises(EntityNotFoundError):
            await DocumentService(session).update(uuid.uuid4(), status="active")


class TestFunds:
    @pytest.mark.asyncio
    async def test_fund_progression_records_txids(self, session, deal) -> None:
        svc = FundService(session)
        fund = await svc.add(deal.id, "emd", amount=Decimal("0.25"), amount_usd=Decimal("15000.00"))
        assert fund.status == "pending"

        funded = await svc.update(fund.id, status="funded", funded_txid="aa" * 32)
        assert funded.funded_txid == "aa" * 32
        assert (await _latest_event(session, deal.id)).external_ref == "aa" * 32

        released = await svc.update(fund.id, status="released", released_txid="bb" * 32)
        assert released.status == "released"
        assert (await _latest_event(session, deal.id)).external_ref == "bb" * 32

    @pytest.mark.asyncio
    async def test_fund_cannot_skip_funded(self, session, deal) -> None:
        svc = FundService(session)
        fund = await svc.add(deal.id, "closing_funds")
        with pytest.raises(InvalidStateTransitionError):
            await svc.update(fund.id, status="released")

    @pytest.mark.asyncio
    async def test_fund_links_to_policy_of_same_deal(self, session, deal) -> None:
        policy = await EscrowService(session).create_policy(deal.id)
        fund = await FundService(session).add(deal.id, "emd", escrow_policy_id=policy.id)
        assert fund.escrow_policy_id == policy.id

        other = await DealService(session).create_deal(property_address="5 Pine Rd")
        with pytest.raises(EntityNotFoundError) as exc_info:
            await FundService(session).add(other.id, "emd", escrow_policy_id=policy.id)
        assert exc_info.value.entity == "EscrowPolicy"

    @pytest.mark.asyncio
    async def test_list_funds(self, session, deal) -> None:
        svc = FundService(session)
        await svc.add(deal.id, "emd")
        await svc.add(deal.id, "closing_funds")
        assert len(await svc.list_for_deal(deal.id)) == 2


class TestDisbursements:
    @pytest.mark.asyncio
    async def test_pay_keeps_first_paid_at(self, session, deal) -> None:
        svc = DisbursementService(session)
        disbursement = await svc.add(
            deal.id, payee_name="Bob Seller", payee_type="seller", amount=Decimal("7.5")
        )
        assert disbursement.status == "pending"

        paid = await svc.pay(disbursement.id, paid_txid="cc" * 32)
        first_paid_at = paid.paid_at
        assert paid.status == "paid"
        assert (await _latest_event(session, deal.id)).event_type == EventType.DISBURSEMENT_PAID

        again = await svc.pay(disbursement.id)
        assert again.paid_at == first_paid_at
        assert again.paid_txid == "cc" * 32

    @pytest.mark.asyncio
    async def test_list_and_unknown(self, session, deal) -> None:
        svc = DisbursementService(session)
        await svc.add(deal.id, payee_name="First Title Co", payee_type="title")
        assert len(await svc.list_for_deal(deal.id)) == 1
        with pytest.raises(EntityNotFoundError):
            await svc.pay(uuid.uuid4())
