"""Tests for the proof-of-funds, escrow and PSBT signing workflows."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from decimal import Decimal

import pytest

from deal_room.config import get_settings
from deal_room.domain.enums import DealStatus, EventType, SessionStatus, SessionType, SignatureStatus
from deal_room.domain.exceptions import EntityNotFoundError, InvalidStateTransitionError
from deal_room.domain.fingerprints import content_hash, pof_challenge, terms_hash
from deal_room.infrastructure.database.repositories import PofRepository, SigningRepository
from deal_room.services.audit_ledger import AuditLedger
from deal_room.services.deal_service import DealService
from deal_room.services.escrow_service import EscrowService
from deal_room.services.party_service import PartyService
from deal_room.services.pof_service import PofService
from deal_room.services.signing_service import SigningService

PSBT = "cHNidP8BAHECAAAAAQ=="


# ---------------------------------------------------------------------------
# Parties
# ---------------------------------------------------------------------------


class TestParties:
    @pytest.mark.asyncio
    async def test_signing_authority_defaults_by_role(self, session, deal, buyer, title) -> None:
        agent = await PartyService(session).invite(
            deal.id, role="buyer_agent", display_name="Dana Agent", email="dana@realty.example"
        )
        assert buyer.signing_authority is True
        assert title.signing_authority is True
        assert agent.signing_authority is False

    @pytest.mark.asyncio
    async def test_explicit_signing_authority_wins(self, session, deal) -> None:
        lender = await PartyService(session).invite(
            deal.id, role="lender", display_name="Big Bank", email="loans@bank.example", signing_authority=True
        )
        assert lender.signing_authority is True

    @pytest.mark.asyncio
    async def test_invited_party_is_its_own_actor(self, session, deal, buyer) -> None:
        latest = (await AuditLedger(session).history(deal.id))[0]
        assert latest.event_type == EventType.PARTY_INVITED
        assert latest.actor_party_id == buyer.id

    @pytest.mark.asyncio
    async def test_list_parties(self, session, deal, buyer, seller) -> None:
        parties = await PartyService(session).list_parties(deal.id)
        assert {p.id for p in parties} == {buyer.id, seller.id}

    @pytest.mark.asyncio
    async def test_attach_wallet_only_touches_given_fields(self, session, buyer) -> None:
        svc = PartyService(session)
        await svc.attach_wallet(buyer.id, wallet_descriptor="wpkh([aa]xpub/0/*)")
        party = await svc.attach_wallet(buyer.id, pubkey="03" + "22" * 32)
        assert party.wallet_descriptor == "wpkh([aa]xpub/0/*)"
        assert party.pubkey == "03" + "22" * 32

    @pytest.mark.asyncio
    async def test_attach_wallet_unknown_party(self, session) -> None:
        with pytest.raises(EntityNotFoundError):
            await PartyService(session).attach_wallet(uuid.uuid4(), pubkey="02")

    @pytest.mark.asyncio
    async def test_invite_into_unknown_deal(self, session) -> None:
        with pytest.raises(EntityNotFoundError) as exc_info:
            await PartyService(session).invite(uuid.uuid4(), role="buyer", display_name="X", email="x@y.z")
        assert exc_info.value.entity == "Deal"


# ---------------------------------------------------------------------------
# Proof of funds
# ---------------------------------------------------------------------------


class TestProofOfFunds:
    @pytest.mark.asyncio
    async def test_challenge_can_be_rebuilt_from_the_row(self, session, deal) -> None:
        request = await PofService(session).request_proof(deal.id, "Alice Buyer", Decimal("1.5"))
        assert deal.status == DealStatus.POF_PENDING
        assert request.challenge == pof_challenge(
            deal.id, "Alice Buyer", deal.property_address, request.created_at, request.requested_amount
        )

    @pytest.mark.asyncio
    async def test_attestation_is_unverified_until_reviewed(self, session, deal, buyer) -> None:
        svc = PofService(session)
        await svc.request_proof(deal.id, "Alice Buyer")
        attestation = await svc.attest(deal.id, buyer.id, "bip322_message", "bc1qbuyer", "SIG")
        assert attestation.verified is False
        assert deal.status == DealStatus.POF_PENDING

        latest = (await AuditLedger(session).history(deal.id))[0]
        assert latest.payload["signature_fingerprint"] == content_hash("SIG")
        assert latest.actor_party_id == buyer.id

    @pytest.mark.asyncio
    async def test_verify_uses_latest_attestation_and_keeps_first_timestamp(
        self, session, deal, buyer
    ) -> None:
        svc = PofService(session)
        await svc.request_proof(deal.id, "Alice Buyer")
        await svc.attest(deal.id, buyer.id, "bip322_message", "bc1qold", "OLD")
        newest = await svc.attest(deal.id, buyer.id, "bip322_message", "bc1qnew", "NEW")

        verified = await svc.verify(deal.id)
        assert verified.id == newest.id
        assert verified.verified is True
        assert deal.status == DealStatus.POF_VERIFIED

        first_verified_at = verified.verified_at
        again = await svc.verify(deal.id)
        assert again.verified_at == first_verified_at
        assert deal.status == DealStatus.POF_VERIFIED

    @pytest.mark.asyncio
    async def test_concurrent_verify_keeps_the_first_timestamp(
        self, session, session_factory, deal, buyer
    ) -> None:
        """Two sessions verify the same attestation; only the first write sticks."""
        svc = PofService(session)
        await svc.request_proof(deal.id, "Alice Buyer")
        await svc.attest(deal.id, buyer.id, "bip322_message", "bc1qbuyer", "SIG")
        await session.commit()

        async with session_factory() as other:
            # The second session reads before the first one verifies.
            await DealService(other).get_deal(deal.id)
            stale = await PofRepository(other).latest_attestation(deal.id)
            assert stale.verified is False

            first = await svc.verify(deal.id)
            await session.commit()

            second = await PofService(other).verify(deal.id)
            await other.commit()

        await session.refresh(first)
        assert second.id == first.id
        assert second.verified is True
        assert second.verified_at == first.verified_at

        events = [
            e for e in await AuditLedger(session).history(deal.id) if e.event_type == EventType.POF_VERIFIED
        ]
        assert len(events) == 2
        assert sorted(e.payload["deal_status"]["applied"] for e in events) == [False, True]
        assert len({e.payload["after"]["verified_at"] for e in events}) == 1

    @pytest.mark.asyncio
    async def test_verify_without_attestation(self, session, deal) -> None:
        with pytest.raises(EntityNotFoundError) as exc_info:
            await PofService(session).verify(deal.id)
        assert exc_info.value.entity == "PofAttestation"

    @pytest.mark.asyncio
    async def test_attest_rejects_party_of_another_deal(self, session, deal, sample_deal_data) -> None:
        other = await DealService(session).create_deal(**sample_deal_data)
        outsider = await PartyService(session).invite(other.id, role="buyer", display_name="Eve", email="e@x.io")
        with pytest.raises(EntityNotFoundError):
            await PofService(session).attest(deal.id, outsider.id, "bip322_message", None, None)

    @pytest.mark.asyncio
    async def test_packet_bundles_latest_request_and_attestation(self, session, deal, buyer) -> None:
        svc = PofService(session)
        request = await svc.request_proof(deal.id, "Alice Buyer")
        attestation = await svc.attest(deal.id, buyer.id, "utxo_snapshot", "bc1qbuyer", "SIG", Decimal("2"))

        events_before = len(await AuditLedger(session).history(deal.id))
        packet = await svc.packet(deal.id)
        assert packet.property_address == deal.property_address
        assert packet.request.id == request.id
        assert packet.attestation.id == attestation.id
        assert packet.signature_fingerprint == content_hash("SIG")
        # Read-only: no audit entry.
        assert len(await AuditLedger(session).history(deal.id)) == events_before

    @pytest.mark.asyncio
    async def test_packet_without_attestation(self, session, deal) -> None:
        await PofService(session).request_proof(deal.id, "Alice Buyer")
        with pytest.raises(EntityNotFoundError):
            await PofService(session).packet(deal.id)


# ---------------------------------------------------------------------------
# Escrow
# ---------------------------------------------------------------------------


class TestEscrow:
    @pytest.mark.asyncio
    async def test_policy_defaults_and_terms_hash(self, session, deal, buyer, advance_deal) -> None:
        await advance_deal(deal, buyer, DealStatus.POF_VERIFIED)
        settings = get_settings()

        policy = await EscrowService(session).create_policy(deal.id)
        assert deal.status == DealStatus.ESCROW_CREATED
        assert policy.policy_type == settings.escrow_policy_type
        assert policy.descriptor == settings.escrow_default_descriptor
        assert policy.terms_hash == terms_hash(
            {
                "deal_id": str(deal.id),
                "policy_type": settings.escrow_policy_type,
                "descriptor": settings.escrow_default_descriptor,
                "address": settings.escrow_default_address,
                "refund_timelock": None,
            }
        )

    @pytest.mark.asyncio
    async def test_newest_policy_is_current(self, session, deal) -> None:
        svc = EscrowService(session)
        await svc.create_policy(deal.id, descriptor="wsh(old)")
        timelock = datetime(2027, 1, 1, tzinfo=UTC)
        newest = await svc.create_policy(deal.id, descriptor="wsh(new)", refund_timelock=timelock)
        assert (await svc.current_policy(deal.id)).id == newest.id
        # The guard failed both times: the deal never left draft.
        assert deal.status == DealStatus.DRAFT

    @pytest.mark.asyncio
    async def test_current_policy_missing(self, session, deal) -> None:
        with pytest.raises(EntityNotFoundError) as exc_info:
            await EscrowService(session).current_policy(deal.id)
        assert exc_info.value.entity == "EscrowPolicy"

    @pytest.mark.asyncio
    async def test_receipt_requires_funding(self, session, deal) -> None:
        svc = EscrowService(session)
        await svc.create_policy(deal.id)
        with pytest.raises(EntityNotFoundError) as exc_info:
            await svc.receipt(deal.id)
        assert exc_info.value.entity == "EscrowFunding"

    @pytest.mark.asyncio
    async def test_receipt_joins_latest_funding_and_policy(self, session, deal, buyer, advance_deal) -> None:
        await advance_deal(deal, buyer, DealStatus.FUNDED)
        svc = EscrowService(session)
        top_up = await svc.record_funding(deal.id, "99" * 32, Decimal("0.01"), confirmations=3)

        receipt = await svc.receipt(deal.id)
        assert receipt.funding.id == top_up.id
        assert receipt.funding.confirmations == 3
        assert receipt.policy.id == (await svc.current_policy(deal.id)).id
        assert deal.status == DealStatus.FUNDED

    @pytest.mark.asyncio
    async def test_receipt_without_policy(self, session, deal) -> None:
        await EscrowService(session).record_funding(deal.id, "12" * 32)
        receipt = await EscrowService(session).receipt(deal.id)
        assert receipt.policy is None


# ---------------------------------------------------------------------------
# PSBT signing
# ---------------------------------------------------------------------------


class TestSigning:
    @pytest.mark.asyncio
    async def test_session_stores_payload_hash(self, session, deal) -> None:
        signing_session = await SigningService(session).create_session(deal.id, "funding", PSBT)
        assert signing_session.status == SessionStatus.DRAFT
        assert signing_session.psbt_hash == content_hash(PSBT)

    @pytest.mark.asyncio
    async def test_request_opens_signing_and_is_idempotent_per_party(self, session, deal, seller) -> None:
        svc = SigningService(session)
        signing_session = await svc.create_session(deal.id, "funding", PSBT)

        first = await svc.request_signature(signing_session.id, seller.id)
        assert signing_session.status == SessionStatus.SIGNING
        assert first.status == SignatureStatus.REQUESTED

        second = await svc.request_signature(signing_session.id, seller.id)
        assert second.id == first.id
        assert len(await svc.list_signatures(signing_session.id)) == 1

        latest = (await AuditLedger(session).history(deal.id))[0]
        assert latest.event_type == EventType.PSBT_SIGNATURE_REQUESTED
        assert latest.payload["duplicate"] is True

    @pytest.mark.asyncio
    async def test_request_racing_an_insert_returns_stored_record(
        self, session, deal, seller, monkeypatch
    ) -> None:
        svc = SigningService(session)
        signing_session = await svc.create_session(deal.id, "funding", PSBT)
        first = await svc.request_signature(signing_session.id, seller.id)

        # The next lookup misses the stored row, as a concurrent request would.
        original = SigningRepository.get_signature
        calls = 0

        async def _miss_once(self, session_id, party_id):  # noqa: ANN001, ANN202
            nonlocal calls
            calls += 1
            if calls == 1:
                return None
            return await original(self, session_id, party_id)

        monkeypatch.setattr(SigningRepository, "get_signature", _miss_once)

        again = await svc.request_signature(signing_session.id, seller.id)
        assert again.id == first.id
        assert len(await svc.list_signatures(signing_session.id)) == 1

        latest = (await AuditLedger(session).history(deal.id))[0]
        assert latest.event_type == EventType.PSBT_SIGNATURE_REQUESTED
        assert latest.payload["duplicate"] is True

    @pytest.mark.asyncio
    async def test_submit_without_request(self, session, deal, seller) -> None:
        svc = SigningService(session)
        signing_session = await svc.create_session(deal.id, "funding", PSBT)
        with pytest.raises(EntityNotFoundError) as exc_info:
            await svc.submit_signature(signing_session.id, seller.id, "signed")
        assert exc_info.value.entity == "PsbtSignature"

    @pytest.mark.asyncio
    async def test_submit_twice_is_rejected(self, session, deal, seller) -> None:
        svc = SigningService(session)
        signing_session = await svc.create_session(deal.id, "funding", PSBT)
        await svc.request_signature(signing_session.id, seller.id)

        signed = await svc.submit_signature(signing_session.id, seller.id, "cHNidP8Bsigned")
        assert signed.status == SignatureStatus.SIGNED
        assert signed.signed_at is not None

        with pytest.raises(InvalidStateTransitionError):
            await svc.submit_signature(signing_session.id, seller.id, "cHNidP8Bagain")

    @pytest.mark.asyncio
    async def test_finalized_session_rejects_signature_work(self, session, deal, seller) -> None:
        svc = SigningService(session)
        signing_session = await svc.create_session(deal.id, "funding", PSBT)
        await svc.request_signature(signing_session.id, seller.id)
        await svc.finalize(signing_session.id)

        with pytest.raises(InvalidStateTransitionError):
            await svc.request_signature(signing_session.id, seller.id)
        with pytest.raises(InvalidStateTransitionError):
            await svc.submit_signature(signing_session.id, seller.id, "late")

    @pytest.mark.asyncio
    async def test_finalize_is_idempotent(self, session, deal) -> None:
        svc = SigningService(session)
        signing_session = await svc.create_session(deal.id, "funding", PSBT)
        await svc.finalize(signing_session.id, external_ref="ab" * 32)
        finalized_at = signing_session.finalized_at

        again = await svc.finalize(signing_session.id)
        assert again.status == SessionStatus.FINALIZED
        assert again.finalized_at == finalized_at

        latest = (await AuditLedger(session).history(deal.id))[0]
        assert latest.event_type == EventType.PSBT_FINALIZED

    @pytest.mark.asyncio
    async def test_request_from_foreign_party(self, session, deal, sample_deal_data) -> None:
        other = await DealService(session).create_deal(**sample_deal_data)
        outsider = await PartyService(session).invite(other.id, role="seller", display_name="Eve", email="e@x.io")
        signing_session = await SigningService(session).create_session(deal.id, "funding", PSBT)
        with pytest.raises(EntityNotFoundError):
            await SigningService(session).request_signature(signing_session.id, outsider.id)

    @pytest.mark.asyncio
    async def test_unknown_session(self, session) -> None:
        with pytest.raises(EntityNotFoundError) as exc_info:
            await SigningService(session).get_session(uuid.uuid4())
        assert exc_info.value.entity == "SigningSession"

    @pytest.mark.asyncio
    async def test_require_all_signatures(self, session, deal, buyer, seller, monkeypatch) -> None:
        monkeypatch.setattr(get_settings(), "signing_require_all_signatures", True)
        svc = SigningService(session)
        signing_session = await svc.create_session(deal.id, SessionType.FUNDING.value, PSBT)
        await svc.request_signature(signing_session.id, buyer.id)
        await svc.submit_signature(signing_session.id, buyer.id, "buyer-signed")

        with pytest.raises(InvalidStateTransitionError, match="Bob Seller"):
            await svc.finalize(signing_session.id)
        assert signing_session.status == SessionStatus.SIGNING

        await svc.request_signature(signing_session.id, seller.id)
        await svc.submit_signature(signing_session.id, seller.id, "seller-signed")
        finalized = await svc.finalize(signing_session.id)
        assert finalized.status == SessionStatus.FINALIZED
