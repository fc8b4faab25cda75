"""Proof-of-Funds Workflow — challenge, attestation, verification, packet.

Signatures are stored and fingerprinted but never cryptographically
checked; "verify" records that a human reviewer accepted the attestation.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from deal_room.domain.enums import DealTrigger, EventType
from deal_room.domain.exceptions import EntityNotFoundError
from deal_room.domain.fingerprints import content_hash, pof_challenge
from deal_room.infrastructure.database.orm_models import PofAttestation, PofRequest
from deal_room.infrastructure.database.repositories import PofRepository
from deal_room.logging_config import get_logger
from deal_room.services.audit_ledger import AuditLedger, entity_payload
from deal_room.services.deal_service import DealService
from deal_room.services.party_service import PartyService

if TYPE_CHECKING:
    import uuid
    from decimal import Decimal

    from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


@dataclass
class PofPacket:
    """Read-only bundle handed to a reviewer."""

    deal_id: uuid.UUID
    property_address: str
    request: PofRequest | None
    attestation: PofAttestation
    signature_fingerprint: str
    generated_at: datetime


class PofService:
    """Runs the proof-of-funds exchange for a deal."""

    def __init__(self, session: AsyncSession) -> None:
        self._pof_repo = PofRepository(session)
        self._deals = DealService(session)
        self._parties = PartyService(session)
        self._ledger = AuditLedger(session)

    async def request_proof(
        self,
        deal_id: uuid.UUID,
        requester_name: str,
        requested_amount: Decimal | None = None,
        requested_amount_usd: Decimal | None = None,
    ) -> PofRequest:
        """Issue a challenge and move a draft deal to pof_pending.

        The challenge embeds the request's own timestamp, so it can be
        rebuilt from the stored row.
        """
        deal = await self._deals.get_deal(deal_id)
        requested_at = datetime.now(UTC)

        request = PofRequest(
            deal_id=deal.id,
            requester_name=requester_name,
            challenge=pof_challenge(
                deal_id=deal.id,
                requester_name=requester_name,
                property_address=deal.property_address,
                requested_at=requested_at,
                requested_amount=requested_amount,
            ),
            requested_amount=requested_amount,
            requested_amount_usd=requested_amount_usd,
            created_at=requested_at,
        )
        request = await self._pof_repo.add_request(request)

        outcome = await self._deals.apply_trigger(deal, DealTrigger.REQUEST_POF)
        await self._ledger.record(
            deal_id=deal.id,
            event_type=EventType.POF_REQUESTED,
            payload=entity_payload("pof_request", after=request),
            outcome=outcome,
        )

        logger.info("pof.requested", deal_id=deal.id, request_id=request.id, applied=outcome.applied)
        return request

    async def attest(
        self,
        deal_id: uuid.UUID,
        party_id: uuid.UUID,
        proof_type: str,
        address_or_descriptor: str | None,
        signature: str | None,
        claimed_total: Decimal | None = None,
    ) -> PofAttestation:
        """Record an unverified claim of control over funds."""
        deal = await self._deals.get_deal(deal_id)
        await self._parties.require_party_in_deal(deal.id, party_id)

        attestation = PofAttestation(
            deal_id=deal.id,
            party_id=party_id,
            proof_type=proof_type,
            address_or_descriptor=address_or_descriptor,
            signature=signature,
            claimed_total=claimed_total,
            verified=False,
        )
        attestation = await self._pof_repo.add_attestation(attestation)

        await self._ledger.record(
            deal_id=deal.id,
            event_type=EventType.POF_ATTESTED,
            payload=entity_payload(
                "pof_attestation",
                after=attestation,
                signature_fingerprint=content_hash(signature),
            ),
            actor_party_id=party_id,
        )

        logger.info("pof.attested", deal_id=deal.id, attestation_id=attestation.id, proof_type=proof_type)
        return attestation

    async def verify(self, deal_id: uuid.UUID) -> PofAttestation:
        """Mark the latest attestation verified and advance pof_pending deals.

        Verification is one-way; a repeated call keeps the first verified_at.
        """
        deal = await self._deals.get_deal(deal_id)
        attestation = await self._pof_repo.latest_attestation(deal.id)
        if attestation is None:
            raise EntityNotFoundError("PofAttestation")

        before = attestation.to_snapshot()
        if not attestation.verified:
            flipped = await self._pof_repo.mark_verified(attestation, datetime.now(UTC))
            if not flipped:
                # Another request verified it first; keep its verified_at.
                before = attestation.to_snapshot()

        outcome = await self._deals.apply_trigger(deal, DealTrigger.VERIFY_POF)
        await self._ledger.record(
            deal_id=deal.id,
            event_type=EventType.POF_VERIFIED,
            payload=entity_payload("pof_attestation", before=before, after=attestation),
            actor_party_id=attestation.party_id,
            outcome=outcome,
        )

        logger.info("pof.verified", deal_id=deal.id, attestation_id=attestation.id, applied=outcome.applied)
        return attestation

    async def packet(self, deal_id: uuid.UUID) -> PofPacket:
        """Bundle the latest request and attestation for review. Read-only."""
        deal = await self._deals.get_deal(deal_id)
        attestation = await self._pof_repo.latest_attestation(deal.id)
        if attestation is None:
            raise EntityNotFoundError("PofAttestation")
        request = await self._pof_repo.latest_request(deal.id)

        return PofPacket(
            deal_id=deal.id,
            property_address=deal.property_address,
            request=request,
            attestation=attestation,
            signature_fingerprint=content_hash(attestation.signature),
            generated_at=datetime.now(UTC),
        )
