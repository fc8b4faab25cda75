"""Signing Workflow — PSBT sessions and per-party signatures.

A session's PSBT payload is opaque: it is hashed, stored and handed back,
never parsed. Session status follows SigningSessionStateMachine
(draft -> signing -> finalized, or draft -> finalized directly).

Deal status effects:
    creating a `release` or `closing` session   -> open_settlement
    finalizing a `refund` session              -> finalize_refund
    finalizing any other session type          -> finalize_settlement
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from deal_room.config import get_settings
from deal_room.domain.enums import EventType, SessionStatus, SignatureStatus
from deal_room.domain.exceptions import EntityNotFoundError, InvalidStateTransitionError
from deal_room.domain.fingerprints import content_hash
from deal_room.domain.state_machine import (
    SESSION_EVENTS,
    SigningSessionStateMachine,
    TransitionOutcome,
    transition_to,
    trigger_for_session_created,
    trigger_for_session_finalized,
)
from deal_room.infrastructure.database.orm_models import PsbtSignature, SigningSession
from deal_room.infrastructure.database.repositories import PartyRepository, SigningRepository
from deal_room.logging_config import get_logger
from deal_room.services.audit_ledger import AuditLedger, entity_payload
from deal_room.services.deal_service import DealService
from deal_room.services.party_service import PartyService

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


class SigningService:
    """Coordinates multi-party PSBT signing for a deal."""

    def __init__(self, session: AsyncSession) -> None:
        self._signing_repo = SigningRepository(session)
        self._party_repo = PartyRepository(session)
        self._deals = DealService(session)
        self._parties = PartyService(session)
        self._ledger = AuditLedger(session)

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    async def create_session(
        self,
        deal_id: uuid.UUID,
        session_type: str,
        psbt_payload: str | None,
        created_by_party_id: uuid.UUID | None = None,
    ) -> SigningSession:
        """Open a draft session; release/closing sessions move funded deals to closing."""
        deal = await self._deals.get_deal(deal_id)
        await self._parties.require_party_in_deal(deal.id, created_by_party_id)

        signing_session = SigningSession(
            deal_id=deal.id,
            session_type=session_type,
            psbt_payload=psbt_payload,
            psbt_hash=content_hash(psbt_payload),
            status=SessionStatus.DRAFT.value,
            created_by_party_id=created_by_party_id,
            signatures=[],
        )
        signing_session = await self._signing_repo.create_session(signing_session)

        trigger = trigger_for_session_created(session_type)
        if trigger is not None:
            outcome = await self._deals.apply_trigger(deal, trigger)
        else:
            outcome = TransitionOutcome.unchanged(deal.status)

        await self._ledger.record(
            deal_id=deal.id,
            event_type=EventType.PSBT_CREATED,
            payload=entity_payload("psbt_session", after=signing_session),
            actor_party_id=created_by_party_id,
            outcome=outcome,
        )

        logger.info(
            "psbt.created",
            deal_id=deal.id,
            session_id=signing_session.id,
            session_type=session_type,
            applied=outcome.applied,
        )
        return signing_session

    async def get_session(self, session_id: uuid.UUID) -> SigningSession:
        """Get a session (with its signatures) or raise."""
        signing_session = await self._signing_repo.get_session(session_id)
        if signing_session is None:
            raise EntityNotFoundError("SigningSession", session_id)
        return signing_session

    async def list_sessions(self, deal_id: uuid.UUID) -> list[SigningSession]:
        deal = await self._deals.get_deal(deal_id)
        return await self._signing_repo.list_sessions(deal.id)

    async def list_signatures(self, session_id: uuid.UUID) -> list[PsbtSignature]:
        signing_session = await self.get_session(session_id)
        return await self._signing_repo.list_signatures(signing_session.id)

    # ------------------------------------------------------------------
    # Signatures
    # ------------------------------------------------------------------

    async def request_signature(self, session_id: uuid.UUID, party_id: uuid.UUID) -> PsbtSignature:
        """Ask a party to sign.

        A party has at most one signature record per session: asking again
        returns the existing record (and is still audited). The entry also
        carries the session snapshot, since the first request opens it.
        """
        signing_session = await self.get_session(session_id)
        await self._parties.require_party_in_deal(signing_session.deal_id, party_id)
        self._ensure_not_finalized(signing_session, SessionStatus.SIGNING)

        session_before = signing_session.to_snapshot()
        if transition_to(
            SigningSessionStateMachine,
            SESSION_EVENTS,
            signing_session.status,
            SessionStatus.SIGNING.value,
        ):
            signing_session.status = SessionStatus.SIGNING.value

        signature = await self._signing_repo.get_signature(signing_session.id, party_id)
        duplicate = signature is not None
        if signature is None:
            signature, created = await self._signing_repo.add_signature(
                PsbtSignature(
                    session_id=signing_session.id,
                    deal_id=signing_session.deal_id,
                    party_id=party_id,
                    status=SignatureStatus.REQUESTED.value,
                )
            )
            duplicate = not created
            if created:
                signing_session.signatures.append(signature)
        await self._signing_repo.save(signing_session)

        await self._ledger.record(
            deal_id=signing_session.deal_id,
            event_type=EventType.PSBT_SIGNATURE_REQUESTED,
            payload=entity_payload(
                "psbt_signature",
                before=signature if duplicate else None,
                after=signature,
                session_id=signing_session.id,
                session_status={"before": session_before["status"], "after": signing_session.status},
                related={"psbt_session": signing_session.to_snapshot()},
                duplicate=duplicate,
            ),
            actor_party_id=party_id,
        )

        logger.info(
            "psbt.signature_requested",
            session_id=signing_session.id,
            party_id=party_id,
            duplicate=duplicate,
        )
        return signature

    async def submit_signature(
        self,
        session_id: uuid.UUID,
        party_id: uuid.UUID,
        signed_payload: str,
    ) -> PsbtSignature:
        """Record a party's signed PSBT against its outstanding request."""
        signing_session = await self.get_session(session_id)
        await self._parties.require_party_in_deal(signing_session.deal_id, party_id)
        self._ensure_not_finalized(signing_session, SignatureStatus.SIGNED)

        signature = await self._signing_repo.get_signature(signing_session.id, party_id)
        if signature is None:
            raise EntityNotFoundError("PsbtSignature")
        if signature.status == SignatureStatus.SIGNED:
            raise InvalidStateTransitionError(
                signature.status, SignatureStatus.SIGNED.value, "signature already submitted"
            )

        before = signature.to_snapshot()
        signature.status = SignatureStatus.SIGNED.value
        signature.signed_payload = signed_payload
        signature.signed_at = datetime.now(UTC)
        await self._signing_repo.save(signature)

        await self._ledger.record(
            deal_id=signing_session.deal_id,
            event_type=EventType.PSBT_SIGNATURE_SUBMITTED,
            payload=entity_payload(
                "psbt_signature",
                before=before,
                after=signature,
                session_id=signing_session.id,
                signed_payload_hash=content_hash(signed_payload),
            ),
            actor_party_id=party_id,
        )

        logger.info("psbt.signature_submitted", session_id=signing_session.id, party_id=party_id)
        return signature

    # ------------------------------------------------------------------
    # Finalization
    # ------------------------------------------------------------------

    async def finalize(
        self,
        session_id: uuid.UUID,
        external_ref: str | None = None,
        party_id: uuid.UUID | None = None,
    ) -> SigningSession:
        """Finalize a session (idempotent) and settle or refund the deal."""
        signing_session = await self.get_session(session_id)
        await self._parties.require_party_in_deal(signing_session.deal_id, party_id)
        deal = await self._deals.get_deal(signing_session.deal_id)

        before = signing_session.to_snapshot()
        if transition_to(
            SigningSessionStateMachine,
            SESSION_EVENTS,
            signing_session.status,
            SessionStatus.FINALIZED.value,
        ):
            if get_settings().signing_require_all_signatures:
                await self._ensure_fully_signed(signing_session)
            signing_session.status = SessionStatus.FINALIZED.value
            signing_session.finalized_at = datetime.now(UTC)
            await self._signing_repo.save(signing_session)

        outcome = await self._deals.apply_trigger(
            deal, trigger_for_session_finalized(signing_session.session_type)
        )
        await self._ledger.record(
            deal_id=deal.id,
            event_type=EventType.PSBT_FINALIZED,
            payload=entity_payload("psbt_session", before=before, after=signing_session),
            actor_party_id=party_id,
            external_ref=external_ref,
            outcome=outcome,
        )

        logger.info(
            "psbt.finalized",
            deal_id=deal.id,
            session_id=signing_session.id,
            session_type=signing_session.session_type,
            external_ref=external_ref,
            applied=outcome.applied,
        )
        return signing_session

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _ensure_not_finalized(signing_session: SigningSession, attempted: str) -> None:
        if signing_session.status == SessionStatus.FINALIZED:
            raise InvalidStateTransitionError(
                signing_session.status, str(attempted), "session is finalized"
            )

    async def _ensure_fully_signed(self, signing_session: SigningSession) -> None:
        """Every signing-authority party of the deal must have signed."""
        parties = await self._party_repo.list_for_deal(signing_session.deal_id)
        signatures = await self._signing_repo.list_signatures(signing_session.id)
        signed = {s.party_id for s in signatures if s.status == SignatureStatus.SIGNED}
        missing = [p.display_name or str(p.id) for p in parties if p.signing_authority and p.id not in signed]
        if missing:
            raise InvalidStateTransitionError(
                signing_session.status,
                SessionStatus.FINALIZED.value,
                f"missing signatures from: {', '.join(missing)}",
            )
