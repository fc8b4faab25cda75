"""Repository classes for database access.

Repositories encapsulate all SQL queries and provide a clean interface
to the service layer. They accept an AsyncSession and never manage
their own transactions (that's the caller's responsibility).

"Latest" lookups on append-only tables order by the storage-assigned
`sequence` column, never by created_at.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Generic, TypeVar

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from deal_room.infrastructure.database.orm_models import (
    AuditEvent,
    Base,
    Contingency,
    Deal,
    Disbursement,
    Document,
    EscrowFunding,
    EscrowPolicy,
    Fund,
    Milestone,
    Party,
    PofAttestation,
    PofRequest,
    PsbtSignature,
    SigningSession,
)

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from deal_room.domain.enums import DealStatus, EventType

ModelT = TypeVar("ModelT", bound=Base)


class _DealScopedRepository(Generic[ModelT]):
    """Shared insert / fetch / list helpers for rows owned by a deal."""

    model: type[ModelT]

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, row: ModelT) -> ModelT:
        """Insert a new row."""
        self._session.add(row)
        await self._session.flush()
        return row

    async def get_by_id(self, row_id: uuid.UUID) -> ModelT | None:
        """Fetch a row by its UUID."""
        result = await self._session.execute(
            select(self.model).where(self.model.id == row_id)
        )
        return result.scalar_one_or_none()

    async def save(self, row: ModelT) -> ModelT:
        """Flush pending changes on a loaded row."""
        await self._session.flush()
        return row

    async def _list(self, deal_id: uuid.UUID, *order_by) -> list[ModelT]:  # noqa: ANN002
        result = await self._session.execute(
            select(self.model).where(self.model.deal_id == deal_id).order_by(*order_by)
        )
        return list(result.scalars().all())

    async def _latest(self, deal_id: uuid.UUID) -> ModelT | None:
        result = await self._session.execute(
            select(self.model)
            .where(self.model.deal_id == deal_id)
            .order_by(self.model.sequence.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()


class _SequencedRepository(_DealScopedRepository[ModelT]):
    """Append-only table whose newest row is the one with the highest sequence."""

    def __init__(self, session: AsyncSession, model: type[ModelT]) -> None:
        super().__init__(session)
        self.model = model

    async def latest(self, deal_id: uuid.UUID) -> ModelT | None:
        return await self._latest(deal_id)


class DealRepository:
    """Data access for deals."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, deal: Deal) -> Deal:
        """Insert a new deal."""
        self._session.add(deal)
        await self._session.flush()
        return deal

    async def get_by_id(self, deal_id: uuid.UUID) -> Deal | None:
        """Fetch a deal (with its parties) by its UUID."""
        result = await self._session.execute(select(Deal).where(Deal.id == deal_id))
        return result.scalar_one_or_none()

    async def list_all(self) -> list[Deal]:
        """Fetch all deals, newest first."""
        result = await self._session.execute(select(Deal).order_by(Deal.created_at.desc()))
        return list(result.scalars().all())

    async def compare_and_set_status(
        self,
        deal: Deal,
        expected: DealStatus,
        new_status: DealStatus,
    ) -> bool:
        """Write a new status only if the stored status still equals `expected`.

        Returns True if this call performed the write. The deal is refreshed
        either way so callers see the stored value.
        """
        result = await self._session.execute(
            update(Deal)
            .where(Deal.id == deal.id, Deal.status == expected.value)
            .values(status=new_status.value, updated_at=datetime.now(UTC))
            .execution_options(synchronize_session=False)
        )
        await self._session.refresh(deal, attribute_names=["status", "updated_at"])
        return result.rowcount == 1

    async def save(self, deal: Deal) -> Deal:
        """Flush field changes made by an explicit override."""
        deal.updated_at = datetime.now(UTC)
        await self._session.flush()
        return deal


class PartyRepository(_DealScopedRepository[Party]):
    """Data access for deal participants."""

    model = Party

    async def list_for_deal(self, deal_id: uuid.UUID) -> list[Party]:
        return await self._list(deal_id, Party.created_at.asc())


class PofRepository:
    """Data access for proof-of-funds requests and attestations."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self.requests = _SequencedRepository(session, PofRequest)
        self.attestations = _SequencedRepository(session, PofAttestation)

    async def add_request(self, request: PofRequest) -> PofRequest:
        return await self.requests.create(request)

    async def add_attestation(self, attestation: PofAttestation) -> PofAttestation:
        return await self.attestations.create(attestation)

    async def latest_request(self, deal_id: uuid.UUID) -> PofRequest | None:
        return await self.requests.latest(deal_id)

    async def latest_attestation(self, deal_id: uuid.UUID) -> PofAttestation | None:
        return await self.attestations.latest(deal_id)

    async def mark_verified(self, attestation: PofAttestation, verified_at: datetime) -> bool:
        """Flip `verified` only if the stored row is still unverified.

        Returns True if this call performed the write. The attestation is
        refreshed either way so callers see the stored verified_at.
        """
        result = await self._session.execute(
            update(PofAttestation)
            .where(PofAttestation.id == attestation.id, PofAttestation.verified.is_(False))
            .values(verified=True, verified_at=verified_at)
            .execution_options(synchronize_session=False)
        )
        await self._session.refresh(attestation, attribute_names=["verified", "verified_at"])
        return result.rowcount == 1


class EscrowRepository:
    """Data access for escrow policies and funding records."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self.policies = _SequencedRepository(session, EscrowPolicy)
        self.fundings = _SequencedRepository(session, EscrowFunding)

    async def add_policy(self, policy: EscrowPolicy) -> EscrowPolicy:
        return await self.policies.create(policy)

    async def add_funding(self, funding: EscrowFunding) -> EscrowFunding:
        return await self.fundings.create(funding)

    async def latest_policy(self, deal_id: uuid.UUID) -> EscrowPolicy | None:
        return await self.policies.latest(deal_id)

    async def latest_funding(self, deal_id: uuid.UUID) -> EscrowFunding | None:
        return await self.fundings.latest(deal_id)


class SigningRepository:
    """Data access for PSBT signing sessions and their signatures."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create_session(self, signing_session: SigningSession) -> SigningSession:
        self._session.add(signing_session)
        await self._session.flush()
        return signing_session

    async def get_session(self, session_id: uuid.UUID) -> SigningSession | None:
        result = await self._session.execute(
            select(SigningSession).where(SigningSession.id == session_id)
        )
        return result.scalar_one_or_none()

    async def list_sessions(self, deal_id: uuid.UUID) -> list[SigningSession]:
        """Fetch a deal's sessions, newest first."""
        result = await self._session.execute(
            select(SigningSession)
            .where(SigningSession.deal_id == deal_id)
            .order_by(SigningSession.sequence.desc())
        )
        return list(result.scalars().all())

    async def add_signature(self, signature: PsbtSignature) -> tuple[PsbtSignature, bool]:
        """Insert a party's signature record unless one is already stored.

        The insert runs in a savepoint: losing the (session, party) unique
        constraint to a concurrent request leaves the outer transaction
        usable and returns the stored record. The flag is True if this call
        inserted the row.
        """
        try:
            async with self._session.begin_nested():
                self._session.add(signature)
                await self._session.flush()
        except IntegrityError:
            existing = await self.get_signature(signature.session_id, signature.party_id)
            if existing is None:
                raise
            return existing, False
        return signature, True

    async def get_signature(
        self, session_id: uuid.UUID, party_id: uuid.UUID
    ) -> PsbtSignature | None:
        """Fetch the signature record of one party on one session."""
        result = await self._session.execute(
            select(PsbtSignature).where(
                PsbtSignature.session_id == session_id,
                PsbtSignature.party_id == party_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_signatures(self, session_id: uuid.UUID) -> list[PsbtSignature]:
        result = await self._session.execute(
            select(PsbtSignature)
            .where(PsbtSignature.session_id == session_id)
            .order_by(PsbtSignature.sequence.asc())
        )
        return list(result.scalars().all())

    async def save(self, row: SigningSession | PsbtSignature) -> None:
        await self._session.flush()


class ContingencyRepository(_DealScopedRepository[Contingency]):
    model = Contingency

    async def list_for_deal(self, deal_id: uuid.UUID) -> list[Contingency]:
        """Soonest deadline first; contingencies without a deadline last."""
        return await self._list(
            deal_id,
            Contingency.deadline.is_(None),
            Contingency.deadline.asc(),
            Contingency.created_at.asc(),
        )


class MilestoneRepository(_DealScopedRepository[Milestone]):
    model = Milestone

    async def list_for_deal(self, deal_id: uuid.UUID) -> list[Milestone]:
        return await self._list(deal_id, Milestone.order_index.asc(), Milestone.created_at.asc())

    async def add_all(self, milestones: list[Milestone]) -> list[Milestone]:
        self._session.add_all(milestones)
        await self._session.flush()
        return milestones


class DocumentRepository(_DealScopedRepository[Document]):
    model = Document

    async def list_for_deal(self, deal_id: uuid.UUID) -> list[Document]:
        """Newest upload first."""
        return await self._list(deal_id, Document.created_at.desc())


class FundRepository(_DealScopedRepository[Fund]):
    model = Fund

    async def list_for_deal(self, deal_id: uuid.UUID) -> list[Fund]:
        return await self._list(deal_id, Fund.created_at.asc())


class DisbursementRepository(_DealScopedRepository[Disbursement]):
    model = Disbursement

    async def list_for_deal(self, deal_id: uuid.UUID) -> list[Disbursement]:
        return await self._list(deal_id, Disbursement.created_at.asc())


class EventRepository:
    """Data access for the append-only audit event log."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def record(
        self,
        deal_id: uuid.UUID,
        event_type: EventType,
        payload: dict,
        actor_party_id: uuid.UUID | None = None,
        external_ref: str | None = None,
        old_status: DealStatus | None = None,
        new_status: DealStatus | None = None,
    ) -> AuditEvent:
        """Append a new audit event. This is the ONLY write operation allowed."""
        evt = AuditEvent(
            deal_id=deal_id,
            event_type=event_type.value,
            actor_party_id=actor_party_id,
            payload=payload,
            external_ref=external_ref,
            old_status=old_status.value if old_status else None,
            new_status=new_status.value if new_status else None,
        )
        self._session.add(evt)
        await self._session.flush()
        return evt

    async def get_by_deal(self, deal_id: uuid.UUID, newest_first: bool = True) -> list[AuditEvent]:
        """Fetch all events for a deal in ledger order."""
        order = AuditEvent.sequence.desc() if newest_first else AuditEvent.sequence.asc()
        result = await self._session.execute(
            select(AuditEvent).where(AuditEvent.deal_id == deal_id).order_by(order)
        )
        return list(result.scalars().all())
