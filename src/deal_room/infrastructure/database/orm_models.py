"""SQLAlchemy 2.0 ORM models for the Deal Room.

One table per entity; every table carries a deal_id foreign key with
ON DELETE CASCADE so a deal owns all of its rows.

Design decisions:
    - UUIDs as public identifiers (portable Uuid type: native on PostgreSQL,
      CHAR(32) on SQLite).
    - Append-only tables (pof_requests, pof_attestations, escrow_policies,
      escrow_fundings, psbt_sessions, psbt_signatures, audit_events) use an
      autoincrementing `sequence` primary key assigned by the database.
      "Latest" and ledger order are decided by `sequence`, never by the
      created_at timestamp, so same-millisecond writes stay ordered.
    - Numeric for money amounts (no floating point rounding errors).
    - JSON (JSONB on PostgreSQL) for the audit payload, schema-on-read.
    - CHECK constraints on status columns mirror the domain enums.
    - audit_events is append-only: no UPDATE or DELETE at the application level.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from decimal import Decimal  # noqa: TC003 - needed at runtime by SQLAlchemy Mapped[]

from pydantic_core import to_jsonable_python
from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    event,
    inspect,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

# SQLite only autoincrements INTEGER PRIMARY KEY columns.
SequenceType = BigInteger().with_variant(Integer, "sqlite")
PayloadType = JSON().with_variant(JSONB(), "postgresql")

BTC_AMOUNT = Numeric(16, 8)
USD_AMOUNT = Numeric(14, 2)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    def to_snapshot(self) -> dict:
        """Return a JSON-safe dict of the row's column values.

        Used for audit payloads: the snapshot is what a replay rebuilds.
        """
        values = {
            attr.key: getattr(self, attr.key)
            for attr in inspect(self).mapper.column_attrs
        }
        return to_jsonable_python(values)


class SequencedMixin:
    """Storage-ordered append-only row: database sequence + public UUID."""

    sequence: Mapped[int] = mapped_column(
        SequenceType,
        primary_key=True,
        autoincrement=True,
        comment="Database-assigned insertion order",
    )
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        unique=True,
        nullable=False,
        default=uuid.uuid4,
    )


def _deal_fk() -> Mapped[uuid.UUID]:
    return mapped_column(
        Uuid,
        ForeignKey("deals.id", ondelete="CASCADE"),
        nullable=False,
    )


def _party_fk(comment: str) -> Mapped[uuid.UUID | None]:
    return mapped_column(
        Uuid,
        ForeignKey("parties.id", ondelete="SET NULL"),
        nullable=True,
        default=None,
        comment=comment,
    )


def _created_at() -> Mapped[datetime]:
    return mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )


# ---------------------------------------------------------------------------
# Helper: auto-set updated_at on flush
# ---------------------------------------------------------------------------
def _set_updated_at(mapper, connection, target):  # noqa: ANN001
    """SQLAlchemy event listener that updates `updated_at` before flush."""
    if hasattr(target, "updated_at"):
        target.updated_at = _utcnow()


# ---------------------------------------------------------------------------
# 1. deals
# ---------------------------------------------------------------------------
class Deal(Base):
    """One multi-party real-estate transaction and its lifecycle status."""

    __tablename__ = "deals"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="draft",
        comment="Current lifecycle state (guarded by DealStateMachine)",
    )
    transaction_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="cash_purchase",
    )
    property_address: Mapped[str] = mapped_column(Text, nullable=False, default="")
    purchase_price: Mapped[Decimal | None] = mapped_column(USD_AMOUNT, nullable=True)
    emd_amount: Mapped[Decimal | None] = mapped_column(
        BTC_AMOUNT,
        nullable=True,
        comment="Earnest money deposit",
    )
    deadline_funding: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    deadline_close: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    jurisdiction: Mapped[str | None] = mapped_column(String(64), nullable=True)

    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

    parties: Mapped[list[Party]] = relationship(
        "Party",
        back_populates="deal",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Party.created_at.asc()",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'pof_pending', 'pof_verified', 'escrow_created', "
            "'funded', 'closing', 'closed', 'cancelled')",
            name="ck_deal_valid_status",
        ),
        CheckConstraint(
            "transaction_type IN ('cash_purchase', 'financed')",
            name="ck_deal_transaction_type",
        ),
        Index("idx_deal_status", "status"),
        Index("idx_deal_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Deal id={self.id} status={self.status}>"


# ---------------------------------------------------------------------------
# 2. parties
# ---------------------------------------------------------------------------
class Party(Base):
    """A participant in a deal."""

    __tablename__ = "parties"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    deal_id: Mapped[uuid.UUID] = _deal_fk()

    role: Mapped[str] = mapped_column(String(32), nullable=False)
    display_name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    email: Mapped[str] = mapped_column(String(320), nullable=False, default="")
    phone: Mapped[str | None] = mapped_column(String(40), nullable=True)
    company_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    license_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    signing_authority: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    wallet_descriptor: Mapped[str | None] = mapped_column(Text, nullable=True)
    pubkey: Mapped[str | None] = mapped_column(String(130), nullable=True)

    created_at: Mapped[datetime] = _created_at()

    deal: Mapped[Deal] = relationship("Deal", back_populates="parties")

    __table_args__ = (Index("idx_party_deal", "deal_id"),)

    def __repr__(self) -> str:
        return f"<Party id={self.id} role={self.role} signing={self.signing_authority}>"


# ---------------------------------------------------------------------------
# 3. pof_requests / pof_attestations
# ---------------------------------------------------------------------------
class PofRequest(SequencedMixin, Base):
    """A proof-of-funds challenge issued for a deal."""

    __tablename__ = "pof_requests"

    deal_id: Mapped[uuid.UUID] = _deal_fk()
    requester_name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    challenge: Mapped[str] = mapped_column(Text, nullable=False)
    requested_amount: Mapped[Decimal | None] = mapped_column(BTC_AMOUNT, nullable=True)
    requested_amount_usd: Mapped[Decimal | None] = mapped_column(USD_AMOUNT, nullable=True)
    created_at: Mapped[datetime] = _created_at()

    __table_args__ = (Index("idx_pof_request_deal_seq", "deal_id", "sequence"),)


class PofAttestation(SequencedMixin, Base):
    """A party's claim of control over funds. Verification is one-way."""

    __tablename__ = "pof_attestations"

    deal_id: Mapped[uuid.UUID] = _deal_fk()
    party_id: Mapped[uuid.UUID | None] = _party_fk("Party making the attestation")
    proof_type: Mapped[str] = mapped_column(String(32), nullable=False)
    address_or_descriptor: Mapped[str | None] = mapped_column(Text, nullable=True)
    signature: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Opaque; stored and fingerprinted, never validated",
    )
    claimed_total: Mapped[Decimal | None] = mapped_column(BTC_AMOUNT, nullable=True)
    verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = _created_at()

    __table_args__ = (Index("idx_pof_attestation_deal_seq", "deal_id", "sequence"),)

    def __repr__(self) -> str:
        return f"<PofAttestation id={self.id} verified={self.verified}>"


# ---------------------------------------------------------------------------
# 4. escrow_policies / escrow_fundings
# ---------------------------------------------------------------------------
class EscrowPolicy(SequencedMixin, Base):
    """Custodial arrangement for the deposit. Replaced, never mutated."""

    __tablename__ = "escrow_policies"

    deal_id: Mapped[uuid.UUID] = _deal_fk()
    policy_type: Mapped[str] = mapped_column(String(32), nullable=False)
    descriptor: Mapped[str | None] = mapped_column(Text, nullable=True)
    address: Mapped[str | None] = mapped_column(String(100), nullable=True)
    refund_timelock: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    terms_hash: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="SHA-256 of the canonical policy submission",
    )
    created_at: Mapped[datetime] = _created_at()

    __table_args__ = (Index("idx_escrow_policy_deal_seq", "deal_id", "sequence"),)


class EscrowFunding(SequencedMixin, Base):
    """A reported funding transaction for the escrow address."""

    __tablename__ = "escrow_fundings"

    deal_id: Mapped[uuid.UUID] = _deal_fk()
    txid: Mapped[str] = mapped_column(String(64), nullable=False)
    amount: Mapped[Decimal | None] = mapped_column(BTC_AMOUNT, nullable=True)
    confirmations: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    funded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = _created_at()

    __table_args__ = (
        CheckConstraint("confirmations >= 0", name="ck_funding_confirmations"),
        Index("idx_escrow_funding_deal_seq", "deal_id", "sequence"),
    )


# ---------------------------------------------------------------------------
# 5. psbt_sessions / psbt_signatures
# ---------------------------------------------------------------------------
class SigningSession(SequencedMixin, Base):
    """A multi-party approval process over an opaque PSBT payload."""

    __tablename__ = "psbt_sessions"

    deal_id: Mapped[uuid.UUID] = _deal_fk()
    session_type: Mapped[str] = mapped_column(String(32), nullable=False)
    psbt_payload: Mapped[str | None] = mapped_column(Text, nullable=True)
    psbt_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")
    created_by_party_id: Mapped[uuid.UUID | None] = _party_fk("Party that opened the session")
    finalized_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = _created_at()

    signatures: Mapped[list[PsbtSignature]] = relationship(
        "PsbtSignature",
        back_populates="session",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="PsbtSignature.sequence.asc()",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'signing', 'finalized')",
            name="ck_psbt_session_status",
        ),
        Index("idx_psbt_session_deal_seq", "deal_id", "sequence"),
    )

    def __repr__(self) -> str:
        return f"<SigningSession id={self.id} type={self.session_type} status={self.status}>"


class PsbtSignature(SequencedMixin, Base):
    """One party's signature slot on a signing session."""

    __tablename__ = "psbt_signatures"

    session_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("psbt_sessions.id", ondelete="CASCADE"),
        nullable=False,
    )
    deal_id: Mapped[uuid.UUID] = _deal_fk()
    party_id: Mapped[uuid.UUID | None] = _party_fk("Party asked to sign")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="requested")
    signed_payload: Mapped[str | None] = mapped_column(Text, nullable=True)
    signed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = _created_at()

    session: Mapped[SigningSession] = relationship(
        "SigningSession", back_populates="signatures"
    )

    __table_args__ = (
        UniqueConstraint("session_id", "party_id", name="uq_psbt_signature_party"),
        CheckConstraint("status IN ('requested', 'signed')", name="ck_psbt_signature_status"),
        Index("idx_psbt_signature_deal_seq", "deal_id", "sequence"),
    )


# ---------------------------------------------------------------------------
# 6. contingencies / milestones
# ---------------------------------------------------------------------------
class Contingency(Base):
    __tablename__ = "contingencies"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    deal_id: Mapped[uuid.UUID] = _deal_fk()
    contingency_type: Mapped[str] = mapped_column(String(64), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    deadline: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    satisfied_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    waived_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    waived_by_party_id: Mapped[uuid.UUID | None] = _party_fk("Party that waived")
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = _created_at()

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'satisfied', 'waived', 'failed')",
            name="ck_contingency_status",
        ),
        Index("idx_contingency_deal", "deal_id"),
    )


class Milestone(Base):
    __tablename__ = "milestones"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    deal_id: Mapped[uuid.UUID] = _deal_fk()
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    due_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_by_party_id: Mapped[uuid.UUID | None] = _party_fk("Party that completed it")
    is_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    order_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = _created_at()

    __table_args__ = (Index("idx_milestone_deal", "deal_id"),)


# ---------------------------------------------------------------------------
# 7. documents / funds / disbursements
# ---------------------------------------------------------------------------
class Document(Base):
    __tablename__ = "documents"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    deal_id: Mapped[uuid.UUID] = _deal_fk()
    document_type: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(300), nullable=False)
    uploaded_by_party_id: Mapped[uuid.UUID | None] = _party_fk("Uploader")
    file_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    file_hash: Mapped[str | None] = mapped_column(String(128), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")
    requires_signatures: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = _created_at()

    __table_args__ = (
        CheckConstraint("status IN ('draft', 'active', 'signed')", name="ck_document_status"),
        Index("idx_document_deal", "deal_id"),
    )


class Fund(Base):
    __tablename__ = "funds"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    deal_id: Mapped[uuid.UUID] = _deal_fk()
    fund_type: Mapped[str] = mapped_column(String(64), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    amount: Mapped[Decimal | None] = mapped_column(BTC_AMOUNT, nullable=True)
    amount_usd: Mapped[Decimal | None] = mapped_column(USD_AMOUNT, nullable=True)
    escrow_policy_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("escrow_policies.id", ondelete="SET NULL"),
        nullable=True,
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    funded_txid: Mapped[str | None] = mapped_column(String(64), nullable=True)
    released_txid: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = _created_at()

    __table_args__ = (
        CheckConstraint("status IN ('pending', 'funded', 'released')", name="ck_fund_status"),
        Index("idx_fund_deal", "deal_id"),
    )


class Disbursement(Base):
    __tablename__ = "disbursements"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    deal_id: Mapped[uuid.UUID] = _deal_fk()
    payee_name: Mapped[str] = mapped_column(String(200), nullable=False)
    payee_type: Mapped[str] = mapped_column(String(64), nullable=False)
    amount: Mapped[Decimal | None] = mapped_column(BTC_AMOUNT, nullable=True)
    amount_usd: Mapped[Decimal | None] = mapped_column(USD_AMOUNT, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    address: Mapped[str | None] = mapped_column(String(100), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    paid_txid: Mapped[str | None] = mapped_column(String(64), nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = _created_at()

    __table_args__ = (
        CheckConstraint("status IN ('pending', 'paid')", name="ck_disbursement_status"),
        Index("idx_disbursement_deal", "deal_id"),
    )


# ---------------------------------------------------------------------------
# 8. audit_events (Append-Only Ledger)
# ---------------------------------------------------------------------------
class AuditEvent(SequencedMixin, Base):
    """Immutable record of one mutation in a deal's history.

    This table is APPEND-ONLY. No UPDATE or DELETE operations are permitted
    at the application level. Replaying rows in `sequence` order rebuilds
    the deal.
    """

    __tablename__ = "audit_events"

    deal_id: Mapped[uuid.UUID] = _deal_fk()
    event_type: Mapped[str] = mapped_column(
        String(40),
        nullable=False,
        comment="EventType value (e.g., deal.created, pof.verified)",
    )
    actor_party_id: Mapped[uuid.UUID | None] = _party_fk("Party that triggered the event")
    payload: Mapped[dict] = mapped_column(
        PayloadType,
        nullable=False,
        default=dict,
        comment="Before/after snapshots and deal status outcome",
    )
    external_ref: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
        comment="External reference such as a transaction id",
    )
    old_status: Mapped[str | None] = mapped_column(
        String(20),
        nullable=True,
        comment="Deal status before this event (null when not consulted)",
    )
    new_status: Mapped[str | None] = mapped_column(
        String(20),
        nullable=True,
        comment="Deal status after this event (null when not consulted)",
    )
    created_at: Mapped[datetime] = _created_at()

    __table_args__ = (
        Index("idx_event_deal_seq", "deal_id", "sequence"),
        Index("idx_event_type", "event_type"),
    )

    def __repr__(self) -> str:
        return (
            f"<AuditEvent seq={self.sequence} type={self.event_type} "
            f"{self.old_status}->{self.new_status}>"
        )


# ---------------------------------------------------------------------------
# Register the auto-update listener for updated_at
# ---------------------------------------------------------------------------
event.listen(Deal, "before_update", _set_updated_at)
