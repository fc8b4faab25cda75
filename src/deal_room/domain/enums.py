"""Domain enumerations for the Deal Room.

These enums define the canonical states and types used throughout the system.
They are framework-agnostic (no SQLAlchemy, no FastAPI imports).
"""

import enum


class DealStatus(enum.StrEnum):
    """Lifecycle states of a deal, in forward order.

    CANCELLED is a side state reachable only from CLOSING.
    See domain/state_machine.py for the transition table.
    """

    DRAFT = "draft"
    POF_PENDING = "pof_pending"
    POF_VERIFIED = "pof_verified"
    ESCROW_CREATED = "escrow_created"
    FUNDED = "funded"
    CLOSING = "closing"
    CLOSED = "closed"
    CANCELLED = "cancelled"


DEAL_STATUS_ORDER: tuple[DealStatus, ...] = (
    DealStatus.DRAFT,
    DealStatus.POF_PENDING,
    DealStatus.POF_VERIFIED,
    DealStatus.ESCROW_CREATED,
    DealStatus.FUNDED,
    DealStatus.CLOSING,
    DealStatus.CLOSED,
)


class DealTrigger(enum.StrEnum):
    """Sub-workflow signals that may advance a deal's status.

    Values are the event names on DealStateMachine.
    """

    REQUEST_POF = "request_pof"
    VERIFY_POF = "verify_pof"
    CREATE_ESCROW_POLICY = "create_escrow_policy"
    RECORD_FUNDING = "record_funding"
    OPEN_SETTLEMENT = "open_settlement"
    FINALIZE_SETTLEMENT = "finalize_settlement"
    FINALIZE_REFUND = "finalize_refund"


class TransactionType(enum.StrEnum):
    CASH_PURCHASE = "cash_purchase"
    FINANCED = "financed"


class PartyRole(enum.StrEnum):
    """Well-known participant roles. Other role strings are accepted as-is."""

    BUYER = "buyer"
    SELLER = "seller"
    BUYER_AGENT = "buyer_agent"
    SELLER_AGENT = "seller_agent"
    TITLE = "title"
    LENDER = "lender"


# Roles that sign by default unless the invite says otherwise.
SIGNING_ROLES: frozenset[str] = frozenset(
    role.value for role in (PartyRole.BUYER, PartyRole.SELLER, PartyRole.TITLE)
)


class SessionType(enum.StrEnum):
    """Known PSBT signing session types (the set is open)."""

    FUNDING = "funding"
    RELEASE = "release"
    REFUND = "refund"
    CLOSING = "closing"


class SessionStatus(enum.StrEnum):
    DRAFT = "draft"
    SIGNING = "signing"
    FINALIZED = "finalized"


class SignatureStatus(enum.StrEnum):
    REQUESTED = "requested"
    SIGNED = "signed"


class ContingencyStatus(enum.StrEnum):
    PENDING = "pending"
    SATISFIED = "satisfied"
    WAIVED = "waived"
    FAILED = "failed"


class DocumentStatus(enum.StrEnum):
    DRAFT = "draft"
    ACTIVE = "active"
    SIGNED = "signed"


class FundStatus(enum.StrEnum):
    PENDING = "pending"
    FUNDED = "funded"
    RELEASED = "released"


class DisbursementStatus(enum.StrEnum):
    PENDING = "pending"
    PAID = "paid"


class EventType(enum.StrEnum):
    """Types of audit events recorded in the audit_events table.

    Every mutating operation MUST produce exactly one event.
    This is the append-only record used to replay a deal's history.
    """

    # Deal
    DEAL_CREATED = "deal.created"
    DEAL_UPDATED = "deal.updated"

    # Parties
    PARTY_INVITED = "party.invited"
    PARTY_UPDATED = "party.updated"

    # Proof of funds
    POF_REQUESTED = "pof.requested"
    POF_ATTESTED = "pof.attested"
    POF_VERIFIED = "pof.verified"

    # Escrow
    ESCROW_POLICY_CREATED = "escrow.policy_created"
    ESCROW_FUNDED = "escrow.funded"

    # PSBT signing
    PSBT_CREATED = "psbt.created"
    PSBT_SIGNATURE_REQUESTED = "psbt.signature_requested"
    PSBT_SIGNATURE_SUBMITTED = "psbt.signature_submitted"
    PSBT_FINALIZED = "psbt.finalized"

    # Checklists and auxiliary ledgers
    CONTINGENCY_ADDED = "contingency.added"
    CONTINGENCY_UPDATED = "contingency.updated"
    DOCUMENT_UPLOADED = "document.uploaded"
    DOCUMENT_UPDATED = "document.updated"
    FUND_ADDED = "fund.added"
    FUND_UPDATED = "fund.updated"
    DISBURSEMENT_ADDED = "disbursement.added"
    DISBURSEMENT_PAID = "disbursement.paid"
    MILESTONE_ADDED = "milestone.added"
    MILESTONE_UPDATED = "milestone.updated"
    MILESTONES_DEFAULTS_CREATED = "milestones.defaults_created"
