"""Database infrastructure — engine, ORM models, and repositories."""

from deal_room.infrastructure.database.engine import (
    close_db,
    get_async_session,
    init_db,
    wait_for_db,
)
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
from deal_room.infrastructure.database.repositories import (
    DealRepository,
    EventRepository,
)

__all__ = [
    "AuditEvent",
    "Base",
    "Contingency",
    "Deal",
    "Disbursement",
    "Document",
    "EscrowFunding",
    "EscrowPolicy",
    "Fund",
    "Milestone",
    "Party",
    "PofAttestation",
    "PofRequest",
    "PsbtSignature",
    "SigningSession",
    "DealRepository",
    "EventRepository",
    "get_async_session",
    "init_db",
    "close_db",
    "wait_for_db",
]
