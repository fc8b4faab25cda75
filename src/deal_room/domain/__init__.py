"""Domain layer — pure business logic with zero framework dependencies."""

from deal_room.domain.enums import (
    DealStatus,
    DealTrigger,
    EventType,
    SessionType,
    TransactionType,
)
from deal_room.domain.exceptions import (
    DealRoomError,
    EntityNotFoundError,
    InvalidStateTransitionError,
    StorageUnavailableError,
)
from deal_room.domain.state_machine import (
    DealStateMachine,
    TransitionOutcome,
    next_status,
    validate_transition,
)

__all__ = [
    "DealStatus",
    "DealTrigger",
    "EventType",
    "SessionType",
    "TransactionType",
    "DealRoomError",
    "EntityNotFoundError",
    "InvalidStateTransitionError",
    "StorageUnavailableError",
    "DealStateMachine",
    "TransitionOutcome",
    "next_status",
    "validate_transition",
]
