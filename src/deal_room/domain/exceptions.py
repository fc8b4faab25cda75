"""Domain exceptions for the Deal Room.

These exceptions are framework-agnostic and represent business rule violations.
They are caught and translated to HTTP responses by the API layer's middleware.

Deal status guard failures are deliberately NOT exceptions: a trigger fired
while its guard fails is absorbed by the DealService and only logged.
"""


class DealRoomError(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str, code: str = "DEAL_ROOM_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(self.message)


# --- Lookup Errors ---


class EntityNotFoundError(DealRoomError):
    """Raised when a referenced deal, party, session, policy, etc. does not exist.

    The entity name is carried so the caller can tell what was missing.
    """

    def __init__(self, entity: str, entity_id: object | None = None) -> None:
        if entity_id is None:
            message = f"{entity} not found"
        else:
            message = f"{entity} not found: {entity_id}"
        super().__init__(message=message, code="NOT_FOUND")
        self.entity = entity
        self.entity_id = str(entity_id) if entity_id is not None else None


# --- State Machine Errors ---


class InvalidStateTransitionError(DealRoomError):
    """Raised when an operation's precondition on a sub-entity is not met.

    Example: submitting a signature on a finalized session, or moving a
    waived contingency to satisfied.
    """

    def __init__(self, current_state: str, attempted_state: str, reason: str = "") -> None:
        message = f"Invalid state transition: {current_state} -> {attempted_state}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message=message, code="INVALID_STATE_TRANSITION")
        self.current_state = current_state
        self.attempted_state = attempted_state


# --- Infrastructure Errors ---


class StorageUnavailableError(DealRoomError):
    """Raised when the database cannot be reached."""

    def __init__(self, message: str = "Storage unavailable") -> None:
        super().__init__(message=message, code="STORAGE_UNAVAILABLE")
