"""Deal and sub-entity state machine guards.

Uses python-statemachine to enforce legal status transitions at the domain level.
The machines are instantiated per-entity from the stored status value and
validate a transition before the ORM row's status field is written.

Deal transition table (trigger -> from -> to):
    request_pof            draft           -> pof_pending
    verify_pof             pof_pending     -> pof_verified
    create_escrow_policy   pof_verified    -> escrow_created
    record_funding         escrow_created  -> funded
    open_settlement        funded          -> closing
    finalize_settlement    closing         -> closed
    finalize_refund        closing         -> cancelled

A deal trigger fired from any other status is a no-op: next_status() returns
None and the caller leaves the deal untouched.
"""

from __future__ import annotations

from dataclasses import dataclass

from statemachine import State, StateMachine
from statemachine.exceptions import TransitionNotAllowed

from deal_room.domain.enums import (
    ContingencyStatus,
    DealStatus,
    DealTrigger,
    DisbursementStatus,
    DocumentStatus,
    FundStatus,
    SessionStatus,
    SessionType,
)
from deal_room.domain.exceptions import InvalidStateTransitionError


class StatusGuardMixin:
    """Start a machine at a stored status value and expose it as a string."""

    def __init__(self, current_status: str | None = None) -> None:
        valid_values = {s.value for s in self.states}
        if current_status is None:
            current_status = next(s.value for s in self.states if s.initial)
        if current_status not in valid_values:
            valid = ", ".join(sorted(valid_values))
            raise ValueError(
                f"Unknown status '{current_status}'. Valid states: {valid}"
            )
        super().__init__(start_value=current_status)

    @property
    def status(self) -> str:
        """Return the current state value as a string."""
        return str(self.current_state.value)

    def get_allowed_events(self) -> list[str]:
        """Return a list of event names that can fire from the current state."""
        return [event.id for event in self.allowed_events]


class DealStateMachine(StatusGuardMixin, StateMachine):
    """State machine that guards the deal lifecycle.

    Usage:
        sm = DealStateMachine(current_status="funded")
        sm.open_settlement()  # transitions to closing
        sm.status             # "closing"
    """

    # --- States ---
    draft = State("Draft", initial=True)
    pof_pending = State("Proof of funds pending")
    pof_verified = State("Proof of funds verified")
    escrow_created = State("Escrow created")
    funded = State("Funded")
    closing = State("Closing")
    closed = State("Closed", final=True)
    cancelled = State("Cancelled", final=True)

    # --- Events / Transitions ---
    request_pof = draft.to(pof_pending)
    verify_pof = pof_pending.to(pof_verified)
    create_escrow_policy = pof_verified.to(escrow_created)
    record_funding = escrow_created.to(funded)
    open_settlement = funded.to(closing)
    finalize_settlement = closing.to(closed)
    finalize_refund = closing.to(cancelled)


class SigningSessionStateMachine(StatusGuardMixin, StateMachine):
    """PSBT session progression. Finalize is allowed without a signing round."""

    draft = State("Draft", initial=True)
    signing = State("Signing")
    finalized = State("Finalized", final=True)

    open_signing = draft.to(signing)
    finalize = draft.to(finalized) | signing.to(finalized)


class ContingencyStateMachine(StatusGuardMixin, StateMachine):
    pending = State("Pending", initial=True)
    satisfied = State("Satisfied", final=True)
    waived = State("Waived", final=True)
    failed = State("Failed", final=True)

    satisfy = pending.to(satisfied)
    waive = pending.to(waived)
    fail = pending.to(failed)


class DocumentStateMachine(StatusGuardMixin, StateMachine):
    draft = State("Draft", initial=True)
    active = State("Active")
    signed = State("Signed", final=True)

    activate = draft.to(active)
    mark_signed = draft.to(signed) | active.to(signed)


class FundStateMachine(StatusGuardMixin, StateMachine):
    pending = State("Pending", initial=True)
    funded = State("Funded")
    released = State("Released", final=True)

    mark_funded = pending.to(funded)
    release = funded.to(released)


class DisbursementStateMachine(StatusGuardMixin, StateMachine):
    pending = State("Pending", initial=True)
    paid = State("Paid", final=True)

    pay = pending.to(paid)


# ---------------------------------------------------------------------------
# Tagged trigger tables
# ---------------------------------------------------------------------------

# Session types whose creation moves a funded deal into closing.
SESSION_CREATED_TRIGGERS: dict[str, DealTrigger] = {
    SessionType.RELEASE.value: DealTrigger.OPEN_SETTLEMENT,
    SessionType.CLOSING.value: DealTrigger.OPEN_SETTLEMENT,
}

# Finalizing a session of these types ends the deal in a specific way;
# every other type settles it.
SESSION_FINALIZED_TRIGGERS: dict[str, DealTrigger] = {
    SessionType.REFUND.value: DealTrigger.FINALIZE_REFUND,
}

# Target status -> event name, per sub-entity machine.
CONTINGENCY_EVENTS: dict[str, str] = {
    ContingencyStatus.SATISFIED.value: "satisfy",
    ContingencyStatus.WAIVED.value: "waive",
    ContingencyStatus.FAILED.value: "fail",
}
DOCUMENT_EVENTS: dict[str, str] = {
    DocumentStatus.ACTIVE.value: "activate",
    DocumentStatus.SIGNED.value: "mark_signed",
}
FUND_EVENTS: dict[str, str] = {
    FundStatus.FUNDED.value: "mark_funded",
    FundStatus.RELEASED.value: "release",
}
DISBURSEMENT_EVENTS: dict[str, str] = {
    DisbursementStatus.PAID.value: "pay",
}
SESSION_EVENTS: dict[str, str] = {
    SessionStatus.SIGNING.value: "open_signing",
    SessionStatus.FINALIZED.value: "finalize",
}


def trigger_for_session_created(session_type: str) -> DealTrigger | None:
    """Return the deal trigger fired when a session of this type is created."""
    return SESSION_CREATED_TRIGGERS.get(session_type)


def trigger_for_session_finalized(session_type: str) -> DealTrigger:
    """Return the deal trigger fired when a session of this type is finalized."""
    return SESSION_FINALIZED_TRIGGERS.get(session_type, DealTrigger.FINALIZE_SETTLEMENT)


@dataclass(frozen=True)
class TransitionOutcome:
    """Result of asking the deal state machine to react to a trigger."""

    trigger: DealTrigger | None
    before: DealStatus
    after: DealStatus

    @property
    def applied(self) -> bool:
        return self.before != self.after

    @classmethod
    def unchanged(cls, status: str, trigger: DealTrigger | None = None) -> TransitionOutcome:
        current = DealStatus(status)
        return cls(trigger=trigger, before=current, after=current)

    def to_dict(self) -> dict:
        """Serialize for the audit payload."""
        return {
            "trigger": self.trigger.value if self.trigger else None,
            "before": self.before.value,
            "after": self.after.value,
            "applied": self.applied,
        }


# ---------------------------------------------------------------------------
# Convenience functions
# ---------------------------------------------------------------------------


def validate_transition(
    current_status: str,
    event_name: str,
    machine_cls: type[StateMachine] = DealStateMachine,
) -> str:
    """Validate a state transition and return the new status.

    Creates a temporary state machine, fires the named event, and returns
    the resulting status string.

    Raises:
        TransitionNotAllowed: If the transition is illegal.
        ValueError: If the status or event name is invalid.
    """
    sm = machine_cls(current_status=current_status)

    event_method = getattr(sm, event_name, None)
    if event_method is None or not callable(event_method):
        raise ValueError(
            f"Unknown event '{event_name}'. "
            f"Allowed events from {current_status}: {sm.get_allowed_events()}"
        )

    event_method()
    return sm.status


def next_status(current_status: str, trigger: DealTrigger) -> DealStatus | None:
    """Return the status a deal moves to on this trigger, or None if the guard fails."""
    try:
        return DealStatus(validate_transition(current_status, trigger.value))
    except TransitionNotAllowed:
        return None


def allowed_triggers(current_status: str) -> list[str]:
    """Return the deal triggers that would fire from this status."""
    return DealStateMachine(current_status=current_status).get_allowed_events()


def transition_to(
    machine_cls: type[StateMachine],
    events: dict[str, str],
    current_status: str,
    target_status: str,
) -> bool:
    """Move a sub-entity from its current status to a target status.

    Returns False when the entity already sits at the target (a
    state-preserving no-op) and True when the transition is legal.

    Raises:
        InvalidStateTransitionError: If the target is unknown or unreachable.
    """
    current_status, target_status = str(current_status), str(target_status)
    if current_status == target_status:
        return False
    event_name = events.get(target_status)
    if event_name is None:
        raise InvalidStateTransitionError(current_status, target_status)
    try:
        validate_transition(current_status, event_name, machine_cls)
    except TransitionNotAllowed as err:
        raise InvalidStateTransitionError(current_status, target_status) from err
    return True
