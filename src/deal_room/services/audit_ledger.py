"""Audit Ledger — append-only record of every deal mutation.

Each mutating service operation calls `AuditLedger.record` exactly once,
after its entity writes are flushed and inside the same transaction, so the
change and its audit entry commit together or not at all.

Payload shape:
    {
        "entity": "escrow_funding",
        "before": {...} | None,
        "after": {...} | [{...}, ...],
        "deal_status": {"trigger", "before", "after", "applied"},   # optional
        "related": {"psbt_session": {...}},                         # optional
        ...extra keys
    }

Replaying a deal's entries oldest-first (by storage sequence) rebuilds its
status and the latest snapshot of every entity it touched, including
the snapshots listed under "related".
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pydantic_core import to_jsonable_python

from deal_room.domain.enums import DealStatus
from deal_room.infrastructure.database.orm_models import Base
from deal_room.infrastructure.database.repositories import EventRepository
from deal_room.logging_config import get_logger

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from deal_room.domain.enums import EventType
    from deal_room.domain.state_machine import TransitionOutcome
    from deal_room.infrastructure.database.orm_models import AuditEvent

logger = get_logger(__name__)


def snapshot(value: Any) -> Any:
    """Turn an ORM row (or list of rows) into JSON-safe column dicts."""
    if value is None:
        return None
    if isinstance(value, Base):
        return value.to_snapshot()
    if isinstance(value, list | tuple):
        return [snapshot(item) for item in value]
    return to_jsonable_python(value)


def entity_payload(entity: str, before: Any = None, after: Any = None, **extra: Any) -> dict:
    """Build the standard before/after payload for one entity kind."""
    payload = {"entity": entity, "before": snapshot(before), "after": snapshot(after)}
    payload.update(extra)
    return payload


@dataclass
class DealReplay:
    """State rebuilt purely from a deal's audit entries."""

    deal_id: uuid.UUID
    status: DealStatus | None = None
    deal: dict | None = None
    entities: dict[str, dict[str, dict]] = field(default_factory=dict)
    event_count: int = 0
    last_sequence: int | None = None

    def apply(self, event: AuditEvent) -> None:
        payload = event.payload or {}
        after = payload.get("after")

        rows = after if isinstance(after, list) else [after]
        for row in rows:
            self._fold(payload.get("entity"), row)
        for kind, row in (payload.get("related") or {}).items():
            self._fold(kind, row)

        if event.new_status:
            self.status = DealStatus(event.new_status)
            if self.deal is not None:
                self.deal["status"] = event.new_status

        self.event_count += 1
        self.last_sequence = event.sequence

    def _fold(self, kind: str | None, row: Any) -> None:
        if not isinstance(row, dict):
            return
        if kind == "deal":
            self.deal = dict(row)
            if row.get("status"):
                self.status = DealStatus(row["status"])
        elif kind and "id" in row:
            self.entities.setdefault(kind, {})[row["id"]] = row


class AuditLedger:
    """Appends and reads a deal's audit entries."""

    def __init__(self, session: AsyncSession) -> None:
        self._event_repo = EventRepository(session)

    async def record(
        self,
        deal_id: uuid.UUID,
        event_type: EventType,
        payload: dict,
        actor_party_id: uuid.UUID | None = None,
        external_ref: str | None = None,
        outcome: TransitionOutcome | None = None,
    ) -> AuditEvent:
        """Append one immutable entry.

        When a transition outcome is given, the deal status before and after
        the operation is written both into the payload and the status columns.
        """
        payload = dict(payload)
        old_status = new_status = None
        if outcome is not None:
            payload["deal_status"] = outcome.to_dict()
            old_status, new_status = outcome.before, outcome.after

        evt = await self._event_repo.record(
            deal_id=deal_id,
            event_type=event_type,
            payload=to_jsonable_python(payload),
            actor_party_id=actor_party_id,
            external_ref=external_ref,
            old_status=old_status,
            new_status=new_status,
        )
        logger.debug(
            "audit.recorded",
            deal_id=deal_id,
            event_type=event_type,
            sequence=evt.sequence,
        )
        return evt

    async def history(self, deal_id: uuid.UUID) -> list[AuditEvent]:
        """All entries for a deal, newest first."""
        return await self._event_repo.get_by_deal(deal_id, newest_first=True)

    async def replay(self, deal_id: uuid.UUID) -> DealReplay:
        """Fold a deal's entries oldest-first into reconstructed state."""
        state = DealReplay(deal_id=deal_id)
        for event in await self._event_repo.get_by_deal(deal_id, newest_first=False):
            state.apply(event)
        return state
