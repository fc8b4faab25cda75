"""Tests for domain enumerations."""

from __future__ import annotations

from deal_room.domain.enums import (
    DEAL_STATUS_ORDER,
    SIGNING_ROLES,
    DealStatus,
    DealTrigger,
    EventType,
)
from deal_room.domain.state_machine import DealStateMachine


class TestDealStatus:
    def test_all_statuses_exist(self) -> None:
        expected = {
            "draft", "pof_pending", "pof_verified", "escrow_created",
            "funded", "closing", "closed", "cancelled",
        }
        actual = {s.value for s in DealStatus}
        assert actual == expected

    def test_status_is_str_enum(self) -> None:
        assert isinstance(DealStatus.DRAFT, str)
        assert DealStatus.DRAFT == "draft"

    def test_forward_order_excludes_cancelled(self) -> None:
        assert DEAL_STATUS_ORDER[0] == DealStatus.DRAFT
        assert DEAL_STATUS_ORDER[-1] == DealStatus.CLOSED
        assert DealStatus.CANCELLED not in DEAL_STATUS_ORDER


class TestDealTrigger:
    def test_every_trigger_is_a_machine_event(self) -> None:
        events = {e.id for e in DealStateMachine().events}
        assert {t.value for t in DealTrigger} == events


class TestEventType:
    def test_event_types_are_dotted(self) -> None:
        assert all("." in e.value for e in EventType)

    def test_event_type_count(self) -> None:
        assert len(EventType) == 24


class TestSigningRoles:
    def test_default_signers(self) -> None:
        assert SIGNING_ROLES == {"buyer", "seller", "title"}
        assert "buyer_agent" not in SIGNING_ROLES
