"""Tests for the default milestone checklist."""

from __future__ import annotations

from deal_room.domain.milestones import DEFAULT_MILESTONES, default_milestones


class TestDefaultMilestones:
    def test_catalogue_has_thirteen_entries(self) -> None:
        assert len(DEFAULT_MILESTONES) == 13

    def test_cash_purchase_skips_financing_entries(self) -> None:
        names = [m.name for m in default_milestones("cash_purchase")]
        assert len(names) == 11
        assert "Appraisal Completed" not in names
        assert "Loan Approved" not in names

    def test_financed_includes_everything_in_order(self) -> None:
        milestones = default_milestones("financed")
        assert len(milestones) == 13
        assert [m.order_index for m in milestones] == sorted(m.order_index for m in milestones)

    def test_unknown_transaction_type_is_treated_as_cash(self) -> None:
        assert len(default_milestones("lease_option")) == 11
