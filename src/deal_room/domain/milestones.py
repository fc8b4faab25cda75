"""Default milestone checklist for a deal."""

from __future__ import annotations

from dataclasses import dataclass

from deal_room.domain.enums import TransactionType


@dataclass(frozen=True)
class MilestoneTemplate:
    name: str
    order_index: int
    financing_only: bool = False


DEFAULT_MILESTONES: tuple[MilestoneTemplate, ...] = (
    MilestoneTemplate("Contract Executed", 1),
    MilestoneTemplate("Proof of Funds Verified", 2),
    MilestoneTemplate("EMD Deposited", 3),
    MilestoneTemplate("Inspection Completed", 4),
    MilestoneTemplate("Inspection Contingency Resolved", 5),
    MilestoneTemplate("Appraisal Completed", 6, financing_only=True),
    MilestoneTemplate("Loan Approved", 7, financing_only=True),
    MilestoneTemplate("Title Commitment Received", 8),
    MilestoneTemplate("Title Cleared", 9),
    MilestoneTemplate("Closing Disclosure Sent", 10),
    MilestoneTemplate("Final Walkthrough", 11),
    MilestoneTemplate("Closing/Funding", 12),
    MilestoneTemplate("Recording Complete", 13),
)


def default_milestones(transaction_type: str) -> list[MilestoneTemplate]:
    """Return the checklist for a transaction type, in order.

    Financing-only entries appear (and are required) only on financed deals.
    """
    financed = transaction_type == TransactionType.FINANCED
    return [m for m in DEFAULT_MILESTONES if financed or not m.financing_only]
