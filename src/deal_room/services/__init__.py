"""Application services — use case orchestration."""

from deal_room.services.audit_ledger import AuditLedger, DealReplay
from deal_room.services.contingency_service import ContingencyService
from deal_room.services.deal_service import DealService
from deal_room.services.document_service import DocumentService
from deal_room.services.escrow_service import EscrowReceipt, EscrowService
from deal_room.services.fund_service import DisbursementService, FundService
from deal_room.services.milestone_service import MilestoneService
from deal_room.services.party_service import PartyService
from deal_room.services.pof_service import PofPacket, PofService
from deal_room.services.signing_service import SigningService

__all__ = [
    "AuditLedger",
    "DealReplay",
    "ContingencyService",
    "DealService",
    "DocumentService",
    "EscrowReceipt",
    "EscrowService",
    "DisbursementService",
    "FundService",
    "MilestoneService",
    "PartyService",
    "PofPacket",
    "PofService",
    "SigningService",
]
