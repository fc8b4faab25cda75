"""Initial deal room schema

Revision ID: 0001
Revises:
Create Date: 2026-10-18 09:00:00
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

SEQUENCE = sa.BigInteger().with_variant(sa.Integer(), "sqlite")
PAYLOAD = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")
BTC = sa.Numeric(16, 8)
USD = sa.Numeric(14, 2)
TS = sa.DateTime(timezone=True)


def _deal_fk() -> sa.Column:
    return sa.Column(
        "deal_id",
        sa.Uuid(),
        sa.ForeignKey("deals.id", ondelete="CASCADE"),
        nullable=False,
    )


def _party_fk(name: str) -> sa.Column:
    return sa.Column(name, sa.Uuid(), sa.ForeignKey("parties.id", ondelete="SET NULL"), nullable=True)


def _sequenced() -> list[sa.Column]:
    return [
        sa.Column("sequence", SEQUENCE, primary_key=True, autoincrement=True),
        sa.Column("id", sa.Uuid(), nullable=False, unique=True),
    ]


def upgrade() -> None:
    op.create_table(
        "deals",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("transaction_type", sa.String(20), nullable=False),
        sa.Column("property_address", sa.Text(), nullable=False),
        sa.Column("purchase_price", USD, nullable=True),
        sa.Column("emd_amount", BTC, nullable=True),
        sa.Column("deadline_funding", TS, nullable=True),
        sa.Column("deadline_close", TS, nullable=True),
        sa.Column("jurisdiction", sa.String(64), nullable=True),
        sa.Column("created_at", TS, nullable=False),
        sa.Column("updated_at", TS, nullable=False),
        sa.CheckConstraint(
            "status IN ('draft', 'pof_pending', 'pof_verified', 'escrow_created', "
            "'funded', 'closing', 'closed', 'cancelled')",
            name="ck_deal_valid_status",
        ),
        sa.CheckConstraint(
            "transaction_type IN ('cash_purchase', 'financed')",
            name="ck_deal_transaction_type",
        ),
    )
    op.create_index("idx_deal_status", "deals", ["status"])
    op.create_index("idx_deal_created_at", "deals", ["created_at"])

    op.create_table(
        "parties",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _deal_fk(),
        sa.Column("role", sa.String(32), nullable=False),
        sa.Column("display_name", sa.String(200), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("phone", sa.String(40), nullable=True),
        sa.Column("company_name", sa.String(200), nullable=True),
        sa.Column("license_number", sa.String(64), nullable=True),
        sa.Column("signing_authority", sa.Boolean(), nullable=False),
        sa.Column("wallet_descriptor", sa.Text(), nullable=True),
        sa.Column("pubkey", sa.String(130), nullable=True),
        sa.Column("created_at", TS, nullable=False),
    )
    op.create_index("idx_party_deal", "parties", ["deal_id"])

    op.create_table(
        "pof_requests",
        *_sequenced(),
        _deal_fk(),
        sa.Column("requester_name", sa.String(200), nullable=False),
        sa.Column("challenge", sa.Text(), nullable=False),
        sa.Column("requested_amount", BTC, nullable=True),
        sa.Column("requested_amount_usd", USD, nullable=True),
        sa.Column("created_at", TS, nullable=False),
    )
    op.create_index("idx_pof_request_deal_seq", "pof_requests", ["deal_id", "sequence"])

    op.create_table(
        "pof_attestations",
        *_sequenced(),
        _deal_fk(),
        _party_fk("party_id"),
        sa.Column("proof_type", sa.String(32), nullable=False),
        sa.Column("address_or_descriptor", sa.Text(), nullable=True),
        sa.Column("signature", sa.Text(), nullable=True),
        sa.Column("claimed_total", BTC, nullable=True),
        sa.Column("verified", sa.Boolean(), nullable=False),
        sa.Column("verified_at", TS, nullable=True),
        sa.Column("created_at", TS, nullable=False),
    )
    op.create_index("idx_pof_attestation_deal_seq", "pof_attestations", ["deal_id", "sequence"])

    op.create_table(
        "escrow_policies",
        *_sequenced(),
        _deal_fk(),
        sa.Column("policy_type", sa.String(32), nullable=False),
        sa.Column("descriptor", sa.Text(), nullable=True),
        sa.Column("address", sa.String(100), nullable=True),
        sa.Column("refund_timelock", TS, nullable=True),
        sa.Column("terms_hash", sa.String(64), nullable=False),
        sa.Column("created_at", TS, nullable=False),
    )
    op.create_index("idx_escrow_policy_deal_seq", "escrow_policies", ["deal_id", "sequence"])

    op.create_table(
        "escrow_fundings",
        *_sequenced(),
        _deal_fk(),
        sa.Column("txid", sa.String(64), nullable=False),
        sa.Column("amount", BTC, nullable=True),
        sa.Column("confirmations", sa.Integer(), nullable=False),
        sa.Column("funded_at", TS, nullable=True),
        sa.Column("created_at", TS, nullable=False),
        sa.CheckConstraint("confirmations >= 0", name="ck_funding_confirmations"),
    )
    op.create_index("idx_escrow_funding_deal_seq", "escrow_fundings", ["deal_id", "sequence"])

    op.create_table(
        "psbt_sessions",
        *_sequenced(),
        _deal_fk(),
        sa.Column("session_type", sa.String(32), nullable=False),
        sa.Column("psbt_payload", sa.Text(), nullable=True),
        sa.Column("psbt_hash", sa.String(64), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        _party_fk("created_by_party_id"),
        sa.Column("finalized_at", TS, nullable=True),
        sa.Column("created_at", TS, nullable=False),
        sa.CheckConstraint(
            "status IN ('draft', 'signing', 'finalized')",
            name="ck_psbt_session_status",
        ),
    )
    op.create_index("idx_psbt_session_deal_seq", "psbt_sessions", ["deal_id", "sequence"])

    op.create_table(
        "psbt_signatures",
        *_sequenced(),
        sa.Column(
            "session_id",
            sa.Uuid(),
            sa.ForeignKey("psbt_sessions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        _deal_fk(),
        _party_fk("party_id"),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("signed_payload", sa.Text(), nullable=True),
        sa.Column("signed_at", TS, nullable=True),
        sa.Column("created_at", TS, nullable=False),
        sa.UniqueConstraint("session_id", "party_id", name="uq_psbt_signature_party"),
        sa.CheckConstraint("status IN ('requested', 'signed')", name="ck_psbt_signature_status"),
    )
    op.create_index("idx_psbt_signature_deal_seq", "psbt_signatures", ["deal_id", "sequence"])

    op.create_table(
        "contingencies",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _deal_fk(),
        sa.Column("contingency_type", sa.String(64), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("deadline", TS, nullable=True),
        sa.Column("satisfied_at", TS, nullable=True),
        sa.Column("waived_at", TS, nullable=True),
        _party_fk("waived_by_party_id"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", TS, nullable=False),
        sa.CheckConstraint(
            "status IN ('pending', 'satisfied', 'waived', 'failed')",
            name="ck_contingency_status",
        ),
    )
    op.create_index("idx_contingency_deal", "contingencies", ["deal_id"])

    op.create_table(
        "milestones",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _deal_fk(),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("due_date", TS, nullable=True),
        sa.Column("completed_at", TS, nullable=True),
        _party_fk("completed_by_party_id"),
        sa.Column("is_required", sa.Boolean(), nullable=False),
        sa.Column("order_index", sa.Integer(), nullable=False),
        sa.Column("created_at", TS, nullable=False),
    )
    op.create_index("idx_milestone_deal", "milestones", ["deal_id"])

    op.create_table(
        "documents",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _deal_fk(),
        sa.Column("document_type", sa.String(64), nullable=False),
        sa.Column("name", sa.String(300), nullable=False),
        _party_fk("uploaded_by_party_id"),
        sa.Column("file_url", sa.Text(), nullable=True),
        sa.Column("file_hash", sa.String(128), nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("requires_signatures", sa.Boolean(), nullable=False),
        sa.Column("created_at", TS, nullable=False),
        sa.CheckConstraint("status IN ('draft', 'active', 'signed')", name="ck_document_status"),
    )
    op.create_index("idx_document_deal", "documents", ["deal_id"])

    op.create_table(
        "funds",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _deal_fk(),
        sa.Column("fund_type", sa.String(64), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("amount", BTC, nullable=True),
        sa.Column("amount_usd", USD, nullable=True),
        sa.Column(
            "escrow_policy_id",
            sa.Uuid(),
            sa.ForeignKey("escrow_policies.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("funded_txid", sa.String(64), nullable=True),
        sa.Column("released_txid", sa.String(64), nullable=True),
        sa.Column("created_at", TS, nullable=False),
        sa.CheckConstraint("status IN ('pending', 'funded', 'released')", name="ck_fund_status"),
    )
    op.create_index("idx_fund_deal", "funds", ["deal_id"])

    op.create_table(
        "disbursements",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _deal_fk(),
        sa.Column("payee_name", sa.String(200), nullable=False),
        sa.Column("payee_type", sa.String(64), nullable=False),
        sa.Column("amount", BTC, nullable=True),
        sa.Column("amount_usd", USD, nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("address", sa.String(100), nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("paid_txid", sa.String(64), nullable=True),
        sa.Column("paid_at", TS, nullable=True),
        sa.Column("created_at", TS, nullable=False),
        sa.CheckConstraint("status IN ('pending', 'paid')", name="ck_disbursement_status"),
    )
    op.create_index("idx_disbursement_deal", "disbursements", ["deal_id"])

    op.create_table(
        "audit_events",
        *_sequenced(),
        _deal_fk(),
        sa.Column("event_type", sa.String(40), nullable=False),
        _party_fk("actor_party_id"),
        sa.Column("payload", PAYLOAD, nullable=False),
        sa.Column("external_ref", sa.String(100), nullable=True),
        sa.Column("old_status", sa.String(20), nullable=True),
        sa.Column("new_status", sa.String(20), nullable=True),
        sa.Column("created_at", TS, nullable=False),
    )
    op.create_index("idx_event_deal_seq", "audit_events", ["deal_id", "sequence"])
    op.create_index("idx_event_type", "audit_events", ["event_type"])


def downgrade() -> None:
    for table in (
        "audit_events",
        "disbursements",
        "funds",
        "documents",
        "milestones",
        "contingencies",
        "psbt_signatures",
        "psbt_sessions",
        "escrow_fundings",
        "escrow_policies",
        "pof_attestations",
        "pof_requests",
        "parties",
        "deals",
    ):
        op.drop_table(table)
