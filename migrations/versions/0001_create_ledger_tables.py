"""create ledger tables

Revision ID: 0001
Revises:
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from ledger_core.models.amount import ExactDecimal

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

account_type_enum = sa.Enum(
    "ASSET", "LIABILITY", "EQUITY", "REVENUE", "EXPENSE",
    name="account_type_enum",
)
amount_side_enum = sa.Enum("DEBIT", "CREDIT", name="amount_side_enum")


def upgrade() -> None:
    op.create_table(
        "accounts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("account_type", account_type_enum, nullable=False),
        sa.Column("contra", sa.Boolean(), nullable=False),
        sa.Column("code", sa.Integer(), nullable=True),
        sa.Column("rollup_code", sa.Integer(), nullable=True),
        sa.Column(
            "parent_id", sa.Integer(),
            sa.ForeignKey("accounts.id"), nullable=True,
        ),
        sa.Column("tenant_id", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_accounts_name_account_type", "accounts", ["name", "account_type"])
    op.create_index("ix_accounts_code", "accounts", ["code"])
    op.create_index("ix_accounts_rollup_code", "accounts", ["rollup_code"])
    op.create_index("ix_accounts_parent_id", "accounts", ["parent_id"])
    op.create_index("ix_accounts_tenant_id", "accounts", ["tenant_id"])

    op.create_table(
        "entries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("description", sa.String(255), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("target_type", sa.String(100), nullable=True),
        sa.Column("target_id", sa.String(64), nullable=True),
        sa.Column("commercial_document_type", sa.String(100), nullable=True),
        sa.Column("commercial_document_id", sa.String(64), nullable=True),
        sa.Column("tenant_id", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_entries_date", "entries", ["date"])
    op.create_index("ix_entries_target", "entries", ["target_type", "target_id"])
    op.create_index(
        "ix_entries_commercial_document", "entries",
        ["commercial_document_type", "commercial_document_id"],
    )
    op.create_index("ix_entries_tenant_id", "entries", ["tenant_id"])

    op.create_table(
        "amounts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("side", amount_side_enum, nullable=False),
        sa.Column(
            "account_id", sa.Integer(),
            sa.ForeignKey("accounts.id"), nullable=False,
        ),
        sa.Column(
            "entry_id", sa.Integer(),
            sa.ForeignKey("entries.id"), nullable=False,
        ),
        sa.Column("amount", ExactDecimal(), nullable=False),
    )
    op.create_index("ix_amounts_side", "amounts", ["side"])
    op.create_index("ix_amounts_account_id_entry_id", "amounts", ["account_id", "entry_id"])
    op.create_index("ix_amounts_entry_id_account_id", "amounts", ["entry_id", "account_id"])


def downgrade() -> None:
    op.drop_table("amounts")
    op.drop_table("entries")
    op.drop_table("accounts")
    amount_side_enum.drop(op.get_bind(), checkfirst=True)
    account_type_enum.drop(op.get_bind(), checkfirst=True)
