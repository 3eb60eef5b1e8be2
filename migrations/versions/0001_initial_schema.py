"""Initial ledger sync schema.

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-17
"""

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    category_type = sa.Enum("income", "expense", name="category_type")
    entry_type = sa.Enum("income", "expense", name="entry_type")
    candidate_status = sa.Enum("pending", "dismissed", "reconciled", name="candidate_status")
    recurrence_interval = sa.Enum("monthly", "weekly", "quarterly", "yearly", name="recurrence_interval")
    check_status = sa.Enum("MATCHED", "PENDING", "MISSING", name="recurring_check_status")

    op.create_table(
        "accounts",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="EUR"),
        sa.Column("feed_account_id", sa.String(255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("ix_accounts_user_id", "accounts", ["user_id"])
    op.create_index("ix_accounts_feed_account_id", "accounts", ["feed_account_id"])

    op.create_table(
        "categories",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("type", category_type, nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_categories_user_id", "categories", ["user_id"])

    op.create_table(
        "ledger_entries",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "account_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("accounts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "category_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("categories.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("entry_date", sa.Date(), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("description", sa.String(500), nullable=False, server_default=""),
        sa.Column("type", entry_type, nullable=False),
        sa.Column("external_reference_id", sa.String(255), nullable=True),
        sa.Column(
            "linked_entry_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("ledger_entries.id", ondelete="SET NULL"),
            nullable=True,
        ),
        *_timestamps(),
        sa.UniqueConstraint(
            "account_id", "external_reference_id", name="uq_ledger_entries_account_external_ref"
        ),
        sa.CheckConstraint("amount > 0", name="ck_ledger_entries_amount_positive"),
    )
    op.create_index("ix_ledger_entries_account_id", "ledger_entries", ["account_id"])
    op.create_index("ix_ledger_entries_entry_date", "ledger_entries", ["entry_date"])

    op.create_table(
        "candidate_entries",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "account_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("accounts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("entry_date", sa.Date(), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("description", sa.String(500), nullable=False, server_default=""),
        sa.Column("external_reference_id", sa.String(255), nullable=False),
        sa.Column(
            "suggested_category_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("categories.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("status", candidate_status, nullable=False, server_default="pending"),
        *_timestamps(),
        sa.UniqueConstraint(
            "account_id", "external_reference_id", name="uq_candidate_entries_account_external_ref"
        ),
    )
    op.create_index("ix_candidate_entries_account_id", "candidate_entries", ["account_id"])
    op.create_index("ix_candidate_entries_status", "candidate_entries", ["status"])

    op.create_table(
        "recurring_expenses",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "account_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("accounts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("interval", recurrence_interval, nullable=False, server_default="monthly"),
        sa.Column("day_of_month", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("is_variable_amount", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("match_pattern", sa.String(255), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("ix_recurring_expenses_account_id", "recurring_expenses", ["account_id"])

    op.create_table(
        "recurring_expense_checks",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "recurring_expense_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("recurring_expenses.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("expected_date", sa.Date(), nullable=False),
        sa.Column("status", check_status, nullable=False),
        sa.Column(
            "matched_entry_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("ledger_entries.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("matched_date", sa.Date(), nullable=True),
        sa.Column("matched_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("checked_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint(
            "recurring_expense_id",
            "year",
            "month",
            "expected_date",
            name="uq_recurring_expense_checks_occurrence",
        ),
    )
    op.create_index(
        "ix_recurring_expense_checks_recurring_expense_id",
        "recurring_expense_checks",
        ["recurring_expense_id"],
    )


def downgrade() -> None:
    op.drop_table("recurring_expense_checks")
    op.drop_table("recurring_expenses")
    op.drop_table("candidate_entries")
    op.drop_table("ledger_entries")
    op.drop_table("categories")
    op.drop_table("accounts")
    for enum_name in (
        "recurring_check_status",
        "recurrence_interval",
        "candidate_status",
        "entry_type",
        "category_type",
    ):
        op.execute(f"DROP TYPE IF EXISTS {enum_name}")
