"""Recurring expense definitions and their per-period check results."""

from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from ledger_sync.database import Base
from ledger_sync.models.base import TimestampMixin, UUIDMixin, enum_values


class RecurrenceInterval(str, Enum):
    MONTHLY = "monthly"
    WEEKLY = "weekly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class CheckStatus(str, Enum):
    MATCHED = "MATCHED"
    PENDING = "PENDING"
    MISSING = "MISSING"


class RecurringExpense(Base, UUIDMixin, TimestampMixin):
    """A scheduled obligation (rent, subscription) expected to hit an account."""

    __tablename__ = "recurring_expenses"

    account_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    interval: Mapped[RecurrenceInterval] = mapped_column(
        SQLEnum(RecurrenceInterval, name="recurrence_interval", values_callable=enum_values),
        nullable=False,
        default=RecurrenceInterval.MONTHLY,
    )
    day_of_month: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    is_variable_amount: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    match_pattern: Mapped[str | None] = mapped_column(String(255), nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<RecurringExpense {self.name} ({self.interval.value})>"


class RecurringExpenseCheck(Base, UUIDMixin):
    """Outcome of looking for one expected occurrence in the ledger."""

    __tablename__ = "recurring_expense_checks"
    __table_args__ = (
        UniqueConstraint(
            "recurring_expense_id",
            "year",
            "month",
            "expected_date",
            name="uq_recurring_expense_checks_occurrence",
        ),
    )

    recurring_expense_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("recurring_expenses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    expected_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[CheckStatus] = mapped_column(
        SQLEnum(CheckStatus, name="recurring_check_status", values_callable=enum_values),
        nullable=False,
    )
    matched_entry_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("ledger_entries.id", ondelete="SET NULL"),
        nullable=True,
    )
    matched_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    matched_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    checked_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC)
    )
