"""Ledger entry model."""

from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Numeric, String, UniqueConstraint, Uuid
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from ledger_sync.database import Base
from ledger_sync.models.base import TimestampMixin, UUIDMixin, enum_values


class EntryType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class LedgerEntry(Base, UUIDMixin, TimestampMixin):
    """A committed transaction on an account.

    Amounts are stored positive; the direction lives in ``type``.
    ``external_reference_id`` is the bank feed's transaction id once the entry
    has been created from, or linked to, a feed record.
    """

    __tablename__ = "ledger_entries"
    __table_args__ = (
        UniqueConstraint(
            "account_id",
            "external_reference_id",
            name="uq_ledger_entries_account_external_ref",
        ),
    )

    account_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    category_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
    )
    entry_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    type: Mapped[EntryType] = mapped_column(
        SQLEnum(EntryType, name="entry_type", values_callable=enum_values),
        nullable=False,
    )
    external_reference_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    # Paired entry of a transfer.
    linked_entry_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("ledger_entries.id", ondelete="SET NULL"),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<LedgerEntry {self.entry_date} {self.type.value} {self.amount}>"
