"""Candidate entries staged from the bank feed for review."""

from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Numeric, String, UniqueConstraint, Uuid
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from ledger_sync.database import Base
from ledger_sync.models.base import TimestampMixin, UUIDMixin, enum_values


class CandidateStatus(str, Enum):
    """Review state of a staged feed record."""

    PENDING = "pending"
    DISMISSED = "dismissed"
    RECONCILED = "reconciled"


class CandidateEntry(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "candidate_entries"
    __table_args__ = (
        UniqueConstraint(
            "account_id",
            "external_reference_id",
            name="uq_candidate_entries_account_external_ref",
        ),
    )

    account_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    entry_date: Mapped[date] = mapped_column(Date, nullable=False)
    # Signed as received from the feed: negative means money left the account.
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    external_reference_id: Mapped[str] = mapped_column(String(255), nullable=False)
    suggested_category_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
    )
    status: Mapped[CandidateStatus] = mapped_column(
        SQLEnum(CandidateStatus, name="candidate_status", values_callable=enum_values),
        nullable=False,
        default=CandidateStatus.PENDING,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<CandidateEntry {self.external_reference_id} {self.status.value}>"
