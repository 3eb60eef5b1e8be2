"""Accounts and categories.

Both are maintained by other parts of the product; ledger services only read them.
"""

from enum import Enum

from sqlalchemy import Boolean, String
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from ledger_sync.database import Base
from ledger_sync.models.base import TimestampMixin, UserOwnedMixin, UUIDMixin, enum_values


class CategoryType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class Account(Base, UUIDMixin, UserOwnedMixin, TimestampMixin):
    """A money container (bank account, card, cash) that ledger entries belong to."""

    __tablename__ = "accounts"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="EUR")
    # Identity of this account at the open-banking provider; null when not linked.
    feed_account_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Account {self.name} ({self.currency})>"


class Category(Base, UUIDMixin, UserOwnedMixin, TimestampMixin):
    __tablename__ = "categories"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[CategoryType] = mapped_column(
        SQLEnum(CategoryType, name="category_type", values_callable=enum_values),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Category {self.name} ({self.type.value})>"
