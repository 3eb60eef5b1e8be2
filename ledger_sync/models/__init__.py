"""SQLAlchemy models."""

from ledger_sync.models.account import Account, Category, CategoryType
from ledger_sync.models.ledger import EntryType, LedgerEntry
from ledger_sync.models.recurring import (
    CheckStatus,
    RecurrenceInterval,
    RecurringExpense,
    RecurringExpenseCheck,
)
from ledger_sync.models.staging import CandidateEntry, CandidateStatus

__all__ = [
    "Account",
    "CandidateEntry",
    "CandidateStatus",
    "Category",
    "CategoryType",
    "CheckStatus",
    "EntryType",
    "LedgerEntry",
    "RecurrenceInterval",
    "RecurringExpense",
    "RecurringExpenseCheck",
]
