"""Services package."""

from ledger_sync.services.bank_feed import (
    BankFeedClient,
    FeedTransaction,
    GoCardlessFeedClient,
    fetch_with_reauth,
)
from ledger_sync.services.canonical_key import build_canonical_key
from ledger_sync.services.classification import (
    CategorySuggester,
    NullCategorySuggester,
    OpenRouterCategorySuggester,
)
from ledger_sync.services.feed_sync import FeedSyncResult, reconcile_account
from ledger_sync.services.ledger import create_entry, create_transfer, delete_entry
from ledger_sync.services.ledger_import import import_entries
from ledger_sync.services.occurrences import expected_dates
from ledger_sync.services.recurring import check_recurring_expenses, get_checks, get_missing
from ledger_sync.services.staging import (
    approve_candidate,
    bulk_approve,
    bulk_dismiss,
    count_pending,
    dismiss_candidate,
    link_candidate,
    list_candidates,
    restore_candidate,
)

__all__ = [
    "BankFeedClient",
    "CategorySuggester",
    "FeedSyncResult",
    "FeedTransaction",
    "GoCardlessFeedClient",
    "NullCategorySuggester",
    "OpenRouterCategorySuggester",
    "approve_candidate",
    "build_canonical_key",
    "bulk_approve",
    "bulk_dismiss",
    "check_recurring_expenses",
    "count_pending",
    "create_entry",
    "create_transfer",
    "delete_entry",
    "dismiss_candidate",
    "expected_dates",
    "fetch_with_reauth",
    "get_checks",
    "get_missing",
    "import_entries",
    "link_candidate",
    "list_candidates",
    "reconcile_account",
    "restore_candidate",
]
