"""API routers."""

from ledger_sync.routers import feed, ledger, recurring, staging

__all__ = ["feed", "ledger", "recurring", "staging"]
