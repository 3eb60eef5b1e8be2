"""Common FastAPI dependencies for consistent type annotations.

Usage:
    from ledger_sync.deps import CurrentUserId, DbSession

    async def my_endpoint(db: DbSession, user_id: CurrentUserId):
        ...
"""

from typing import Annotated
from uuid import UUID

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_sync.auth import get_current_user_id
from ledger_sync.config import settings
from ledger_sync.database import get_db
from ledger_sync.errors import FeedUnavailableError
from ledger_sync.services.bank_feed import BankFeedClient, GoCardlessFeedClient
from ledger_sync.services.classification import CategorySuggester, get_default_suggester


def get_feed_client() -> BankFeedClient:
    if not settings.feed_configured:
        raise FeedUnavailableError("Bank feed is not configured")
    return GoCardlessFeedClient()


def get_category_suggester() -> CategorySuggester:
    return get_default_suggester()


DbSession = Annotated[AsyncSession, Depends(get_db)]
CurrentUserId = Annotated[UUID, Depends(get_current_user_id)]
FeedClient = Annotated[BankFeedClient, Depends(get_feed_client)]
Suggester = Annotated[CategorySuggester, Depends(get_category_suggester)]

__all__ = ["CurrentUserId", "DbSession", "FeedClient", "Suggester"]
