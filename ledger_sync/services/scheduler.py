"""Background scheduler for feed sync and recurring-expense checks."""

from __future__ import annotations

import asyncio
from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ledger_sync.config import settings
from ledger_sync.database import get_session_maker
from ledger_sync.logger import get_logger
from ledger_sync.models import Account, RecurringExpense
from ledger_sync.services.bank_feed import BankFeedClient, GoCardlessFeedClient
from ledger_sync.services.classification import CategorySuggester, get_default_suggester
from ledger_sync.services.feed_sync import reconcile_account
from ledger_sync.services.recurring import check_recurring_expenses

logger = get_logger(__name__)


async def sync_linked_accounts(
    feed: BankFeedClient,
    suggester: CategorySuggester,
    sessionmaker: async_sessionmaker[AsyncSession] | None = None,
) -> int:
    """Reconcile every active feed-linked account; returns how many succeeded."""
    session_factory = sessionmaker or get_session_maker()
    async with session_factory() as session:
        result = await session.execute(
            select(Account.id, Account.user_id)
            .where(Account.feed_account_id.is_not(None))
            .where(Account.is_active.is_(True))
        )
        accounts = list(result.all())

    synced = 0
    for account_id, user_id in accounts:
        async with session_factory() as session:
            try:
                outcome = await reconcile_account(session, account_id, user_id, feed, suggester)
                await session.commit()
            except Exception:
                await session.rollback()
                logger.exception("Scheduled feed sync failed", account_id=str(account_id))
                continue
        synced += 1
        logger.info(
            "Scheduled feed sync finished",
            account_id=str(account_id),
            linked=outcome.linked,
            staged=outcome.staged,
        )
    return synced


async def check_all_users(
    today: date | None = None,
    sessionmaker: async_sessionmaker[AsyncSession] | None = None,
) -> int:
    """Run the recurring check for the current month for every user with definitions."""
    today = today or date.today()
    session_factory = sessionmaker or get_session_maker()
    async with session_factory() as session:
        result = await session.execute(
            select(Account.user_id)
            .join(RecurringExpense, RecurringExpense.account_id == Account.id)
            .where(RecurringExpense.active.is_(True))
            .distinct()
        )
        user_ids: list[UUID] = list(result.scalars().all())

    checked = 0
    for user_id in user_ids:
        async with session_factory() as session:
            try:
                await check_recurring_expenses(session, user_id, today.year, today.month, today=today)
                await session.commit()
            except Exception:
                await session.rollback()
                logger.exception("Scheduled recurring check failed", user_id=str(user_id))
                continue
        checked += 1
    return checked


async def run_sync_scheduler(
    stop_event: asyncio.Event,
    feed: BankFeedClient | None = None,
    suggester: CategorySuggester | None = None,
) -> None:
    """Run periodic work until stop_event is set."""
    suggester = suggester or get_default_suggester()
    if feed is None and settings.feed_configured:
        feed = GoCardlessFeedClient()

    while not stop_event.is_set():
        if feed is not None:
            try:
                await sync_linked_accounts(feed, suggester)
            except Exception:
                logger.exception("Feed sync run failed")
        try:
            count = await check_all_users()
            if count:
                logger.info("Recurring checks refreshed", users=count)
        except Exception:
            logger.exception("Recurring check run failed")

        try:
            await asyncio.wait_for(stop_event.wait(), timeout=settings.scheduler_interval_seconds)
        except TimeoutError:
            continue
