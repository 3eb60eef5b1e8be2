"""Bank feed reconciliation.

Each booked feed record ends up in exactly one of three places:

1. skipped, when its reference id is already known on the account;
2. linked, when an unlinked ledger entry with the same absolute amount sits
   within three days of the booking date (the entry is stamped with the
   reference id);
3. staged, as a pending candidate entry awaiting review.

Running the same window twice is a no-op the second time.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_sync.config import settings
from ledger_sync.errors import ValidationError
from ledger_sync.logger import get_logger, log_exception, log_timing
from ledger_sync.models import CandidateEntry, CandidateStatus, Category, LedgerEntry
from ledger_sync.services.bank_feed import BankFeedClient, FeedTransaction, fetch_with_reauth
from ledger_sync.services.classification import CategorySuggester
from ledger_sync.services.ledger import get_account

logger = get_logger(__name__)

LINK_WINDOW_DAYS = 3
AMOUNT_TOLERANCE = Decimal("0.001")


@dataclass
class FeedSyncResult:
    fetched: int = 0
    linked: int = 0
    staged: int = 0
    skipped: int = 0
    classification_failures: int = 0


async def _known_references(
    db: AsyncSession, account_id: UUID, references: set[str]
) -> set[str]:
    if not references:
        return set()
    ledger_refs = await db.execute(
        select(LedgerEntry.external_reference_id)
        .where(LedgerEntry.account_id == account_id)
        .where(LedgerEntry.external_reference_id.in_(references))
    )
    candidate_refs = await db.execute(
        select(CandidateEntry.external_reference_id)
        .where(CandidateEntry.account_id == account_id)
        .where(CandidateEntry.external_reference_id.in_(references))
    )
    return set(ledger_refs.scalars().all()) | set(candidate_refs.scalars().all())


async def _unlinked_entries(
    db: AsyncSession, account_id: UUID, transactions: list[FeedTransaction]
) -> list[LedgerEntry]:
    """Unlinked ledger entries that could pair with any fetched record, oldest first."""
    window = timedelta(days=LINK_WINDOW_DAYS)
    start = min(tx.booking_date for tx in transactions) - window
    end = max(tx.booking_date for tx in transactions) + window
    result = await db.execute(
        select(LedgerEntry)
        .where(LedgerEntry.account_id == account_id)
        .where(LedgerEntry.external_reference_id.is_(None))
        .where(LedgerEntry.entry_date >= start)
        .where(LedgerEntry.entry_date <= end)
        .order_by(LedgerEntry.entry_date, LedgerEntry.id)
    )
    return list(result.scalars().all())


def find_link_match(tx: FeedTransaction, pool: list[LedgerEntry]) -> LedgerEntry | None:
    """First entry in pool order with the same absolute amount near the booking date."""
    target = abs(tx.amount)
    for entry in pool:
        if abs(abs(entry.amount) - target) >= AMOUNT_TOLERANCE:
            continue
        if abs((entry.entry_date - tx.booking_date).days) <= LINK_WINDOW_DAYS:
            return entry
    return None


async def reconcile_account(
    db: AsyncSession,
    account_id: UUID,
    user_id: UUID,
    feed: BankFeedClient,
    suggester: CategorySuggester,
    date_from: date | None = None,
    date_to: date | None = None,
) -> FeedSyncResult:
    """Pull booked transactions for one account and reconcile them.

    Feed errors propagate unchanged after the single re-authentication retry.
    A failed category suggestion only affects its own record, which is then
    staged without a suggestion.
    """
    account = await get_account(db, account_id, user_id)
    if not account.feed_account_id:
        raise ValidationError(f"Account {account_id} is not linked to a bank feed")

    date_to = date_to or date.today()
    date_from = date_from or date_to - timedelta(days=settings.feed_sync_days)
    if date_from > date_to:
        raise ValidationError("date_from must not be after date_to")

    result = FeedSyncResult()
    with log_timing(
        "reconcile_account",
        logger=logger,
        account_id=str(account_id),
        date_from=date_from.isoformat(),
        date_to=date_to.isoformat(),
    ) as timing:
        transactions = await fetch_with_reauth(feed, account.feed_account_id, date_from, date_to)
        result.fetched = len(transactions)
        if not transactions:
            timing["fetched"] = 0
            return result

        seen = await _known_references(
            db, account.id, {tx.external_reference_id for tx in transactions}
        )
        pool = await _unlinked_entries(db, account.id, transactions)
        categories_result = await db.execute(
            select(Category).where(Category.user_id == user_id).order_by(Category.name)
        )
        categories = list(categories_result.scalars().all())

        for tx in transactions:
            if tx.external_reference_id in seen:
                result.skipped += 1
                continue
            seen.add(tx.external_reference_id)

            match = find_link_match(tx, pool)
            if match is not None:
                match.external_reference_id = tx.external_reference_id
                pool.remove(match)
                result.linked += 1
                logger.info(
                    "Linked feed transaction to ledger entry",
                    external_reference_id=tx.external_reference_id,
                    entry_id=str(match.id),
                )
                continue

            suggestion: UUID | None = None
            try:
                suggestion = await suggester.suggest_category(tx.memo, categories)
            except Exception as exc:  # noqa: BLE001
                result.classification_failures += 1
                log_exception(
                    logger,
                    exc,
                    "Category suggestion failed, staging without suggestion",
                    level="warning",
                    include_traceback=False,
                    external_reference_id=tx.external_reference_id,
                )

            db.add(
                CandidateEntry(
                    account_id=account.id,
                    entry_date=tx.booking_date,
                    amount=tx.amount,
                    description=tx.memo,
                    external_reference_id=tx.external_reference_id,
                    suggested_category_id=suggestion,
                    status=CandidateStatus.PENDING,
                )
            )
            result.staged += 1

        await db.flush()
        timing.update(
            fetched=result.fetched,
            linked=result.linked,
            staged=result.staged,
            skipped=result.skipped,
            classification_failures=result.classification_failures,
        )

    return result
