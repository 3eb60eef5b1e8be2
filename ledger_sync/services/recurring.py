"""Recurring expense matcher.

For a (user, year, month) period, every expected occurrence of every active
definition is looked up in the ledger and recorded as one check row:
MATCHED with the chosen entry, PENDING while the date is still ahead, or
MISSING. Re-running a period overwrites its rows in place.
"""

import calendar
from collections.abc import Sequence
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_sync.errors import ValidationError
from ledger_sync.logger import get_logger, log_timing
from ledger_sync.models import (
    Account,
    CheckStatus,
    LedgerEntry,
    RecurringExpense,
    RecurringExpenseCheck,
)
from ledger_sync.services.occurrences import expected_dates

logger = get_logger(__name__)

MATCH_WINDOW_DAYS = 5
AMOUNT_TOLERANCE = Decimal("12.0")
MIN_NAME_TOKEN_LENGTH = 4

_CONFLICT_COLUMNS = ["recurring_expense_id", "year", "month", "expected_date"]


def amount_matches(definition: RecurringExpense, entry: LedgerEntry) -> bool:
    if definition.is_variable_amount:
        return True
    return abs(abs(entry.amount) - abs(definition.amount)) < AMOUNT_TOLERANCE


def description_matches(definition: RecurringExpense, description: str) -> bool:
    """Case-insensitive substring match on the pattern, else on the name.

    Without a pattern, any word of the name longer than three characters is
    enough, so "Netflix Premium" still matches "NETFLIX.COM".
    """
    text = (description or "").lower()
    pattern = (definition.match_pattern or "").strip().lower()
    if pattern:
        return pattern in text

    name = definition.name.strip().lower()
    if name and name in text:
        return True
    return any(token in text for token in name.split() if len(token) >= MIN_NAME_TOKEN_LENGTH)


def pick_match(
    definition: RecurringExpense,
    expected: date,
    entries: Sequence[LedgerEntry],
    claimed: set[UUID],
) -> LedgerEntry | None:
    """Closest qualifying entry to ``expected``; ties go to the earlier, then lower id."""
    window = timedelta(days=MATCH_WINDOW_DAYS)
    candidates = [
        entry
        for entry in entries
        if entry.id not in claimed
        and expected - window <= entry.entry_date <= expected + window
        and amount_matches(definition, entry)
        and description_matches(definition, entry.description)
    ]
    if not candidates:
        return None
    return min(
        candidates,
        key=lambda entry: (abs((entry.entry_date - expected).days), entry.entry_date, entry.id),
    )


def _month_bounds(year: int, month: int) -> tuple[date, date]:
    if not 1 <= month <= 12:
        raise ValidationError(f"Invalid month: {month}")
    return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])


def _occurrences_in_period(definition: RecurringExpense, year: int, month: int) -> list[date]:
    return [
        expected
        for expected in expected_dates(definition, year, month)
        if expected >= definition.start_date
        and (definition.end_date is None or expected <= definition.end_date)
    ]


def _insert_for(db: AsyncSession):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert
    if dialect == "sqlite":
        return sqlite_insert
    raise NotImplementedError(f"Upsert not supported for dialect {dialect}")


async def _upsert_check(db: AsyncSession, values: dict) -> None:
    insert = _insert_for(db)
    stmt = insert(RecurringExpenseCheck).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=_CONFLICT_COLUMNS,
        set_={
            "status": stmt.excluded.status,
            "matched_entry_id": stmt.excluded.matched_entry_id,
            "matched_date": stmt.excluded.matched_date,
            "matched_amount": stmt.excluded.matched_amount,
            "checked_at": stmt.excluded.checked_at,
        },
    )
    await db.execute(stmt)


async def _delete_stale_checks(
    db: AsyncSession, definition_id: UUID, year: int, month: int, keep: list[date]
) -> None:
    stmt = (
        delete(RecurringExpenseCheck)
        .where(RecurringExpenseCheck.recurring_expense_id == definition_id)
        .where(RecurringExpenseCheck.year == year)
        .where(RecurringExpenseCheck.month == month)
    )
    if keep:
        stmt = stmt.where(RecurringExpenseCheck.expected_date.notin_(keep))
    await db.execute(stmt)


async def check_recurring_expenses(
    db: AsyncSession,
    user_id: UUID,
    year: int,
    month: int,
    today: date | None = None,
) -> list[RecurringExpenseCheck]:
    """Recompute and store the checks of every active definition for a month."""
    first, last = _month_bounds(year, month)
    today = today or date.today()
    window = timedelta(days=MATCH_WINDOW_DAYS)

    with log_timing(
        "check_recurring_expenses",
        logger=logger,
        user_id=str(user_id),
        year=year,
        month=month,
    ) as timing:
        definitions_result = await db.execute(
            select(RecurringExpense)
            .join(Account, Account.id == RecurringExpense.account_id)
            .where(Account.user_id == user_id)
            .where(RecurringExpense.active.is_(True))
            .order_by(RecurringExpense.name, RecurringExpense.id)
        )
        definitions = list(definitions_result.scalars().all())

        entries_result = await db.execute(
            select(LedgerEntry)
            .join(Account, Account.id == LedgerEntry.account_id)
            .where(Account.user_id == user_id)
            .where(LedgerEntry.entry_date >= first - window)
            .where(LedgerEntry.entry_date <= last + window)
            .order_by(LedgerEntry.entry_date, LedgerEntry.id)
        )
        entries = list(entries_result.scalars().all())

        checked_at = datetime.now(UTC)
        counts = {status: 0 for status in CheckStatus}
        for definition in definitions:
            if definition.end_date is not None and definition.end_date < first:
                occurrences: list[date] = []
            else:
                occurrences = _occurrences_in_period(definition, year, month)

            await _delete_stale_checks(db, definition.id, year, month, occurrences)

            claimed: set[UUID] = set()
            for expected in occurrences:
                match = pick_match(definition, expected, entries, claimed)
                if match is not None:
                    claimed.add(match.id)
                    status = CheckStatus.MATCHED
                elif today < expected:
                    status = CheckStatus.PENDING
                else:
                    status = CheckStatus.MISSING
                counts[status] += 1

                await _upsert_check(
                    db,
                    {
                        "recurring_expense_id": definition.id,
                        "year": year,
                        "month": month,
                        "expected_date": expected,
                        "status": status,
                        "matched_entry_id": match.id if match else None,
                        "matched_date": match.entry_date if match else None,
                        "matched_amount": match.amount if match else None,
                        "checked_at": checked_at,
                    },
                )

        await db.flush()
        timing.update(
            definitions=len(definitions),
            matched=counts[CheckStatus.MATCHED],
            pending=counts[CheckStatus.PENDING],
            missing=counts[CheckStatus.MISSING],
        )

    return await get_checks(db, user_id, year, month)


def _user_checks_query(user_id: UUID):
    return (
        select(RecurringExpenseCheck)
        .join(RecurringExpense, RecurringExpense.id == RecurringExpenseCheck.recurring_expense_id)
        .join(Account, Account.id == RecurringExpense.account_id)
        .where(Account.user_id == user_id)
        .execution_options(populate_existing=True)
    )


async def get_checks(
    db: AsyncSession, user_id: UUID, year: int, month: int
) -> list[RecurringExpenseCheck]:
    """Stored checks of a period, by expected date."""
    _month_bounds(year, month)
    result = await db.execute(
        _user_checks_query(user_id)
        .where(RecurringExpenseCheck.year == year)
        .where(RecurringExpenseCheck.month == month)
        .order_by(RecurringExpenseCheck.expected_date, RecurringExpenseCheck.recurring_expense_id)
    )
    return list(result.scalars().all())


async def get_missing(
    db: AsyncSession,
    user_id: UUID,
    year: int | None = None,
    month: int | None = None,
) -> list[RecurringExpenseCheck]:
    """Stored MISSING checks, most recent expected date first."""
    query = _user_checks_query(user_id).where(RecurringExpenseCheck.status == CheckStatus.MISSING)
    if year is not None:
        query = query.where(RecurringExpenseCheck.year == year)
    if month is not None:
        if not 1 <= month <= 12:
            raise ValidationError(f"Invalid month: {month}")
        query = query.where(RecurringExpenseCheck.month == month)
    result = await db.execute(query.order_by(RecurringExpenseCheck.expected_date.desc()))
    return list(result.scalars().all())
