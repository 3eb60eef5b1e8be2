"""Bulk ledger import with canonical-key deduplication."""

from collections.abc import Sequence
from datetime import timedelta
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_sync.config import settings
from ledger_sync.logger import get_logger, log_timing
from ledger_sync.models import LedgerEntry
from ledger_sync.schemas.ledger import LedgerEntryCreate
from ledger_sync.services.canonical_key import build_canonical_key
from ledger_sync.services.ledger import build_entry

logger = get_logger(__name__)


async def _load_existing_keys(
    db: AsyncSession, rows: Sequence[LedgerEntryCreate]
) -> set[str]:
    """Canonical keys of stored rows near the batch's date span.

    The window is widened by the import buffer on both sides so that a
    re-import of a slightly shifted export still sees its earlier rows.
    """
    buffer = timedelta(days=settings.import_dedup_buffer_days)
    start = min(row.entry_date for row in rows) - buffer
    end = max(row.entry_date for row in rows) + buffer
    account_ids = {row.account_id for row in rows}

    result = await db.execute(
        select(
            LedgerEntry.account_id,
            LedgerEntry.entry_date,
            LedgerEntry.amount,
            LedgerEntry.description,
        )
        .where(LedgerEntry.account_id.in_(account_ids))
        .where(LedgerEntry.entry_date >= start)
        .where(LedgerEntry.entry_date <= end)
    )
    return {
        build_canonical_key(account_id, entry_date, amount, description)
        for account_id, entry_date, amount, description in result.all()
    }


async def _load_existing_references(
    db: AsyncSession, rows: Sequence[LedgerEntryCreate]
) -> set[tuple[UUID, str]]:
    """(account_id, external_reference_id) pairs already stored for the batch."""
    references = {row.external_reference_id for row in rows if row.external_reference_id is not None}
    if not references:
        return set()
    account_ids = {row.account_id for row in rows}

    result = await db.execute(
        select(LedgerEntry.account_id, LedgerEntry.external_reference_id)
        .where(LedgerEntry.account_id.in_(account_ids))
        .where(LedgerEntry.external_reference_id.in_(references))
    )
    return {(account_id, reference) for account_id, reference in result.all()}


async def import_entries(db: AsyncSession, rows: Sequence[LedgerEntryCreate]) -> list[LedgerEntry]:
    """Insert rows that are not already in the ledger.

    A row is a duplicate when its canonical key matches a stored row in the
    dedup window or an earlier row of the same batch, or when its
    external_reference_id is already used on the same account. Duplicates
    are dropped without error. Returns only the inserted entries.
    """
    if not rows:
        return []

    with log_timing("import_entries", logger=logger, rows=len(rows)) as timing:
        seen = await _load_existing_keys(db, rows)
        seen_references = await _load_existing_references(db, rows)

        to_insert: list[LedgerEntry] = []
        for row in rows:
            key = build_canonical_key(row.account_id, row.entry_date, row.amount, row.description)
            reference = (
                (row.account_id, row.external_reference_id)
                if row.external_reference_id is not None
                else None
            )
            if key in seen or reference in seen_references:
                continue
            seen.add(key)
            if reference is not None:
                seen_references.add(reference)
            to_insert.append(
                build_entry(
                    account_id=row.account_id,
                    entry_date=row.entry_date,
                    amount=row.amount,
                    description=row.description,
                    entry_type=row.type,
                    category_id=row.category_id,
                    external_reference_id=row.external_reference_id,
                )
            )

        timing["inserted"] = len(to_insert)
        timing["skipped"] = len(rows) - len(to_insert)

        if not to_insert:
            return []

        db.add_all(to_insert)
        await db.flush()

    return to_insert
