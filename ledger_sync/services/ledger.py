"""Ledger write path: manual entries, transfers and deletes."""

from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_sync.errors import NotFoundError, ValidationError
from ledger_sync.logger import get_logger
from ledger_sync.models import Account, Category, EntryType, LedgerEntry
from ledger_sync.schemas.ledger import LedgerEntryCreate, TransferCreate

logger = get_logger(__name__)


async def get_account(db: AsyncSession, account_id: UUID, user_id: UUID) -> Account:
    result = await db.execute(
        select(Account).where(Account.id == account_id).where(Account.user_id == user_id)
    )
    account = result.scalar_one_or_none()
    if account is None:
        raise NotFoundError("Account", account_id)
    return account


async def ensure_accounts_owned(db: AsyncSession, user_id: UUID, account_ids: Iterable[UUID]) -> None:
    """Raise NotFoundError unless every account id belongs to the user."""
    wanted = set(account_ids)
    if not wanted:
        return
    result = await db.execute(
        select(Account.id).where(Account.id.in_(wanted)).where(Account.user_id == user_id)
    )
    missing = wanted - set(result.scalars().all())
    if missing:
        raise NotFoundError("Account", sorted(str(account_id) for account_id in missing)[0])


async def get_category(db: AsyncSession, category_id: UUID, user_id: UUID) -> Category:
    result = await db.execute(
        select(Category).where(Category.id == category_id).where(Category.user_id == user_id)
    )
    category = result.scalar_one_or_none()
    if category is None:
        raise ValidationError(f"Category {category_id} does not belong to the user")
    return category


async def get_entry(db: AsyncSession, entry_id: UUID, user_id: UUID) -> LedgerEntry:
    result = await db.execute(
        select(LedgerEntry)
        .join(Account, Account.id == LedgerEntry.account_id)
        .where(LedgerEntry.id == entry_id)
        .where(Account.user_id == user_id)
    )
    entry = result.scalar_one_or_none()
    if entry is None:
        raise NotFoundError("Ledger entry", entry_id)
    return entry


async def find_by_external_reference(
    db: AsyncSession, account_id: UUID, external_reference_id: str
) -> LedgerEntry | None:
    result = await db.execute(
        select(LedgerEntry)
        .where(LedgerEntry.account_id == account_id)
        .where(LedgerEntry.external_reference_id == external_reference_id)
    )
    return result.scalar_one_or_none()


def build_entry(
    *,
    account_id: UUID,
    entry_date: date,
    amount: Decimal,
    description: str,
    entry_type: EntryType,
    category_id: UUID | None = None,
    external_reference_id: str | None = None,
    linked_entry_id: UUID | None = None,
) -> LedgerEntry:
    """Build an unsaved ledger entry with a positive amount."""
    if amount <= 0:
        raise ValidationError("Ledger amounts must be positive")
    return LedgerEntry(
        account_id=account_id,
        category_id=category_id,
        entry_date=entry_date,
        amount=amount,
        description=description.strip(),
        type=entry_type,
        external_reference_id=external_reference_id,
        linked_entry_id=linked_entry_id,
    )


async def create_entry(db: AsyncSession, user_id: UUID, data: LedgerEntryCreate) -> LedgerEntry:
    """Create a single manually entered ledger row."""
    await get_account(db, data.account_id, user_id)
    if data.category_id is not None:
        await get_category(db, data.category_id, user_id)

    entry = build_entry(
        account_id=data.account_id,
        entry_date=data.entry_date,
        amount=data.amount,
        description=data.description,
        entry_type=data.type,
        category_id=data.category_id,
        external_reference_id=data.external_reference_id,
    )
    db.add(entry)
    await db.flush()
    await db.refresh(entry)

    logger.info(
        "Ledger entry created",
        entry_id=str(entry.id),
        account_id=str(entry.account_id),
        entry_type=entry.type.value,
    )
    return entry


async def create_transfer(
    db: AsyncSession, user_id: UUID, data: TransferCreate
) -> tuple[LedgerEntry, LedgerEntry]:
    """Write both legs of a transfer and link them to each other."""
    if data.from_account_id == data.to_account_id:
        raise ValidationError("Source and destination accounts must be different")
    await ensure_accounts_owned(db, user_id, [data.from_account_id, data.to_account_id])
    if data.category_id is not None:
        await get_category(db, data.category_id, user_id)

    outgoing = build_entry(
        account_id=data.from_account_id,
        entry_date=data.entry_date,
        amount=data.amount,
        description=data.description,
        entry_type=EntryType.EXPENSE,
        category_id=data.category_id,
    )
    db.add(outgoing)
    await db.flush()

    incoming = build_entry(
        account_id=data.to_account_id,
        entry_date=data.entry_date,
        amount=data.amount,
        description=data.description,
        entry_type=EntryType.INCOME,
        category_id=data.category_id,
        linked_entry_id=outgoing.id,
    )
    db.add(incoming)
    await db.flush()

    outgoing.linked_entry_id = incoming.id
    await db.flush()
    await db.refresh(outgoing)
    await db.refresh(incoming)

    logger.info(
        "Transfer created",
        from_entry_id=str(outgoing.id),
        to_entry_id=str(incoming.id),
        amount=str(data.amount),
    )
    return outgoing, incoming


async def delete_entry(db: AsyncSession, user_id: UUID, entry_id: UUID) -> None:
    """Delete an entry, clearing any link that pointed at it first."""
    entry = await get_entry(db, entry_id, user_id)

    await db.execute(
        update(LedgerEntry)
        .where(LedgerEntry.linked_entry_id == entry.id)
        .values(linked_entry_id=None)
        .execution_options(synchronize_session="fetch")
    )
    await db.delete(entry)
    await db.flush()
    logger.info("Ledger entry deleted", entry_id=str(entry_id))

