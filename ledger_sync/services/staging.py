"""Staging lifecycle for candidate entries produced by the bank feed.

State machine::

    pending --approve--> reconciled   (writes or finds one ledger entry)
    pending --link-----> reconciled   (stamps an existing ledger entry)
    pending --dismiss--> dismissed
    dismissed --restore--> pending

Any other transition raises InvalidTransitionError.
"""

from collections.abc import Sequence
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_sync.errors import (
    BulkOperationResult,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from ledger_sync.logger import get_logger
from ledger_sync.models import Account, CandidateEntry, CandidateStatus, EntryType, LedgerEntry
from ledger_sync.schemas.staging import BulkApproveItem
from ledger_sync.services.ledger import (
    build_entry,
    find_by_external_reference,
    get_category,
    get_entry,
)

logger = get_logger(__name__)


async def get_candidate(db: AsyncSession, candidate_id: UUID, user_id: UUID) -> CandidateEntry:
    result = await db.execute(
        select(CandidateEntry)
        .join(Account, Account.id == CandidateEntry.account_id)
        .where(CandidateEntry.id == candidate_id)
        .where(Account.user_id == user_id)
    )
    candidate = result.scalar_one_or_none()
    if candidate is None:
        raise NotFoundError("Candidate entry", candidate_id)
    return candidate


def _require_status(candidate: CandidateEntry, expected: CandidateStatus, action: str) -> None:
    if candidate.status != expected:
        raise InvalidTransitionError(candidate.id, candidate.status.value, action)


async def list_candidates(
    db: AsyncSession,
    user_id: UUID,
    *,
    account_id: UUID | None = None,
    status: CandidateStatus | None = CandidateStatus.PENDING,
    limit: int = 100,
    offset: int = 0,
) -> tuple[list[CandidateEntry], int]:
    """Return a page of candidates, newest booking date first, and the total count."""
    query = (
        select(CandidateEntry)
        .join(Account, Account.id == CandidateEntry.account_id)
        .where(Account.user_id == user_id)
    )
    if account_id is not None:
        query = query.where(CandidateEntry.account_id == account_id)
    if status is not None:
        query = query.where(CandidateEntry.status == status)

    total = (
        await db.execute(select(func.count()).select_from(query.subquery()))
    ).scalar_one()
    result = await db.execute(
        query.order_by(CandidateEntry.entry_date.desc(), CandidateEntry.id)
        .limit(limit)
        .offset(offset)
    )
    return list(result.scalars().all()), total


async def count_pending(db: AsyncSession, user_id: UUID) -> int:
    result = await db.execute(
        select(func.count())
        .select_from(CandidateEntry)
        .join(Account, Account.id == CandidateEntry.account_id)
        .where(Account.user_id == user_id)
        .where(CandidateEntry.status == CandidateStatus.PENDING)
    )
    return result.scalar_one()


async def approve_candidate(
    db: AsyncSession,
    candidate_id: UUID,
    user_id: UUID,
    category_id: UUID | None = None,
    description: str | None = None,
    entry_date: date | None = None,
    amount: Decimal | None = None,
) -> LedgerEntry:
    """Turn a pending candidate into a ledger entry.

    The category is the explicit override, else the stored suggestion. A
    candidate without either is rejected; no category is ever guessed here.

    If the account already holds a ledger entry with the candidate's
    external reference id, that entry is returned and nothing new is written.
    """
    candidate = await get_candidate(db, candidate_id, user_id)
    _require_status(candidate, CandidateStatus.PENDING, "approve")

    chosen_category = category_id or candidate.suggested_category_id
    if chosen_category is None:
        raise ValidationError("A category is required to approve a candidate entry")
    await get_category(db, chosen_category, user_id)

    signed_amount = candidate.amount if amount is None else amount
    if signed_amount == 0:
        raise ValidationError("Cannot approve a candidate with a zero amount")

    existing = await find_by_external_reference(
        db, candidate.account_id, candidate.external_reference_id
    )
    if existing is not None:
        candidate.status = CandidateStatus.RECONCILED
        await db.flush()
        logger.info(
            "Candidate already in ledger",
            candidate_id=str(candidate.id),
            entry_id=str(existing.id),
        )
        return existing

    entry = build_entry(
        account_id=candidate.account_id,
        entry_date=entry_date or candidate.entry_date,
        amount=abs(signed_amount),
        description=description if description is not None else candidate.description,
        entry_type=EntryType.EXPENSE if signed_amount < 0 else EntryType.INCOME,
        category_id=chosen_category,
        external_reference_id=candidate.external_reference_id,
    )
    db.add(entry)
    candidate.status = CandidateStatus.RECONCILED
    await db.flush()
    await db.refresh(entry)

    logger.info(
        "Candidate approved",
        candidate_id=str(candidate.id),
        entry_id=str(entry.id),
        category_id=str(chosen_category),
    )
    return entry


async def dismiss_candidate(db: AsyncSession, candidate_id: UUID, user_id: UUID) -> CandidateEntry:
    candidate = await get_candidate(db, candidate_id, user_id)
    _require_status(candidate, CandidateStatus.PENDING, "dismiss")
    candidate.status = CandidateStatus.DISMISSED
    await db.flush()
    logger.info("Candidate dismissed", candidate_id=str(candidate.id))
    return candidate


async def restore_candidate(db: AsyncSession, candidate_id: UUID, user_id: UUID) -> CandidateEntry:
    candidate = await get_candidate(db, candidate_id, user_id)
    _require_status(candidate, CandidateStatus.DISMISSED, "restore")
    candidate.status = CandidateStatus.PENDING
    await db.flush()
    logger.info("Candidate restored", candidate_id=str(candidate.id))
    return candidate


async def link_candidate(
    db: AsyncSession, candidate_id: UUID, user_id: UUID, entry_id: UUID
) -> LedgerEntry:
    """Reconcile a candidate against a ledger entry the user already recorded."""
    candidate = await get_candidate(db, candidate_id, user_id)
    _require_status(candidate, CandidateStatus.PENDING, "link")

    entry = await get_entry(db, entry_id, user_id)
    if entry.account_id != candidate.account_id:
        raise ValidationError("Ledger entry belongs to a different account")
    if entry.external_reference_id is not None:
        raise ValidationError("Ledger entry is already linked to a bank transaction")

    entry.external_reference_id = candidate.external_reference_id
    candidate.status = CandidateStatus.RECONCILED
    await db.flush()
    await db.refresh(entry)

    logger.info("Candidate linked", candidate_id=str(candidate.id), entry_id=str(entry.id))
    return entry


async def bulk_approve(
    db: AsyncSession, items: Sequence[BulkApproveItem], user_id: UUID
) -> BulkOperationResult:
    """Approve each item independently and itemize the ones that fail."""
    result = BulkOperationResult()
    for item in items:
        try:
            await approve_candidate(db, item.id, user_id, category_id=item.category_id)
        except (NotFoundError, ValidationError) as exc:
            logger.warning("Bulk approve item failed", candidate_id=str(item.id), error=str(exc))
            result.record_failure(item.id, str(exc))
            continue
        result.record_success(item.id)

    logger.info(
        "Bulk approve finished",
        success_count=result.success_count,
        failure_count=len(result.failures),
    )
    return result


async def bulk_dismiss(
    db: AsyncSession, ids: Sequence[UUID], user_id: UUID
) -> BulkOperationResult:
    result = BulkOperationResult()
    for candidate_id in ids:
        try:
            await dismiss_candidate(db, candidate_id, user_id)
        except (NotFoundError, ValidationError) as exc:
            logger.warning("Bulk dismiss item failed", candidate_id=str(candidate_id), error=str(exc))
            result.record_failure(candidate_id, str(exc))
            continue
        result.record_success(candidate_id)

    logger.info(
        "Bulk dismiss finished",
        success_count=result.success_count,
        failure_count=len(result.failures),
    )
    return result
