"""Recurring expense check API router."""

from fastapi import APIRouter, Query

from ledger_sync.deps import CurrentUserId, DbSession
from ledger_sync.schemas.base import ListResponse
from ledger_sync.schemas.recurring import RecurringCheckRequest, RecurringCheckResponse
from ledger_sync.services.recurring import check_recurring_expenses, get_checks, get_missing

router = APIRouter(prefix="/recurring", tags=["recurring"])


def _to_list(checks: list) -> ListResponse[RecurringCheckResponse]:
    return ListResponse[RecurringCheckResponse](
        items=[RecurringCheckResponse.model_validate(check) for check in checks],
        total=len(checks),
    )


@router.post("/checks", response_model=ListResponse[RecurringCheckResponse])
async def run_checks(
    payload: RecurringCheckRequest,
    db: DbSession,
    user_id: CurrentUserId,
) -> ListResponse[RecurringCheckResponse]:
    """Recompute the checks for a month; safe to call repeatedly."""
    checks = await check_recurring_expenses(db, user_id, payload.year, payload.month)
    await db.commit()
    return _to_list(checks)


@router.get("/checks", response_model=ListResponse[RecurringCheckResponse])
async def read_checks(
    db: DbSession,
    user_id: CurrentUserId,
    year: int = Query(..., ge=1970, le=9999),
    month: int = Query(..., ge=1, le=12),
) -> ListResponse[RecurringCheckResponse]:
    return _to_list(await get_checks(db, user_id, year, month))


@router.get("/missing", response_model=ListResponse[RecurringCheckResponse])
async def read_missing(
    db: DbSession,
    user_id: CurrentUserId,
    year: int | None = Query(None, ge=1970, le=9999),
    month: int | None = Query(None, ge=1, le=12),
) -> ListResponse[RecurringCheckResponse]:
    return _to_list(await get_missing(db, user_id, year, month))
