"""Staging review queue API router."""

from uuid import UUID

from fastapi import APIRouter, Query

from ledger_sync.deps import CurrentUserId, DbSession
from ledger_sync.errors import PartialBatchFailure
from ledger_sync.models import CandidateStatus
from ledger_sync.schemas.base import ListResponse
from ledger_sync.schemas.ledger import LedgerEntryResponse
from ledger_sync.schemas.staging import (
    ApproveCandidateRequest,
    BulkApproveRequest,
    BulkDismissRequest,
    BulkOperationResponse,
    CandidateEntryResponse,
    LinkCandidateRequest,
    PendingCountResponse,
)
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

router = APIRouter(prefix="/staging", tags=["staging"])


@router.get("", response_model=ListResponse[CandidateEntryResponse])
async def list_staged(
    db: DbSession,
    user_id: CurrentUserId,
    account_id: UUID | None = None,
    status: CandidateStatus | None = CandidateStatus.PENDING,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
) -> ListResponse[CandidateEntryResponse]:
    items, total = await list_candidates(
        db, user_id, account_id=account_id, status=status, limit=limit, offset=offset
    )
    return ListResponse[CandidateEntryResponse](
        items=[CandidateEntryResponse.model_validate(item) for item in items],
        total=total,
    )


@router.get("/pending-count", response_model=PendingCountResponse)
async def pending_count(db: DbSession, user_id: CurrentUserId) -> PendingCountResponse:
    return PendingCountResponse(count=await count_pending(db, user_id))


@router.post("/bulk-approve", response_model=BulkOperationResponse)
async def bulk_approve_staged(
    payload: BulkApproveRequest,
    db: DbSession,
    user_id: CurrentUserId,
) -> BulkOperationResponse:
    """Approve many candidates; answers 207 with itemized failures when some fail."""
    result = await bulk_approve(db, payload.items, user_id)
    await db.commit()
    if result.failures:
        raise PartialBatchFailure(result)
    return BulkOperationResponse.model_validate(result)


@router.post("/bulk-dismiss", response_model=BulkOperationResponse)
async def bulk_dismiss_staged(
    payload: BulkDismissRequest,
    db: DbSession,
    user_id: CurrentUserId,
) -> BulkOperationResponse:
    result = await bulk_dismiss(db, payload.ids, user_id)
    await db.commit()
    if result.failures:
        raise PartialBatchFailure(result)
    return BulkOperationResponse.model_validate(result)


@router.post("/{candidate_id}/approve", response_model=LedgerEntryResponse)
async def approve_staged(
    candidate_id: UUID,
    db: DbSession,
    user_id: CurrentUserId,
    payload: ApproveCandidateRequest | None = None,
) -> LedgerEntryResponse:
    overrides = payload or ApproveCandidateRequest()
    entry = await approve_candidate(
        db,
        candidate_id,
        user_id,
        category_id=overrides.category_id,
        description=overrides.description,
        entry_date=overrides.entry_date,
        amount=overrides.amount,
    )
    await db.commit()
    return LedgerEntryResponse.model_validate(entry)


@router.post("/{candidate_id}/dismiss", response_model=CandidateEntryResponse)
async def dismiss_staged(
    candidate_id: UUID,
    db: DbSession,
    user_id: CurrentUserId,
) -> CandidateEntryResponse:
    candidate = await dismiss_candidate(db, candidate_id, user_id)
    await db.commit()
    return CandidateEntryResponse.model_validate(candidate)


@router.post("/{candidate_id}/restore", response_model=CandidateEntryResponse)
async def restore_staged(
    candidate_id: UUID,
    db: DbSession,
    user_id: CurrentUserId,
) -> CandidateEntryResponse:
    candidate = await restore_candidate(db, candidate_id, user_id)
    await db.commit()
    return CandidateEntryResponse.model_validate(candidate)


@router.post("/{candidate_id}/link", response_model=LedgerEntryResponse)
async def link_staged(
    candidate_id: UUID,
    payload: LinkCandidateRequest,
    db: DbSession,
    user_id: CurrentUserId,
) -> LedgerEntryResponse:
    entry = await link_candidate(db, candidate_id, user_id, payload.entry_id)
    await db.commit()
    return LedgerEntryResponse.model_validate(entry)
