"""Bank feed synchronization API router."""

from uuid import UUID

from fastapi import APIRouter

from ledger_sync.deps import CurrentUserId, DbSession, FeedClient, Suggester
from ledger_sync.schemas.feed import FeedSyncRequest, FeedSyncResponse
from ledger_sync.services.feed_sync import reconcile_account

router = APIRouter(prefix="/feed", tags=["feed"])


@router.post("/accounts/{account_id}/sync", response_model=FeedSyncResponse)
async def sync_account(
    account_id: UUID,
    db: DbSession,
    user_id: CurrentUserId,
    feed: FeedClient,
    suggester: Suggester,
    payload: FeedSyncRequest | None = None,
) -> FeedSyncResponse:
    window = payload or FeedSyncRequest()
    result = await reconcile_account(
        db,
        account_id,
        user_id,
        feed,
        suggester,
        date_from=window.date_from,
        date_to=window.date_to,
    )
    await db.commit()
    return FeedSyncResponse.model_validate(result)
