"""Ledger entry API router."""

from uuid import UUID

from fastapi import APIRouter, status

from ledger_sync.deps import CurrentUserId, DbSession
from ledger_sync.schemas.ledger import (
    BulkImportRequest,
    BulkImportResponse,
    LedgerEntryCreate,
    LedgerEntryResponse,
    TransferCreate,
    TransferResponse,
)
from ledger_sync.services.ledger import (
    create_entry,
    create_transfer,
    delete_entry,
    ensure_accounts_owned,
)
from ledger_sync.services.ledger_import import import_entries

router = APIRouter(prefix="/ledger", tags=["ledger"])


@router.post("/entries", response_model=LedgerEntryResponse, status_code=status.HTTP_201_CREATED)
async def create_ledger_entry(
    payload: LedgerEntryCreate,
    db: DbSession,
    user_id: CurrentUserId,
) -> LedgerEntryResponse:
    entry = await create_entry(db, user_id, payload)
    await db.commit()
    return LedgerEntryResponse.model_validate(entry)


@router.post("/entries/bulk", response_model=BulkImportResponse)
async def bulk_import_entries(
    payload: BulkImportRequest,
    db: DbSession,
    user_id: CurrentUserId,
) -> BulkImportResponse:
    """Import rows, silently skipping ones already in the ledger."""
    await ensure_accounts_owned(db, user_id, {row.account_id for row in payload.entries})
    inserted = await import_entries(db, payload.entries)
    await db.commit()
    return BulkImportResponse(
        inserted=len(inserted),
        skipped=len(payload.entries) - len(inserted),
        items=[LedgerEntryResponse.model_validate(entry) for entry in inserted],
    )


@router.post("/transfers", response_model=TransferResponse, status_code=status.HTTP_201_CREATED)
async def create_ledger_transfer(
    payload: TransferCreate,
    db: DbSession,
    user_id: CurrentUserId,
) -> TransferResponse:
    outgoing, incoming = await create_transfer(db, user_id, payload)
    await db.commit()
    return TransferResponse(
        from_entry=LedgerEntryResponse.model_validate(outgoing),
        to_entry=LedgerEntryResponse.model_validate(incoming),
    )


@router.delete("/entries/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_ledger_entry(
    entry_id: UUID,
    db: DbSession,
    user_id: CurrentUserId,
) -> None:
    await delete_entry(db, user_id, entry_id)
    await db.commit()
