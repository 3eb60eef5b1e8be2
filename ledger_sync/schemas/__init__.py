from ledger_sync.schemas.base import BaseResponse, ListResponse
from ledger_sync.schemas.feed import FeedSyncRequest, FeedSyncResponse
from ledger_sync.schemas.ledger import (
    BulkImportRequest,
    BulkImportResponse,
    LedgerEntryCreate,
    LedgerEntryResponse,
    TransferCreate,
    TransferResponse,
)
from ledger_sync.schemas.recurring import RecurringCheckRequest, RecurringCheckResponse
from ledger_sync.schemas.staging import (
    ApproveCandidateRequest,
    BulkApproveItem,
    BulkApproveRequest,
    BulkDismissRequest,
    BulkFailureItem,
    BulkOperationResponse,
    CandidateEntryResponse,
    LinkCandidateRequest,
    PendingCountResponse,
)

__all__ = [
    "ApproveCandidateRequest",
    "BaseResponse",
    "BulkApproveItem",
    "BulkApproveRequest",
    "BulkDismissRequest",
    "BulkFailureItem",
    "BulkImportRequest",
    "BulkImportResponse",
    "BulkOperationResponse",
    "CandidateEntryResponse",
    "FeedSyncRequest",
    "FeedSyncResponse",
    "LedgerEntryCreate",
    "LedgerEntryResponse",
    "LinkCandidateRequest",
    "ListResponse",
    "PendingCountResponse",
    "RecurringCheckRequest",
    "RecurringCheckResponse",
    "TransferCreate",
    "TransferResponse",
]
