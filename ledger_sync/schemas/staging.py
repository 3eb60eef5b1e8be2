"""Pydantic schemas for the staging review queue."""

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated
from uuid import UUID

from pydantic import BaseModel, Field

from ledger_sync.models.staging import CandidateStatus
from ledger_sync.schemas.base import BaseResponse


class CandidateEntryResponse(BaseResponse):
    id: UUID
    account_id: UUID
    entry_date: date
    amount: Decimal
    description: str
    external_reference_id: str
    suggested_category_id: UUID | None = None
    status: CandidateStatus
    created_at: datetime
    updated_at: datetime


class ApproveCandidateRequest(BaseModel):
    """Optional overrides applied when a candidate becomes a ledger entry."""

    category_id: UUID | None = None
    description: Annotated[str | None, Field(None, max_length=500)] = None
    entry_date: date | None = None
    # Signed like the candidate amount; the ledger stores the absolute value.
    amount: Annotated[Decimal | None, Field(None, max_digits=12, decimal_places=2)] = None


class LinkCandidateRequest(BaseModel):
    entry_id: UUID


class BulkApproveItem(BaseModel):
    id: UUID
    category_id: UUID | None = None


class BulkApproveRequest(BaseModel):
    items: Annotated[list[BulkApproveItem], Field(min_length=1, max_length=500)]


class BulkDismissRequest(BaseModel):
    ids: Annotated[list[UUID], Field(min_length=1, max_length=500)]


class BulkFailureItem(BaseResponse):
    id: UUID
    reason: str


class BulkOperationResponse(BaseResponse):
    success_count: int
    succeeded_ids: list[UUID]
    failures: list[BulkFailureItem]


class PendingCountResponse(BaseModel):
    count: int
