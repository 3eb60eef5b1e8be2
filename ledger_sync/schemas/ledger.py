"""Pydantic schemas for ledger entries and transfers."""

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from ledger_sync.models.ledger import EntryType
from ledger_sync.schemas.base import BaseResponse

PositiveAmount = Annotated[Decimal, Field(gt=0, max_digits=12, decimal_places=2)]


class LedgerEntryCreate(BaseModel):
    """Schema for one manually entered or imported ledger row."""

    account_id: UUID
    category_id: UUID | None = None
    entry_date: date
    amount: PositiveAmount
    description: Annotated[str, Field(max_length=500)] = ""
    type: EntryType
    external_reference_id: Annotated[str | None, Field(None, max_length=255)] = None


class LedgerEntryResponse(BaseResponse):
    id: UUID
    account_id: UUID
    category_id: UUID | None = None
    entry_date: date
    amount: Decimal
    description: str
    type: EntryType
    external_reference_id: str | None = None
    linked_entry_id: UUID | None = None
    created_at: datetime
    updated_at: datetime


class BulkImportRequest(BaseModel):
    entries: Annotated[list[LedgerEntryCreate], Field(max_length=10_000)]


class BulkImportResponse(BaseModel):
    """Result of a bulk import; duplicates are skipped silently."""

    inserted: int
    skipped: int
    items: list[LedgerEntryResponse]


class TransferCreate(BaseModel):
    """Money moved between two of the caller's accounts."""

    entry_date: date
    amount: PositiveAmount
    description: Annotated[str, Field(max_length=500)] = ""
    from_account_id: UUID
    to_account_id: UUID
    category_id: UUID | None = None

    @model_validator(mode="after")
    def validate_distinct_accounts(self) -> "TransferCreate":
        if self.from_account_id == self.to_account_id:
            raise ValueError("Source and destination accounts must be different")
        return self


class TransferResponse(BaseModel):
    from_entry: LedgerEntryResponse
    to_entry: LedgerEntryResponse
