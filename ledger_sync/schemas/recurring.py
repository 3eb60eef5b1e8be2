"""Pydantic schemas for recurring expense checks."""

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated
from uuid import UUID

from pydantic import BaseModel, Field

from ledger_sync.models.recurring import CheckStatus
from ledger_sync.schemas.base import BaseResponse


class RecurringCheckRequest(BaseModel):
    year: Annotated[int, Field(ge=1970, le=9999)]
    month: Annotated[int, Field(ge=1, le=12)]


class RecurringCheckResponse(BaseResponse):
    id: UUID
    recurring_expense_id: UUID
    year: int
    month: int
    expected_date: date
    status: CheckStatus
    matched_entry_id: UUID | None = None
    matched_date: date | None = None
    matched_amount: Decimal | None = None
    checked_at: datetime
