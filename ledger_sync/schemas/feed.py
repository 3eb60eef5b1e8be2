"""Pydantic schemas for bank feed synchronization."""

from datetime import date

from pydantic import BaseModel, model_validator

from ledger_sync.schemas.base import BaseResponse


class FeedSyncRequest(BaseModel):
    """Optional window; defaults to the configured number of trailing days."""

    date_from: date | None = None
    date_to: date | None = None

    @model_validator(mode="after")
    def validate_window(self) -> "FeedSyncRequest":
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValueError("date_from must not be after date_to")
        return self


class FeedSyncResponse(BaseResponse):
    fetched: int
    linked: int
    staged: int
    skipped: int
    classification_failures: int
