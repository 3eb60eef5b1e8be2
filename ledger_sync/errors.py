"""Domain errors raised by ledger services.

Routers never see SQLAlchemy or httpx exceptions directly; services translate
them into this hierarchy and the application maps it to HTTP responses.
"""

from dataclasses import dataclass, field
from uuid import UUID


class LedgerSyncError(Exception):
    """Base class for ledger errors."""


class ValidationError(LedgerSyncError):
    """Input rejected before anything was written."""


class InvalidTransitionError(ValidationError):
    """Candidate is not in a state that allows the requested transition."""

    def __init__(self, candidate_id: UUID, current: str, action: str) -> None:
        self.candidate_id = candidate_id
        self.current = current
        self.action = action
        super().__init__(f"Cannot {action} candidate {candidate_id} in status '{current}'")


class NotFoundError(LedgerSyncError):
    """Referenced row does not exist or belongs to another user."""

    def __init__(self, resource: str, resource_id: UUID | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        message = f"{resource} not found" if resource_id is None else f"{resource} {resource_id} not found"
        super().__init__(message)


class FeedError(LedgerSyncError):
    """Base class for bank feed failures."""


class FeedAuthenticationError(FeedError):
    """Feed credentials were rejected or the access token expired."""


class FeedRateLimitError(FeedError):
    """Feed refused the call because of rate limiting; safe to retry later."""

    def __init__(self, message: str = "Bank feed rate limit reached", retry_after: int | None = None) -> None:
        self.retry_after = retry_after
        super().__init__(message)


class FeedUnavailableError(FeedError):
    """Feed could not be reached or answered with a server error."""


class ClassificationError(LedgerSyncError):
    """Category suggestion could not be produced."""


@dataclass
class BulkFailure:
    id: UUID
    reason: str


@dataclass
class BulkOperationResult:
    success_count: int = 0
    succeeded_ids: list[UUID] = field(default_factory=list)
    failures: list[BulkFailure] = field(default_factory=list)

    def record_success(self, item_id: UUID) -> None:
        self.success_count += 1
        self.succeeded_ids.append(item_id)

    def record_failure(self, item_id: UUID, reason: str) -> None:
        self.failures.append(BulkFailure(id=item_id, reason=reason))


class PartialBatchFailure(LedgerSyncError):
    """Some items of a batch failed; the successful ones were committed."""

    def __init__(self, result: BulkOperationResult) -> None:
        self.result = result
        super().__init__(
            f"{len(result.failures)} of {result.success_count + len(result.failures)} items failed"
        )
