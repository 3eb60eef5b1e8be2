"""Tests for bank feed reconciliation.

GIVEN: An account linked to a bank feed and a ledger with some entries
WHEN: The feed is reconciled
THEN: Records are skipped, linked to ledger entries, or staged exactly once
"""

from datetime import date
from decimal import Decimal

import httpx
import pytest
import pytest_asyncio
from sqlalchemy import select

from ledger_sync.errors import (
    ClassificationError,
    FeedAuthenticationError,
    FeedRateLimitError,
    ValidationError,
)
from ledger_sync.models import CandidateEntry, CandidateStatus, LedgerEntry
from ledger_sync.services.bank_feed import FeedTransaction
from ledger_sync.services.classification import NullCategorySuggester, OpenRouterCategorySuggester
from ledger_sync.services.feed_sync import reconcile_account
from tests.factories import AccountFactory, CandidateEntryFactory, CategoryFactory, LedgerEntryFactory

WINDOW = {"date_from": date(2024, 6, 1), "date_to": date(2024, 6, 30)}


def _tx(reference, amount, booking_date, memo="Card payment"):
    return FeedTransaction(
        external_reference_id=reference,
        amount=Decimal(amount),
        booking_date=booking_date,
        memo=memo,
    )


class StaticFeed:
    def __init__(self, transactions, auth_failures=0, error=None):
        self.transactions = transactions
        self.auth_failures = auth_failures
        self.error = error
        self.fetch_calls = 0
        self.reauth_calls = 0

    async def fetch_transactions(self, feed_account_id, date_from, date_to):
        self.fetch_calls += 1
        if self.error is not None:
            raise self.error
        if self.auth_failures:
            self.auth_failures -= 1
            raise FeedAuthenticationError("token expired")
        return list(self.transactions)

    async def reauthenticate(self):
        self.reauth_calls += 1


class FixedSuggester:
    def __init__(self, category_id=None, fail_on=()):
        self.category_id = category_id
        self.fail_on = set(fail_on)
        self.calls = []

    async def suggest_category(self, description, categories):
        self.calls.append(description)
        if description in self.fail_on:
            raise ClassificationError("model timeout")
        return self.category_id


@pytest_asyncio.fixture
async def account(db, user_id):
    return await AccountFactory.create_async(db, user_id=user_id, feed_account_id="gc-acc-1")


async def _candidates(db, account_id):
    result = await db.execute(
        select(CandidateEntry)
        .where(CandidateEntry.account_id == account_id)
        .order_by(CandidateEntry.external_reference_id)
    )
    return list(result.scalars().all())


@pytest.mark.asyncio
async def test_new_records_are_staged_with_suggestion(db, user_id, account):
    category = await CategoryFactory.create_async(db, user_id=user_id)
    feed = StaticFeed([_tx("a", "-9.99", date(2024, 6, 3), "NETFLIX")])
    suggester = FixedSuggester(category.id)

    result = await reconcile_account(db, account.id, user_id, feed, suggester, **WINDOW)

    assert (result.fetched, result.staged, result.linked, result.skipped) == (1, 1, 0, 0)
    [candidate] = await _candidates(db, account.id)
    assert candidate.status == CandidateStatus.PENDING
    assert candidate.amount == Decimal("-9.99")
    assert candidate.suggested_category_id == category.id
    assert candidate.description == "NETFLIX"


@pytest.mark.asyncio
async def test_second_run_is_noop(db, user_id, account):
    feed = StaticFeed([_tx("a", "-1.00", date(2024, 6, 3)), _tx("b", "2.00", date(2024, 6, 4))])

    first = await reconcile_account(db, account.id, user_id, feed, NullCategorySuggester(), **WINDOW)
    second = await reconcile_account(db, account.id, user_id, feed, NullCategorySuggester(), **WINDOW)

    assert first.staged == 2
    assert (second.staged, second.linked, second.skipped) == (0, 0, 2)
    assert len(await _candidates(db, account.id)) == 2


@pytest.mark.asyncio
async def test_dismissed_reference_is_not_restaged(db, user_id, account):
    await CandidateEntryFactory.create_async(
        db, account_id=account.id, external_reference_id="a", status=CandidateStatus.DISMISSED
    )
    feed = StaticFeed([_tx("a", "-1.00", date(2024, 6, 3))])

    result = await reconcile_account(db, account.id, user_id, feed, NullCategorySuggester(), **WINDOW)

    assert result.skipped == 1
    assert result.staged == 0


@pytest.mark.asyncio
async def test_repeated_reference_in_one_response_is_skipped(db, user_id, account):
    feed = StaticFeed([_tx("a", "-1.00", date(2024, 6, 3)), _tx("a", "-1.00", date(2024, 6, 3))])

    result = await reconcile_account(db, account.id, user_id, feed, NullCategorySuggester(), **WINDOW)

    assert (result.staged, result.skipped) == (1, 1)


@pytest.mark.asyncio
async def test_matching_ledger_entry_is_linked(db, user_id, account):
    """GIVEN a manual entry of 50.00 two days before the booking date
    WHEN a -50.00 feed record arrives
    THEN the entry is stamped with the reference and nothing is staged"""
    entry = await LedgerEntryFactory.create_async(
        db, account_id=account.id, entry_date=date(2024, 6, 8), amount=Decimal("50.00")
    )
    feed = StaticFeed([_tx("gc-50", "-50.00", date(2024, 6, 10))])

    result = await reconcile_account(db, account.id, user_id, feed, NullCategorySuggester(), **WINDOW)

    assert (result.linked, result.staged) == (1, 0)
    assert entry.external_reference_id == "gc-50"
    assert await _candidates(db, account.id) == []


@pytest.mark.asyncio
async def test_entry_outside_three_days_is_not_linked(db, user_id, account):
    await LedgerEntryFactory.create_async(
        db, account_id=account.id, entry_date=date(2024, 6, 5), amount=Decimal("50.00")
    )
    feed = StaticFeed([_tx("gc-50", "-50.00", date(2024, 6, 9))])

    result = await reconcile_account(db, account.id, user_id, feed, NullCategorySuggester(), **WINDOW)

    assert (result.linked, result.staged) == (0, 1)


@pytest.mark.asyncio
async def test_each_entry_links_at_most_once(db, user_id, account):
    earlier = await LedgerEntryFactory.create_async(
        db, account_id=account.id, entry_date=date(2024, 6, 9), amount=Decimal("20.00")
    )
    later = await LedgerEntryFactory.create_async(
        db, account_id=account.id, entry_date=date(2024, 6, 11), amount=Decimal("20.00")
    )
    feed = StaticFeed(
        [
            _tx("r1", "-20.00", date(2024, 6, 10)),
            _tx("r2", "-20.00", date(2024, 6, 10)),
            _tx("r3", "-20.00", date(2024, 6, 10)),
        ]
    )

    result = await reconcile_account(db, account.id, user_id, feed, NullCategorySuggester(), **WINDOW)

    assert (result.linked, result.staged) == (2, 1)
    assert earlier.external_reference_id == "r1"
    assert later.external_reference_id == "r2"


@pytest.mark.asyncio
async def test_entry_with_reference_is_not_relinked(db, user_id, account):
    await LedgerEntryFactory.create_async(
        db,
        account_id=account.id,
        entry_date=date(2024, 6, 10),
        amount=Decimal("20.00"),
        external_reference_id="old",
    )
    feed = StaticFeed([_tx("new", "-20.00", date(2024, 6, 10))])

    result = await reconcile_account(db, account.id, user_id, feed, NullCategorySuggester(), **WINDOW)

    assert (result.linked, result.staged) == (0, 1)


@pytest.mark.asyncio
async def test_classification_failure_stages_without_suggestion(db, user_id, account):
    category = await CategoryFactory.create_async(db, user_id=user_id)
    feed = StaticFeed(
        [
            _tx("a", "-3.00", date(2024, 6, 3), "BROKEN"),
            _tx("b", "-4.00", date(2024, 6, 4), "FINE"),
        ]
    )
    suggester = FixedSuggester(category.id, fail_on={"BROKEN"})

    result = await reconcile_account(db, account.id, user_id, feed, suggester, **WINDOW)

    assert result.staged == 2
    assert result.classification_failures == 1
    by_ref = {c.external_reference_id: c for c in await _candidates(db, account.id)}
    assert by_ref["a"].suggested_category_id is None
    assert by_ref["b"].suggested_category_id == category.id


@pytest.mark.asyncio
async def test_malformed_model_reply_does_not_abort_sync(db, user_id, account):
    """GIVEN a model that answers every request with a malformed body
    WHEN two feed records are reconciled
    THEN both are staged without a suggestion and counted as failures"""
    await CategoryFactory.create_async(db, user_id=user_id)
    feed = StaticFeed(
        [
            _tx("a", "-3.00", date(2024, 6, 3), "LIDL"),
            _tx("b", "-4.00", date(2024, 6, 4), "SPOTIFY"),
        ]
    )

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"choices": ["oops"]})

    suggester = OpenRouterCategorySuggester(
        api_key="test-key",
        base_url="https://llm.test/api/v1",
        model="test/model",
        timeout_seconds=5,
        transport=httpx.MockTransport(handler),
    )

    result = await reconcile_account(db, account.id, user_id, feed, suggester, **WINDOW)

    assert (result.staged, result.classification_failures) == (2, 2)
    candidates = await _candidates(db, account.id)
    assert [c.suggested_category_id for c in candidates] == [None, None]


@pytest.mark.asyncio
async def test_unexpected_suggester_error_stages_without_suggestion(db, user_id, account):
    class ExplodingSuggester:
        async def suggest_category(self, description, categories):
            raise RuntimeError("unexpected")

    feed = StaticFeed([_tx("a", "-3.00", date(2024, 6, 3))])

    result = await reconcile_account(db, account.id, user_id, feed, ExplodingSuggester(), **WINDOW)

    assert (result.staged, result.classification_failures) == (1, 1)


@pytest.mark.asyncio
async def test_expired_token_is_refreshed_once(db, user_id, account):
    feed = StaticFeed([_tx("a", "-1.00", date(2024, 6, 3))], auth_failures=1)

    result = await reconcile_account(db, account.id, user_id, feed, NullCategorySuggester(), **WINDOW)

    assert result.staged == 1
    assert (feed.fetch_calls, feed.reauth_calls) == (2, 1)


@pytest.mark.asyncio
async def test_repeated_auth_failure_propagates_without_writes(db, user_id, account):
    feed = StaticFeed([_tx("a", "-1.00", date(2024, 6, 3))], auth_failures=2)

    with pytest.raises(FeedAuthenticationError):
        await reconcile_account(db, account.id, user_id, feed, NullCategorySuggester(), **WINDOW)

    assert await _candidates(db, account.id) == []


@pytest.mark.asyncio
async def test_rate_limit_propagates(db, user_id, account):
    feed = StaticFeed([], error=FeedRateLimitError(retry_after=30))

    with pytest.raises(FeedRateLimitError):
        await reconcile_account(db, account.id, user_id, feed, NullCategorySuggester(), **WINDOW)
    assert feed.reauth_calls == 0


@pytest.mark.asyncio
async def test_unlinked_account_is_rejected(db, user_id):
    account = await AccountFactory.create_async(db, user_id=user_id, feed_account_id=None)

    with pytest.raises(ValidationError):
        await reconcile_account(db, account.id, user_id, StaticFeed([]), NullCategorySuggester())


@pytest.mark.asyncio
async def test_entries_of_other_accounts_are_not_linked(db, user_id, account):
    other = await AccountFactory.create_async(db, user_id=user_id)
    await LedgerEntryFactory.create_async(
        db, account_id=other.id, entry_date=date(2024, 6, 10), amount=Decimal("20.00")
    )
    feed = StaticFeed([_tx("a", "-20.00", date(2024, 6, 10))])

    result = await reconcile_account(db, account.id, user_id, feed, NullCategorySuggester(), **WINDOW)

    assert (result.linked, result.staged) == (0, 1)
    ledger = await db.execute(select(LedgerEntry).where(LedgerEntry.account_id == other.id))
    assert ledger.scalar_one().external_reference_id is None
