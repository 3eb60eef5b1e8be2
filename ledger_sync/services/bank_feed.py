"""Bank feed collaborator: the normalized open-banking API.

``GoCardlessFeedClient`` talks to the Bank Account Data API. Reconciliation
only depends on the ``BankFeedClient`` protocol, so tests and other
providers can plug in their own implementation.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Protocol

import httpx

from ledger_sync.config import settings
from ledger_sync.errors import FeedAuthenticationError, FeedRateLimitError, FeedUnavailableError
from ledger_sync.logger import get_logger, log_external_api
from ledger_sync.services.cache import TTLCache, default_cache

logger = get_logger(__name__)

DEFAULT_MEMO = "Bank Transaction"
_TOKEN_CACHE_KEY = "bank_feed:access_token"
# Refresh a little before the provider's stated expiry.
_TOKEN_EXPIRY_MARGIN_SECONDS = 60


@dataclass(frozen=True)
class FeedTransaction:
    """A booked bank transaction. ``amount`` is signed; negative is money out."""

    external_reference_id: str
    amount: Decimal
    booking_date: date
    memo: str


class BankFeedClient(Protocol):
    async def fetch_transactions(
        self, feed_account_id: str, date_from: date, date_to: date
    ) -> list[FeedTransaction]: ...

    async def reauthenticate(self) -> None: ...


def _parse_retry_after(value: str | None) -> int | None:
    if not value:
        return None
    try:
        return max(0, int(value))
    except ValueError:
        return None


def normalize_transactions(payload: dict[str, Any]) -> list[FeedTransaction]:
    """Extract booked transactions from a transactions payload.

    Records without a transaction id or a usable date or amount are dropped.
    """
    booked = (payload.get("transactions") or {}).get("booked") or []
    normalized: list[FeedTransaction] = []
    for raw in booked:
        reference = raw.get("transactionId")
        if not reference:
            continue

        raw_date = raw.get("bookingDate") or raw.get("valueDate")
        raw_amount = (raw.get("transactionAmount") or {}).get("amount")
        try:
            booking_date = date.fromisoformat(str(raw_date)[:10])
            amount = Decimal(str(raw_amount))
        except (TypeError, ValueError, InvalidOperation):
            logger.warning("Dropping malformed feed record", transaction_id=reference)
            continue

        memo = (raw.get("remittanceInformationUnstructured") or "").strip() or DEFAULT_MEMO
        normalized.append(
            FeedTransaction(
                external_reference_id=str(reference),
                amount=amount,
                booking_date=booking_date,
                memo=memo,
            )
        )
    return normalized


class GoCardlessFeedClient:
    def __init__(
        self,
        *,
        secret_id: str | None = None,
        secret_key: str | None = None,
        base_url: str | None = None,
        timeout_seconds: float | None = None,
        cache: TTLCache | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.secret_id = secret_id if secret_id is not None else settings.feed_secret_id
        self.secret_key = secret_key if secret_key is not None else settings.feed_secret_key
        self.base_url = (base_url or settings.feed_base_url).rstrip("/")
        timeout = timeout_seconds or settings.feed_timeout_seconds
        self._timeout = httpx.Timeout(timeout, connect=min(5.0, timeout))
        self._cache = cache or default_cache
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self._timeout,
            transport=self._transport,
        )

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.status_code == 401:
            raise FeedAuthenticationError("Bank feed rejected the credentials")
        if response.status_code == 429:
            raise FeedRateLimitError(
                retry_after=_parse_retry_after(response.headers.get("Retry-After"))
            )
        if response.status_code >= 400:
            raise FeedUnavailableError(f"Bank feed returned HTTP {response.status_code}")

    @log_external_api("bank_feed")
    async def _request_token(self) -> str:
        try:
            async with self._client() as client:
                response = await client.post(
                    "/token/new/",
                    json={"secret_id": self.secret_id, "secret_key": self.secret_key},
                )
        except httpx.HTTPError as exc:
            raise FeedUnavailableError(f"Bank feed unreachable: {exc}") from exc

        self._raise_for_status(response)
        payload = response.json()
        token = payload.get("access")
        if not token:
            raise FeedAuthenticationError("Bank feed did not return an access token")

        expires = int(payload.get("access_expires") or 3_600)
        self._cache.set(
            _TOKEN_CACHE_KEY,
            token,
            ttl_seconds=max(1, expires - _TOKEN_EXPIRY_MARGIN_SECONDS),
        )
        return token

    async def _access_token(self) -> str:
        cached = self._cache.get(_TOKEN_CACHE_KEY)
        if cached:
            return cached
        return await self._request_token()

    async def reauthenticate(self) -> None:
        """Drop the cached token and obtain a new one."""
        self._cache.delete(_TOKEN_CACHE_KEY)
        await self._request_token()

    @log_external_api("bank_feed")
    async def fetch_transactions(
        self, feed_account_id: str, date_from: date, date_to: date
    ) -> list[FeedTransaction]:
        token = await self._access_token()
        try:
            async with self._client() as client:
                response = await client.get(
                    f"/accounts/{feed_account_id}/transactions/",
                    params={"date_from": date_from.isoformat(), "date_to": date_to.isoformat()},
                    headers={"Authorization": f"Bearer {token}"},
                )
        except httpx.HTTPError as exc:
            raise FeedUnavailableError(f"Bank feed unreachable: {exc}") from exc

        if response.status_code == 401:
            # Token expired on the provider side before our cached expiry.
            self._cache.delete(_TOKEN_CACHE_KEY)
        self._raise_for_status(response)
        return normalize_transactions(response.json())


async def fetch_with_reauth(
    feed: BankFeedClient, feed_account_id: str, date_from: date, date_to: date
) -> list[FeedTransaction]:
    """Fetch transactions, re-authenticating and retrying exactly once on 401.

    A second authentication failure, a rate limit or an outage propagates.
    """
    try:
        return await feed.fetch_transactions(feed_account_id, date_from, date_to)
    except FeedAuthenticationError:
        logger.info("Bank feed token rejected, re-authenticating", feed_account_id=feed_account_id)

    await feed.reauthenticate()
    return await feed.fetch_transactions(feed_account_id, date_from, date_to)
