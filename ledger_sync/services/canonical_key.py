"""Canonical deduplication key for ledger rows."""

import hashlib
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

_CENT = Decimal("1")


def to_minor_units(amount: Decimal | int | float | str) -> int:
    """Round an amount half-up to integer cents."""
    value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    return int((value * 100).quantize(_CENT, rounding=ROUND_HALF_UP))


def build_canonical_key(
    account_id: UUID,
    entry_date: date | datetime,
    amount: Decimal | int | float | str,
    description: str | None,
) -> str:
    """Build the dedup key for a ledger row.

    Key = SHA256(account_id|YYYY-MM-DD|amount_in_cents|normalized description)

    Two rows are duplicates only when every component matches exactly: the same
    account, the same calendar day, the same amount to the cent and the same
    description ignoring case and surrounding whitespace.
    """
    if isinstance(entry_date, datetime):
        entry_date = entry_date.date()
    components = [
        str(account_id),
        entry_date.isoformat(),
        str(to_minor_units(amount)),
        (description or "").strip().lower(),
    ]
    return hashlib.sha256("|".join(components).encode("utf-8")).hexdigest()
