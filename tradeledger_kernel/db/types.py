"""
Module: tradeledger_kernel.db.types
Responsibility: Annotated column aliases and the helpers every model uses to
    keep money, rates and timestamps consistent between dialects.
Architecture position: Kernel > DB.  MUST NOT import from models/, services/
    or selectors/.

Invariants enforced:
    - Amounts are Numeric(38, 9); exchange rates are Numeric(38, 18).
    - round_money() is the only rounding function for currency amounts.
    - ensure_utc() normalizes timestamps read back from dialects that drop
      the timezone (SQLite), so that ordering never compares naive and aware
      datetimes.
"""

from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Annotated

from sqlalchemy import Numeric, String

from tradeledger_kernel.domain.currency import CurrencyRegistry
from tradeledger_kernel.exceptions import InvalidCurrencyError

Money = Annotated[Decimal, Numeric(38, 9)]

Rate = Annotated[Decimal, Numeric(38, 18)]

CurrencyCode = Annotated[str, String(3)]

ShortCode = Annotated[str, String(50)]

LongText = Annotated[str, String(4000)]

DEFAULT_ROUNDING = ROUND_HALF_UP


def round_money(amount: Decimal, currency: str) -> Decimal:
    """Round an amount to the ISO 4217 precision of its currency."""
    places = CurrencyRegistry.get_decimal_places(currency)
    quantum = Decimal(1).scaleb(-places)
    return amount.quantize(quantum, rounding=DEFAULT_ROUNDING)


def validate_currency(code: str | None) -> str:
    """
    Normalize and validate an ISO 4217 code.

    Raises:
        InvalidCurrencyError: If the code is empty or not registered.
    """
    normalized = (code or "").strip().upper()
    if not CurrencyRegistry.is_valid(normalized):
        raise InvalidCurrencyError(code or "")
    return normalized


def ensure_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes; convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
