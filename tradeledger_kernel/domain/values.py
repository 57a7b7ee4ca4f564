"""
Values -- Immutable, self-validating money value objects.

Responsibility:
    Currency, Money and ExchangeRate.  These replace bare Decimal/str pairs
    wherever an amount travels with its currency through the ledger.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  Depends only on the currency registry
    and the exception hierarchy.

Invariants enforced:
    - Money pairs a Decimal amount with its Currency; floats are rejected by
      conversion through str().
    - Arithmetic and comparison never mix currencies.
    - ExchangeRate is positive and names both sides of the pair plus the date
      it was quoted for.

Failure modes:
    - InvalidCurrencyError for unknown ISO 4217 codes.
    - InvalidExchangeRateError for zero, negative or unparsable rates.
    - ValueError when arithmetic mixes currencies.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from tradeledger_kernel.domain.currency import CurrencyRegistry
from tradeledger_kernel.exceptions import InvalidCurrencyError, InvalidExchangeRateError


@dataclass(frozen=True, slots=True)
class Currency:
    """
    ISO 4217 currency code value object.

    Guarantees:
        - code is uppercase, stripped and registered.
    """

    code: str

    def __post_init__(self) -> None:
        normalized = self.code.upper().strip() if self.code else ""
        if not CurrencyRegistry.is_valid(normalized):
            raise InvalidCurrencyError(self.code or "")
        object.__setattr__(self, "code", normalized)

    @property
    def decimal_places(self) -> int:
        return CurrencyRegistry.get_decimal_places(self.code)

    @property
    def rounding_tolerance(self) -> Decimal:
        return CurrencyRegistry.get_rounding_tolerance(self.code)

    def __str__(self) -> str:
        return self.code

    def __repr__(self) -> str:
        return f"Currency({self.code!r})"


def _to_decimal(value: Decimal | str | int) -> Decimal:
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"Invalid amount: {value}") from e


@dataclass(frozen=True, slots=True)
class Money:
    """
    Monetary amount value object.

    Contract:
        Amount and currency are never separated.  Arithmetic requires both
        operands in the same currency.

    Non-goals:
        - Does NOT convert between currencies (see ExchangeRate.convert).
        - Does NOT auto-round; call round().
    """

    amount: Decimal
    currency: Currency

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", _to_decimal(self.amount))
        if isinstance(self.currency, str):
            object.__setattr__(self, "currency", Currency(self.currency))
        elif not isinstance(self.currency, Currency):
            raise TypeError(f"currency must be Currency or str, got {type(self.currency)}")

    @classmethod
    def of(cls, amount: Decimal | str | int, currency: str | Currency) -> Money:
        return cls(amount=_to_decimal(amount), currency=currency)

    @classmethod
    def zero(cls, currency: str | Currency) -> Money:
        return cls(amount=Decimal("0"), currency=currency)

    def is_zero(self) -> bool:
        return self.amount == 0

    def is_positive(self) -> bool:
        return self.amount > 0

    def round(self) -> Money:
        """Round to the currency's ISO 4217 precision (ROUND_HALF_UP)."""
        quantum = Decimal(1).scaleb(-self.currency.decimal_places)
        return Money(self.amount.quantize(quantum, rounding=ROUND_HALF_UP), self.currency)

    def _check(self, other: Money) -> None:
        if not isinstance(other, Money):
            raise TypeError(f"Cannot combine Money with {type(other).__name__}")
        if other.currency != self.currency:
            raise ValueError(
                f"Currency mismatch: {self.currency.code} vs {other.currency.code}"
            )

    def __add__(self, other: Money) -> Money:
        self._check(other)
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: Money) -> Money:
        self._check(other)
        return Money(self.amount - other.amount, self.currency)

    def __neg__(self) -> Money:
        return Money(-self.amount, self.currency)

    def __lt__(self, other: Money) -> bool:
        self._check(other)
        return self.amount < other.amount

    def __le__(self, other: Money) -> bool:
        self._check(other)
        return self.amount <= other.amount

    def __gt__(self, other: Money) -> bool:
        self._check(other)
        return self.amount > other.amount

    def __ge__(self, other: Money) -> bool:
        self._check(other)
        return self.amount >= other.amount

    def __str__(self) -> str:
        return f"{self.amount} {self.currency.code}"


@dataclass(frozen=True, slots=True)
class ExchangeRate:
    """
    Exchange rate between two currencies, quoted as of a date.

    Contract:
        1 unit of from_currency = rate units of to_currency.

    Guarantees:
        - rate is a positive Decimal.
        - convert() refuses money in any currency but from_currency.

    Non-goals:
        - No rate lookup, triangulation or market data.
    """

    from_currency: Currency
    to_currency: Currency
    rate: Decimal
    as_of: date | None = None

    def __post_init__(self) -> None:
        if isinstance(self.from_currency, str):
            object.__setattr__(self, "from_currency", Currency(self.from_currency))
        if isinstance(self.to_currency, str):
            object.__setattr__(self, "to_currency", Currency(self.to_currency))
        try:
            rate = self.rate if isinstance(self.rate, Decimal) else Decimal(str(self.rate))
        except (InvalidOperation, ValueError) as e:
            raise InvalidExchangeRateError(str(self.rate), "not a number") from e
        if not rate.is_finite() or rate <= 0:
            raise InvalidExchangeRateError(str(self.rate), "rate must be positive")
        object.__setattr__(self, "rate", rate)

    @classmethod
    def of(
        cls,
        from_currency: str | Currency,
        to_currency: str | Currency,
        rate: Decimal | str | int,
        as_of: date | None = None,
    ) -> ExchangeRate:
        return cls(from_currency, to_currency, _to_decimal(rate), as_of)

    def convert(self, money: Money) -> Money:
        """Return money * rate in to_currency, unrounded."""
        if money.currency != self.from_currency:
            raise ValueError(
                f"Cannot convert {money.currency.code} with a "
                f"{self.from_currency.code}/{self.to_currency.code} rate"
            )
        return Money(money.amount * self.rate, self.to_currency)

    def inverse(self) -> ExchangeRate:
        return ExchangeRate(
            self.to_currency, self.from_currency, Decimal(1) / self.rate, self.as_of
        )

    @property
    def pair(self) -> tuple[str, str]:
        return (self.from_currency.code, self.to_currency.code)

    def __str__(self) -> str:
        return f"1 {self.from_currency.code} = {self.rate} {self.to_currency.code}"
