"""Currency -- ISO 4217 registry for the trading currencies the ledger books."""

from dataclasses import dataclass
from decimal import Decimal
from typing import ClassVar


@dataclass(frozen=True)
class CurrencyInfo:
    """Precision and display name of one ISO 4217 currency."""

    code: str
    decimal_places: int
    name: str

    @property
    def rounding_tolerance(self) -> Decimal:
        """Smallest representable unit; over-allocation checks allow this much slack."""
        return Decimal(1).scaleb(-self.decimal_places)


class CurrencyRegistry:
    """Registry of currencies seen on customer orders and factory purchase orders."""

    _CURRENCIES: ClassVar[dict[str, CurrencyInfo]] = {
        info.code: info
        for info in (
            CurrencyInfo("USD", 2, "US Dollar"),
            CurrencyInfo("CNY", 2, "Chinese Yuan Renminbi"),
            CurrencyInfo("HKD", 2, "Hong Kong Dollar"),
            CurrencyInfo("EUR", 2, "Euro"),
            CurrencyInfo("GBP", 2, "Pound Sterling"),
            CurrencyInfo("CAD", 2, "Canadian Dollar"),
            CurrencyInfo("AUD", 2, "Australian Dollar"),
            CurrencyInfo("SGD", 2, "Singapore Dollar"),
            CurrencyInfo("AED", 2, "UAE Dirham"),
            CurrencyInfo("INR", 2, "Indian Rupee"),
            CurrencyInfo("MXN", 2, "Mexican Peso"),
            CurrencyInfo("THB", 2, "Thai Baht"),
            CurrencyInfo("TWD", 2, "New Taiwan Dollar"),
            CurrencyInfo("JPY", 0, "Japanese Yen"),
            CurrencyInfo("KRW", 0, "South Korean Won"),
            CurrencyInfo("VND", 0, "Vietnamese Dong"),
            CurrencyInfo("KWD", 3, "Kuwaiti Dinar"),
            CurrencyInfo("BHD", 3, "Bahraini Dinar"),
        )
    }

    DEFAULT_DECIMAL_PLACES: ClassVar[int] = 2

    @classmethod
    def is_valid(cls, code: str) -> bool:
        if not code or not isinstance(code, str):
            return False
        return code.upper().strip() in cls._CURRENCIES

    @classmethod
    def get_info(cls, code: str) -> CurrencyInfo | None:
        if not code or not isinstance(code, str):
            return None
        return cls._CURRENCIES.get(code.upper().strip())

    @classmethod
    def get_decimal_places(cls, code: str) -> int:
        info = cls.get_info(code)
        return info.decimal_places if info else cls.DEFAULT_DECIMAL_PLACES

    @classmethod
    def get_rounding_tolerance(cls, code: str) -> Decimal:
        info = cls.get_info(code)
        places = info.decimal_places if info else cls.DEFAULT_DECIMAL_PLACES
        return Decimal(1).scaleb(-places)

    @classmethod
    def all_codes(cls) -> frozenset[str]:
        return frozenset(cls._CURRENCIES)
