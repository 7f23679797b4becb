"""Currency -- payroll currencies and precision-derived rounding units."""

from dataclasses import dataclass
from decimal import Decimal
from typing import ClassVar


@dataclass(frozen=True)
class CurrencyInfo:
    """Information about a single ISO 4217 currency."""

    code: str
    decimal_places: int
    name: str

    @property
    def smallest_unit(self) -> Decimal:
        """Smallest payable amount (1 for zero-decimal currencies)."""
        return Decimal(1).scaleb(-self.decimal_places)


class CurrencyRegistry:
    """Registry of currencies used by the supported payroll countries."""

    _CURRENCIES: ClassVar[dict[str, CurrencyInfo]] = {
        # CFA zones (UEMOA / CEMAC)
        "XOF": CurrencyInfo("XOF", 0, "West African CFA Franc"),
        "XAF": CurrencyInfo("XAF", 0, "Central African CFA Franc"),
        # Other West African currencies
        "GNF": CurrencyInfo("GNF", 0, "Guinean Franc"),
        "GHS": CurrencyInfo("GHS", 2, "Ghanaian Cedi"),
        "NGN": CurrencyInfo("NGN", 2, "Nigerian Naira"),
        "MRU": CurrencyInfo("MRU", 2, "Mauritanian Ouguiya"),
        "GMD": CurrencyInfo("GMD", 2, "Gambian Dalasi"),
        "CVE": CurrencyInfo("CVE", 2, "Cape Verdean Escudo"),
        "LRD": CurrencyInfo("LRD", 2, "Liberian Dollar"),
        "SLE": CurrencyInfo("SLE", 2, "Sierra Leonean Leone"),
        # Reference currencies for expatriate contracts
        "EUR": CurrencyInfo("EUR", 2, "Euro"),
        "USD": CurrencyInfo("USD", 2, "US Dollar"),
    }

    DEFAULT_DECIMAL_PLACES: ClassVar[int] = 2

    @classmethod
    def is_valid(cls, code: str) -> bool:
        """Check if a currency code is registered."""
        if not code or not isinstance(code, str):
            return False
        return code.upper().strip() in cls._CURRENCIES

    @classmethod
    def get_info(cls, code: str) -> CurrencyInfo | None:
        """Get currency information by code."""
        if not code or not isinstance(code, str):
            return None
        return cls._CURRENCIES.get(code.upper().strip())

    @classmethod
    def get_decimal_places(cls, code: str) -> int:
        """Get decimal places for a currency."""
        info = cls.get_info(code)
        return info.decimal_places if info else cls.DEFAULT_DECIMAL_PLACES

    @classmethod
    def get_smallest_unit(cls, code: str) -> Decimal:
        """Smallest payable amount for a currency."""
        info = cls.get_info(code)
        if info is not None:
            return info.smallest_unit
        return Decimal(1).scaleb(-cls.DEFAULT_DECIMAL_PLACES)

    @classmethod
    def validate(cls, code: str) -> str:
        """Validate and normalize a currency code."""
        if not code or not isinstance(code, str):
            raise ValueError(f"Invalid currency code: {code!r}")

        normalized = code.upper().strip()

        if len(normalized) != 3:
            raise ValueError(f"Currency code must be 3 characters: {code!r}")

        if normalized not in cls._CURRENCIES:
            raise ValueError(f"Unsupported payroll currency code: {code!r}")

        return normalized

    @classmethod
    def all_codes(cls) -> frozenset[str]:
        """Get all registered currency codes."""
        return frozenset(cls._CURRENCIES.keys())
