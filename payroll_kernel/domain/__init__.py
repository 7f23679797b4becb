"""Domain value objects shared by the payroll engines."""

from payroll_kernel.domain.currency import CurrencyInfo, CurrencyRegistry

__all__ = ["CurrencyInfo", "CurrencyRegistry"]
