"""
Typed exception hierarchy for the payroll calculation engine.

===============================================================================
ERROR CODES
===============================================================================

Every exception carries a class-level ``code`` for machine-readable
identification, plus structured attributes describing the failure.

    PAYROLL_ERROR                 base class
    VALIDATION_ERROR              malformed or missing required input
    BELOW_MINIMUM_WAGE            gross below the statutory floor
    CONFIGURATION_MISSING         no tax / contribution / deduction table
    CONFIGURATION_INVALID         configuration pack failed to load or validate
    COMPUTATION_ERROR             internal invariant violated (defect)

===============================================================================
PROPAGATION
===============================================================================

All errors are raised synchronously from ``compute``.  Computation has no
transient failure modes: a given input either always succeeds or always
fails, so the engine never retries.  Translating errors into user-facing
messages, and deciding whether ``BelowMinimumWageError`` blocks a save or
is a preview warning, belongs to the caller.
===============================================================================
"""

from __future__ import annotations

from decimal import Decimal


class PayrollError(Exception):
    """
    Base exception for all payroll engine errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "PAYROLL_ERROR"


class ValidationError(PayrollError, ValueError):
    """
    Payroll input is malformed or missing a required element.

    Also a ``ValueError`` so dataclass ``__post_init__`` checks read the
    same way as elsewhere in the codebase.
    """

    code: str = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class BelowMinimumWageError(PayrollError):
    """
    Gross salary, at the applicable rate granularity, is below the
    country's statutory minimum wage.
    """

    code: str = "BELOW_MINIMUM_WAGE"

    def __init__(
        self,
        country_code: str,
        rate_type: str,
        amount: Decimal,
        minimum: Decimal,
    ):
        self.country_code = country_code
        self.rate_type = rate_type
        self.amount = amount
        self.minimum = minimum
        super().__init__(
            f"{rate_type} amount {amount} is below the {country_code} "
            f"minimum wage of {minimum}"
        )


class ConfigurationMissingError(PayrollError):
    """No configuration table exists for the given country."""

    code: str = "CONFIGURATION_MISSING"

    def __init__(self, country_code: str, table: str):
        self.country_code = country_code
        self.table = table
        super().__init__(f"No {table} configured for country {country_code}")


class ConfigurationError(PayrollError):
    """A configuration pack could not be loaded or failed validation."""

    code: str = "CONFIGURATION_INVALID"

    def __init__(self, message: str, errors: list[str] | None = None):
        self.errors = list(errors or [])
        super().__init__(message)


class ComputationError(PayrollError):
    """
    An internal invariant was violated during computation.

    Treated as a defect, never as a user-facing condition.
    """

    code: str = "COMPUTATION_ERROR"

    def __init__(self, message: str, invariant: str | None = None):
        self.invariant = invariant
        super().__init__(message)
