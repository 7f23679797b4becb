"""
Pytest fixtures for the payroll engine test suite.

Provides:
- Validated country configurations loaded from the shipped YAML packs
- A JSON log capture handler for asserting structured log output
"""

import json
import logging
from datetime import date
from io import StringIO

import pytest

from payroll_config import get_country_config, load_configuration
from payroll_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)

AS_OF = date(2024, 3, 1)


@pytest.fixture(scope="session")
def ci_config():
    """Cote d'Ivoire configuration from payroll_config/sets/CI-2024."""
    return get_country_config("CI", AS_OF)


@pytest.fixture(scope="session")
def sn_config():
    """Senegal configuration from payroll_config/sets/SN-2024."""
    return get_country_config("SN", AS_OF)


@pytest.fixture(scope="session")
def all_config():
    """Every shipped country merged into one aggregate."""
    return load_configuration(AS_OF)


@pytest.fixture
def json_logs():
    """Route payroll_kernel logs to an in-memory JSON stream.

    Yields a callable returning the parsed log records so far.
    """
    reset_logging()
    LogContext.clear()
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    configure_logging(level=logging.DEBUG, handler=handler)

    def records() -> list[dict]:
        return [json.loads(line) for line in stream.getvalue().splitlines() if line]

    yield records
    LogContext.clear()
    reset_logging()
