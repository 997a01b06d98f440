"""Shared fixtures for the engine test suite."""
from datetime import date, datetime
from decimal import Decimal

import pytest

from findoc_engine.core.models import LineItem


@pytest.fixture
def as_of():
    """Fixed evaluation date for aging tests"""
    return date(2024, 6, 30)


@pytest.fixture
def now():
    """Fixed evaluation time for compliance tests"""
    return datetime(2024, 6, 30, 12, 0, 0)


@pytest.fixture
def standard_line():
    """Two units at 100.00 with 16% tax"""
    return LineItem(
        description="Consulting hours",
        quantity=Decimal("2"),
        unit_price=Decimal("100.00"),
        tax_rate=Decimal("16"),
    )


@pytest.fixture
def mixed_rate_lines():
    """One taxed and one zero-rated line of 100.00 each"""
    return [
        LineItem(description="Service", quantity=Decimal("1"),
                 unit_price=Decimal("100"), tax_rate=Decimal("16")),
        LineItem(description="Exported goods", quantity=Decimal("1"),
                 unit_price=Decimal("100"), tax_rate=Decimal("0")),
    ]
