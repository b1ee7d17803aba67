"""JSON-ready conversions shared by model ``to_dict`` methods."""
from decimal import Decimal
from datetime import date, datetime
from typing import Optional, Union


def money(value: Union[Decimal, int, float, str, None]) -> Optional[str]:
    """
    Render an amount with exactly two decimals.

    Examples:
        money(Decimal('55')) -> "55.00"
        money(None) -> None
    """
    if value is None:
        return None
    return str(Decimal(str(value)).quantize(Decimal('0.01')))


def iso(value: Union[date, datetime, None]) -> Optional[str]:
    """ISO-8601 string for dates and datetimes, None passes through."""
    if value is None:
        return None
    return value.isoformat()


def enum_value(value):
    return getattr(value, 'value', value)
