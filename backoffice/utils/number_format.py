"""Parsing utilities for amounts, quantities and dates received from callers."""
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

PRICE_PATTERN = re.compile(r"^-?\d+(?:[.,]\d+)?$")

# Column limits: Integer counters and Numeric(14, 2) amounts
MAX_UNITS = 2**31 - 1
MAX_AMOUNT = Decimal(10) ** 12


def parse_price(value) -> Decimal:
    """
    Parse a unit price to a two-decimal Decimal.

    Accepts numbers or strings using either a dot or a comma as decimal
    separator ("12.5", "12,50"). Negative prices are rejected.

    Raises:
        ValueError: if the value is empty, malformed or negative.
    """
    if value is None or isinstance(value, bool):
        raise ValueError('Invalid price')

    if isinstance(value, str):
        cleaned = value.strip()
        if not PRICE_PATTERN.match(cleaned):
            raise ValueError(f'Invalid price: {value!r}')
        value = cleaned.replace(',', '.')

    try:
        price = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValueError(f'Invalid price: {value!r}')

    if not price.is_finite():
        raise ValueError(f'Invalid price: {value!r}')
    if price < 0:
        raise ValueError('Price cannot be negative')
    if price >= MAX_AMOUNT:
        raise ValueError(f'Price too large: {value!r}')

    return price.quantize(Decimal('0.01'))


def parse_quantity(value) -> int:
    """
    Parse a line quantity. Quantities are whole units, at least 1.

    Raises:
        ValueError: if the value is not a positive integer.
    """
    if value is None or isinstance(value, bool):
        raise ValueError('Invalid quantity')

    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValueError(f'Invalid quantity: {value!r}')

    if not number.is_finite() or number != number.to_integral_value():
        raise ValueError(f'Quantity must be a whole number: {value!r}')
    if number < 1:
        raise ValueError('Quantity must be at least 1')
    if number > MAX_UNITS:
        raise ValueError(f'Quantity too large: {value!r}')

    return int(number)


def parse_delta(value) -> int:
    """Parse a signed stock delta (whole units, zero allowed)."""
    if value is None:
        return 0
    if isinstance(value, bool):
        raise ValueError('Invalid stock delta')

    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValueError(f'Invalid stock delta: {value!r}')

    if not number.is_finite() or number != number.to_integral_value():
        raise ValueError(f'Stock delta must be a whole number: {value!r}')
    if abs(number) > MAX_UNITS:
        raise ValueError(f'Stock delta out of range: {value!r}')

    return int(number)


def parse_date(value):
    """
    Parse a date given as ``date``, ``datetime`` or ISO string (YYYY-MM-DD,
    full ISO datetimes are truncated to their date). None passes through.

    Raises:
        ValueError: if the string is not an ISO date.
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            raise ValueError(f'Invalid date: {value!r}. Use YYYY-MM-DD')
    raise ValueError(f'Invalid date: {value!r}')
