"""Counterparty side shared by quotes and invoices."""
import enum
from sqlalchemy import Enum as SQLEnum


class Side(enum.Enum):
    """Which counterparty a quote or invoice is issued to/from."""
    CLIENT = "CLIENT"
    SUPPLIER = "SUPPLIER"


# One PostgreSQL type shared by the quote and invoice tables
side_type = SQLEnum(Side, name='counterparty_side')
