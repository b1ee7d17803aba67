"""Models package - exports all SQLAlchemy models."""
# Catalog and counterparties
from backoffice.models.product import Product
from backoffice.models.client import Client
from backoffice.models.supplier import Supplier
from backoffice.models.side import Side

# Order lifecycle
from backoffice.models.quote import Quote, QuoteStatus
from backoffice.models.quote_item import QuoteItem
from backoffice.models.invoice import Invoice, PaymentStatus, DeliveryStatus
from backoffice.models.invoice_item import InvoiceItem

__all__ = [
    'Product', 'Client', 'Supplier', 'Side',
    'Quote', 'QuoteStatus', 'QuoteItem',
    'Invoice', 'PaymentStatus', 'DeliveryStatus', 'InvoiceItem',
]
