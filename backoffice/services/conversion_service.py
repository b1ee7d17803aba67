"""Quote to invoice conversion."""
import logging

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backoffice.models import (
    Quote, QuoteStatus, Invoice, InvoiceItem, Side, PaymentStatus, DeliveryStatus
)
from backoffice.exceptions import (
    BackofficeError, NotFoundError, InvalidStateError, ValidationError, PersistenceError
)
from backoffice.services import stock_ledger
from backoffice.services.line_items import parse_side, parse_optional_date

logger = logging.getLogger(__name__)


def convert_quote_to_invoice(quote_id: int, delivery_date, session: Session, side=None) -> int:
    """
    Convert an APPROVED quote into an invoice.

    Steps (single transaction):
    1. Lock the quote and check it is APPROVED
    2. Create the invoice header (UNPAID / IN_PROCESS) copying counterparty
       and total from the quote
    3. Copy every quote item verbatim (quoted prices are frozen)
    4. Supplier quotes: provisional stock += quantity per item
    5. Flip the quote to CONVERTED with a guarded update and link the invoice

    Any failure rolls back the whole conversion, so retrying is safe: the
    quote only becomes CONVERTED when the invoice exists.

    Args:
        quote_id: ID of the quote to convert
        delivery_date: date or ISO string for the new invoice
        session: SQLAlchemy session
        side: optional Side the quote must belong to

    Returns:
        invoice_id: ID of created invoice

    Raises:
        ValidationError: missing or malformed delivery date
        NotFoundError: quote does not exist
        InvalidStateError: quote is not APPROVED (including already CONVERTED)
        PersistenceError: database failure
    """
    delivery_date = parse_optional_date(delivery_date, 'delivery_date')
    if delivery_date is None:
        raise ValidationError('delivery_date is required.')

    try:
        # Step 1: Lock quote
        quote = session.query(Quote).filter(Quote.id == quote_id).with_for_update().first()
        if not quote or (side is not None and quote.side != parse_side(side)):
            raise NotFoundError(f'Quote {quote_id} not found.')

        if not quote.is_convertible:
            raise InvalidStateError(
                f'Only approved quotes can be converted to invoices. Current status: {quote.status.value}',
                current_status=quote.status
            )

        # Snapshot of the quoted lines
        snapshot = [
            {
                'product_id': item.product_id,
                'quantity': item.quantity,
                'unit_price': item.unit_price,
                'total_price': item.total_price,
            }
            for item in quote.items
        ]

        # Steps 2-3: Invoice + items
        invoice = Invoice(
            side=quote.side,
            client_id=quote.client_id,
            supplier_id=quote.supplier_id,
            quote_id=quote.id,
            delivery_date=delivery_date,
            total_amount=quote.total_amount,
            payment_status=PaymentStatus.UNPAID,
            delivery_status=DeliveryStatus.IN_PROCESS,
        )
        invoice.items = [InvoiceItem(**line) for line in snapshot]
        session.add(invoice)
        session.flush()  # Get invoice.id
        invoice_id = invoice.id

        # Step 4: Expected incoming goods
        if quote.side == Side.SUPPLIER:
            for line in snapshot:
                stock_ledger.adjust_provisional(line['product_id'], line['quantity'], session)

        # Step 5: Finalize quote only if nobody converted it meanwhile
        converted = session.query(Quote).filter(
            Quote.id == quote_id,
            Quote.status == QuoteStatus.APPROVED,
            Quote.converted_invoice_id.is_(None)
        ).update(
            {
                Quote.status: QuoteStatus.CONVERTED,
                Quote.converted_invoice_id: invoice_id,
                Quote.updated_at: func.now(),
            },
            synchronize_session=False
        )
        if converted != 1:
            raise InvalidStateError(f'Quote {quote_id} is no longer approved.')

        session.commit()
        logger.info(f"{quote.side.value} quote {quote_id} converted to invoice {invoice_id} ({len(snapshot)} item(s))")
        return invoice_id
    except BackofficeError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"Database error converting quote {quote_id}")
        raise PersistenceError('Error converting quote.') from e
    except Exception:
        session.rollback()
        raise
