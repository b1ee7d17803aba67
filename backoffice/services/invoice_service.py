"""Invoice service with transactional logic for client and supplier invoices."""
import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backoffice.models import (
    Invoice, InvoiceItem, Quote, QuoteStatus, Side,
    PaymentStatus, DeliveryStatus
)
from backoffice.exceptions import (
    BackofficeError, NotFoundError, InvalidStateError, ValidationError, PersistenceError
)
from backoffice.services import stock_ledger
from backoffice.services.line_items import (
    parse_side, parse_status, parse_optional_date, parse_id,
    resolve_counterparty, counterparty_columns, build_line_items
)
from backoffice.services.status_guard import apply_invoice_transition

logger = logging.getLogger(__name__)


def _load_invoice(invoice_id: int, session: Session, side=None, lock: bool = False) -> Invoice:
    query = session.query(Invoice).filter(Invoice.id == invoice_id)
    if lock:
        query = query.with_for_update()
    invoice = query.first()

    if not invoice or (side is not None and invoice.side != parse_side(side)):
        raise NotFoundError(f'Invoice {invoice_id} not found.')
    return invoice


def create_invoice(side, payload: Dict[str, Any], session: Session) -> Invoice:
    """
    Create an invoice directly (not through quote conversion).

    Steps:
    1. Validate counterparty and items
    2. Create invoice + invoice items (UNPAID / IN_PROCESS unless given)
    3. Stock effects:
       - client invoice with update_stock: on-hand decrement per item
       - supplier invoice: provisional increment per item (on-hand when
         created already DELIVERED)
    4. If quote_id is given, mark that quote CONVERTED and link it
    5. Commit

    Args:
        side: Side.CLIENT / Side.SUPPLIER (or 'client' / 'supplier')
        payload: Dictionary with:
            - counterparty_id: int
            - items: list of {product_id, quantity, unit_price}
            - delivery_date: date | ISO string | None
            - quote_id: int | None
            - update_stock: bool (client invoices)
            - payment_status / delivery_status: optional initial statuses
        session: SQLAlchemy session

    Returns:
        The persisted Invoice.
    """
    side = parse_side(side)
    delivery_date = parse_optional_date(payload.get('delivery_date'), 'delivery_date')
    payment_status = parse_status(PaymentStatus, payload.get('payment_status'), 'payment_status')
    delivery_status = parse_status(DeliveryStatus, payload.get('delivery_status'), 'delivery_status')
    quote_id = parse_id(payload.get('quote_id'), 'quote_id')

    try:
        party = resolve_counterparty(side, payload.get('counterparty_id'), session)
        lines, total = build_line_items(payload.get('items'), side, session)

        quote = None
        if quote_id is not None:
            quote = session.query(Quote).filter(Quote.id == quote_id).with_for_update().first()
            if not quote or quote.side != side:
                raise NotFoundError(f'Quote {quote_id} not found.')
            if quote.status == QuoteStatus.CONVERTED:
                raise InvalidStateError(
                    f'Quote {quote_id} was already converted to invoice {quote.converted_invoice_id}.',
                    current_status=quote.status
                )
            if quote.counterparty_id != party.id:
                raise ValidationError(
                    f'Quote {quote_id} belongs to {side.value.lower()} {quote.counterparty_id}, '
                    f'not {party.id}.'
                )

        invoice = Invoice(
            side=side,
            quote_id=quote.id if quote else None,
            delivery_date=delivery_date,
            total_amount=total,
            payment_status=payment_status or PaymentStatus.UNPAID,
            delivery_status=delivery_status or DeliveryStatus.IN_PROCESS,
            **counterparty_columns(side, party.id)
        )
        invoice.items = [InvoiceItem(**line) for line in lines]
        session.add(invoice)
        session.flush()  # Get invoice.id

        if side == Side.CLIENT:
            if payload.get('update_stock'):
                for line in lines:
                    stock_ledger.adjust_on_hand(line['product_id'], -line['quantity'], session)
        elif invoice.delivery_status == DeliveryStatus.DELIVERED:
            for line in lines:
                stock_ledger.adjust_on_hand(line['product_id'], line['quantity'], session)
        else:
            for line in lines:
                stock_ledger.adjust_provisional(line['product_id'], line['quantity'], session)

        if quote is not None:
            quote.status = QuoteStatus.CONVERTED
            quote.converted_invoice_id = invoice.id

        invoice_id = invoice.id
        session.commit()

        logger.info(f"{side.value} invoice {invoice_id} created with {len(lines)} item(s), total {total}")
        return invoice
    except BackofficeError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception("Database error creating invoice")
        raise PersistenceError('Error creating invoice.') from e
    except Exception:
        session.rollback()
        raise


def get_invoice(invoice_id: int, session: Session, side=None) -> Invoice:
    """Return an invoice with its items; raises NotFoundError."""
    return _load_invoice(invoice_id, session, side)


def update_invoice_status(invoice_id: int, session: Session, side=None, payment_status=None,
                          delivery_status=None, today: Optional[date] = None, strict: bool = False) -> Invoice:
    """
    Update payment and/or delivery status and apply the stock side effects
    defined in status_guard.STATUS_EFFECTS, all in one unit of work.

    Raises:
        ValidationError: no status given or unknown status value
        NotFoundError: invoice does not exist
        InvalidStateError: transition refused (strict mode)
        InsufficientStockError: a stock effect would drive on-hand negative
    """
    payment_status = parse_status(PaymentStatus, payment_status, 'payment_status')
    delivery_status = parse_status(DeliveryStatus, delivery_status, 'delivery_status')
    if payment_status is None and delivery_status is None:
        raise ValidationError('No status provided to update.')

    try:
        invoice = _load_invoice(invoice_id, session, side, lock=True)

        if payment_status is not None:
            apply_invoice_transition(invoice, 'payment_status', payment_status, session, today, strict)
        if delivery_status is not None:
            apply_invoice_transition(invoice, 'delivery_status', delivery_status, session, today, strict)

        session.commit()
        return invoice
    except BackofficeError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"Database error updating status of invoice {invoice_id}")
        raise PersistenceError('Error updating invoice status.') from e
    except Exception:
        session.rollback()
        raise


def list_invoices(session: Session, side, counterparty_id=None, payment_status=None, delivery_status=None,
                  start_date=None, end_date=None) -> List[Invoice]:
    """List invoices of one side, most recent first, with optional filters."""
    side = parse_side(side)
    party_column = Invoice.client_id if side == Side.CLIENT else Invoice.supplier_id

    query = session.query(Invoice).filter(Invoice.side == side)

    if counterparty_id:
        query = query.filter(party_column == int(counterparty_id))

    payment_status = parse_status(PaymentStatus, payment_status or None, 'payment_status')
    if payment_status is not None:
        query = query.filter(Invoice.payment_status == payment_status)

    delivery_status = parse_status(DeliveryStatus, delivery_status or None, 'delivery_status')
    if delivery_status is not None:
        query = query.filter(Invoice.delivery_status == delivery_status)

    start_date = parse_optional_date(start_date, 'start_date')
    if start_date:
        query = query.filter(Invoice.date_created >= start_date)

    end_date = parse_optional_date(end_date, 'end_date')
    if end_date:
        query = query.filter(Invoice.date_created < end_date + timedelta(days=1))

    return query.order_by(Invoice.date_created.desc(), Invoice.id.desc()).all()
