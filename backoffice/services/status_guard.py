"""
Status transition guard for quotes and invoices.

The legal transitions and their stock side effects are plain data so the
rules can be read (and tightened) without touching the services:

- QUOTE_TRANSITIONS / PAYMENT_TRANSITIONS / DELIVERY_TRANSITIONS list the
  forward moves of each status. They are only enforced when ``strict`` is
  set (STRICT_STATUS_TRANSITIONS in the config); by default any write is
  accepted except the ones that would break a hard invariant.
- STATUS_EFFECTS maps ``(side, field, from, to)`` to the stock effect fired
  when that transition happens.
"""
import logging
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from backoffice.models import Invoice, QuoteStatus, PaymentStatus, DeliveryStatus, Side
from backoffice.exceptions import InvalidStateError, ValidationError
from backoffice.services import stock_ledger

logger = logging.getLogger(__name__)


QUOTE_TRANSITIONS = {
    QuoteStatus.DRAFT: {QuoteStatus.PENDING, QuoteStatus.APPROVED, QuoteStatus.REJECTED},
    QuoteStatus.PENDING: {QuoteStatus.DRAFT, QuoteStatus.APPROVED, QuoteStatus.REJECTED},
    QuoteStatus.APPROVED: {QuoteStatus.PENDING, QuoteStatus.REJECTED, QuoteStatus.CONVERTED},
    QuoteStatus.REJECTED: {QuoteStatus.DRAFT, QuoteStatus.PENDING},
    QuoteStatus.CONVERTED: set(),
}

# Statuses a caller may write directly; CONVERTED is reserved to conversion
WRITABLE_QUOTE_STATUSES = {
    QuoteStatus.DRAFT, QuoteStatus.PENDING, QuoteStatus.APPROVED, QuoteStatus.REJECTED
}

PAYMENT_TRANSITIONS = {
    PaymentStatus.UNPAID: {PaymentStatus.PAID},
    PaymentStatus.PAID: set(),
}

DELIVERY_TRANSITIONS = {
    DeliveryStatus.IN_PROCESS: {DeliveryStatus.SENDING, DeliveryStatus.DELIVERED},
    DeliveryStatus.SENDING: {DeliveryStatus.DELIVERED},
    DeliveryStatus.DELIVERED: set(),
}

INVOICE_TRANSITIONS = {
    'payment_status': PAYMENT_TRANSITIONS,
    'delivery_status': DELIVERY_TRANSITIONS,
}


def commit_sale_stock(invoice: Invoice, session: Session, today: date) -> bool:
    """
    Client invoice paid before delivery: the goods are committed to the sale,
    so on-hand stock is decremented for every item.

    Past or same-day deliveries are presumed to have been decremented already
    (update_stock at creation) and have no stock effect.
    """
    if invoice.delivery_date is None or invoice.delivery_date <= today:
        logger.info(
            f"Invoice {invoice.id} paid with delivery date {invoice.delivery_date}; no stock effect"
        )
        return False

    for item in invoice.items:
        stock_ledger.adjust_on_hand(item.product_id, -item.quantity, session)
    logger.info(f"Invoice {invoice.id} paid before delivery; on-hand stock committed for {len(invoice.items)} item(s)")
    return True


def receive_goods(invoice: Invoice, session: Session, today: date) -> bool:
    """Supplier invoice delivered: goods move from provisional to on-hand stock."""
    for item in invoice.items:
        stock_ledger.adjust_on_hand(item.product_id, item.quantity, session)
        stock_ledger.adjust_provisional(item.product_id, -item.quantity, session)
    logger.info(f"Supplier invoice {invoice.id} delivered; {len(invoice.items)} item(s) received")
    return True


STATUS_EFFECTS = {
    (Side.CLIENT, 'payment_status', PaymentStatus.UNPAID, PaymentStatus.PAID): commit_sale_stock,
    (Side.SUPPLIER, 'delivery_status', DeliveryStatus.IN_PROCESS, DeliveryStatus.DELIVERED): receive_goods,
    (Side.SUPPLIER, 'delivery_status', DeliveryStatus.SENDING, DeliveryStatus.DELIVERED): receive_goods,
}


def check_quote_transition(current: QuoteStatus, target: QuoteStatus, strict: bool = False) -> None:
    """
    Validate a direct quote status write.

    Raises:
        ValidationError: target is not writable (CONVERTED)
        InvalidStateError: quote is CONVERTED, or the move is not in
            QUOTE_TRANSITIONS while strict
    """
    if target not in WRITABLE_QUOTE_STATUSES:
        raise ValidationError(f'Status {target.value} can only be reached through conversion.')
    if current == QuoteStatus.CONVERTED:
        raise InvalidStateError('Converted quotes cannot change status.', current_status=current)
    if strict and current != target and target not in QUOTE_TRANSITIONS.get(current, set()):
        raise InvalidStateError(
            f'Quote cannot move from {current.value} to {target.value}.',
            current_status=current
        )


def check_invoice_transition(field: str, current, target, strict: bool = False) -> None:
    if strict and current != target and target not in INVOICE_TRANSITIONS[field].get(current, set()):
        raise InvalidStateError(
            f'Invoice {field} cannot move from {current.value} to {target.value}.',
            current_status=current
        )


def apply_invoice_transition(invoice: Invoice, field: str, target, session: Session,
                             today: Optional[date] = None, strict: bool = False) -> bool:
    """
    Write ``target`` into ``invoice.<field>`` and run the matching stock effect.

    Re-writing the current value is a no-op, which makes the delivery effect
    idempotent. Must run inside the caller's unit of work.

    Returns:
        True when a stock effect was applied.
    """
    current = getattr(invoice, field)
    if current == target:
        return False

    check_invoice_transition(field, current, target, strict)

    effect = STATUS_EFFECTS.get((invoice.side, field, current, target))
    setattr(invoice, field, target)
    if effect is None:
        return False
    return effect(invoice, session, today or date.today())
