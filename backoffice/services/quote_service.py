"""Quote service for client and supplier quotes."""
import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import or_, cast, String
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backoffice.models import Quote, QuoteItem, QuoteStatus, Client, Supplier, Side
from backoffice.exceptions import (
    BackofficeError, NotFoundError, InvalidStateError, ValidationError, PersistenceError
)
from backoffice.services.line_items import (
    parse_side, parse_status, parse_optional_date, parse_notes,
    resolve_counterparty, counterparty_columns, build_line_items
)
from backoffice.services.status_guard import check_quote_transition

logger = logging.getLogger(__name__)

CREATABLE_STATUSES = {QuoteStatus.DRAFT, QuoteStatus.PENDING}


def _load_quote(quote_id: int, session: Session, side: Optional[Side] = None, lock: bool = False) -> Quote:
    query = session.query(Quote).filter(Quote.id == quote_id)
    if lock:
        query = query.with_for_update()
    quote = query.first()

    # A quote requested under the wrong side does not exist for that caller
    if not quote or (side is not None and quote.side != parse_side(side)):
        raise NotFoundError(f'Quote {quote_id} not found.')
    return quote


def create_quote(side, payload: Dict[str, Any], session: Session, valid_days: Optional[int] = None) -> Quote:
    """
    Create a quote with its items.

    Args:
        side: Side.CLIENT / Side.SUPPLIER (or 'client' / 'supplier')
        payload: Dictionary with:
            - counterparty_id: int (client or supplier id)
            - items: list of {product_id, quantity, unit_price}
            - valid_until: date | ISO string | None
            - notes: str | None
            - status: 'PENDING' (default) or 'DRAFT'
        session: SQLAlchemy session
        valid_days: default validity window when valid_until is omitted

    Returns:
        The persisted Quote (total_amount = sum of item totals).
    """
    side = parse_side(side)
    status = parse_status(QuoteStatus, payload.get('status'), 'status') or QuoteStatus.PENDING
    if status not in CREATABLE_STATUSES:
        raise ValidationError('New quotes must be DRAFT or PENDING.')

    valid_until = parse_optional_date(payload.get('valid_until'), 'valid_until')
    notes = parse_notes(payload.get('notes'))
    if valid_until is None and valid_days:
        valid_until = date.today() + timedelta(days=valid_days)

    try:
        party = resolve_counterparty(side, payload.get('counterparty_id'), session)
        lines, total = build_line_items(payload.get('items'), side, session)

        quote = Quote(
            side=side,
            valid_until=valid_until,
            notes=notes,
            status=status,
            total_amount=total,
            **counterparty_columns(side, party.id)
        )
        quote.items = [QuoteItem(**line) for line in lines]
        session.add(quote)
        session.commit()

        logger.info(f"{side.value} quote {quote.id} created with {len(lines)} item(s), total {total}")
        return quote
    except BackofficeError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception("Database error creating quote")
        raise PersistenceError('Error creating quote.') from e
    except Exception:
        session.rollback()
        raise


def update_quote(quote_id: int, payload: Dict[str, Any], session: Session, side=None) -> Quote:
    """
    Replace the items (and optionally valid_until / notes) of a DRAFT quote.

    Items are replaced as a whole collection: existing rows are deleted and
    the new ones inserted, the total is recomputed from the new items.

    Raises:
        NotFoundError: quote does not exist
        InvalidStateError: quote is not DRAFT
    """
    try:
        quote = _load_quote(quote_id, session, side, lock=True)
        if not quote.is_editable:
            raise InvalidStateError(
                f'Only DRAFT quotes can be edited. Current status: {quote.status.value}',
                current_status=quote.status
            )

        lines, total = build_line_items(payload.get('items'), quote.side, session)

        # delete-orphan cascade removes the previous rows on flush
        quote.items = [QuoteItem(**line) for line in lines]
        quote.total_amount = total

        if 'valid_until' in payload:
            quote.valid_until = parse_optional_date(payload['valid_until'], 'valid_until')
        if 'notes' in payload:
            quote.notes = parse_notes(payload['notes'])

        session.commit()
        logger.info(f"Quote {quote_id} updated: {len(lines)} item(s), total {total}")
        return quote
    except BackofficeError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"Database error updating quote {quote_id}")
        raise PersistenceError('Error updating quote.') from e
    except Exception:
        session.rollback()
        raise


def set_quote_status(quote_id: int, status, session: Session, side=None, strict: bool = False) -> Quote:
    """
    Write a quote status (DRAFT, PENDING, APPROVED or REJECTED).

    Any write is accepted unless ``strict`` is set, in which case the move must
    appear in QUOTE_TRANSITIONS. CONVERTED quotes never change.
    """
    target = parse_status(QuoteStatus, status, 'status')
    if target is None:
        raise ValidationError('No status provided.')

    try:
        quote = _load_quote(quote_id, session, side, lock=True)
        check_quote_transition(quote.status, target, strict)

        previous = quote.status
        quote.status = target
        session.commit()

        logger.info(f"Quote {quote_id} status {previous.value} -> {target.value}")
        return quote
    except BackofficeError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"Database error updating status of quote {quote_id}")
        raise PersistenceError('Error updating quote status.') from e
    except Exception:
        session.rollback()
        raise


def get_quote(quote_id: int, session: Session, side=None) -> Quote:
    """Return a quote with its items; raises NotFoundError."""
    return _load_quote(quote_id, session, side)


def list_quotes(session: Session, side, status=None, counterparty_id=None, search: Optional[str] = None,
                date_from=None, date_to=None) -> List[Quote]:
    """List quotes of one side, most recent first, with optional filters."""
    side = parse_side(side)
    party_model = Client if side == Side.CLIENT else Supplier
    party_column = Quote.client_id if side == Side.CLIENT else Quote.supplier_id

    query = (session.query(Quote)
             .outerjoin(party_model, party_column == party_model.id)
             .filter(Quote.side == side))

    status = parse_status(QuoteStatus, status or None, 'status')
    if status is not None:
        query = query.filter(Quote.status == status)

    if counterparty_id:
        query = query.filter(party_column == int(counterparty_id))

    if search:
        query = query.filter(
            or_(
                party_model.name.ilike(f'%{search}%'),
                cast(Quote.id, String).like(f'%{search}%')
            )
        )

    date_from = parse_optional_date(date_from, 'date_from')
    if date_from:
        query = query.filter(Quote.date_created >= date_from)

    date_to = parse_optional_date(date_to, 'date_to')
    if date_to:
        query = query.filter(Quote.date_created < date_to + timedelta(days=1))

    return query.order_by(Quote.date_created.desc(), Quote.id.desc()).all()
