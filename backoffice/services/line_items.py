"""Validation helpers shared by quote and invoice services."""
from decimal import Decimal
from typing import Any, Dict, List, Tuple

from sqlalchemy.orm import Session

from backoffice.models import Product, Client, Supplier, Side
from backoffice.exceptions import ValidationError, NotFoundError
from backoffice.utils.number_format import parse_price, parse_quantity, parse_date, MAX_AMOUNT


def parse_side(value) -> Side:
    """Accept Side members or 'client' / 'supplier' in any case."""
    if isinstance(value, Side):
        return value
    try:
        return Side(str(value).strip().upper())
    except ValueError:
        raise ValidationError(f'Unknown counterparty side: {value!r}')


def parse_status(enum_cls, value, field='status'):
    """Coerce a status given as enum member or string; None passes through."""
    if value is None or isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().upper())
    except ValueError:
        allowed = ', '.join(member.value for member in enum_cls)
        raise ValidationError(f'Invalid {field} {value!r}. Allowed: {allowed}')


def parse_optional_date(value, field):
    try:
        return parse_date(value)
    except ValueError as e:
        raise ValidationError(f'{field}: {e}')


def parse_notes(value):
    """Free-text notes: stripped string or None."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f'notes must be text, got {type(value).__name__}.')
    return value.strip() or None


def parse_id(value, field):
    """Coerce an optional id given as int or numeric string."""
    if value in (None, ''):
        return None
    if isinstance(value, bool):
        raise ValidationError(f'Invalid {field}: {value!r}')
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'Invalid {field}: {value!r}')
    # BIGINT primary keys
    if not 0 < number < 2**63:
        raise ValidationError(f'Invalid {field}: {value!r}')
    return number


def resolve_counterparty(side: Side, counterparty_id, session: Session):
    """
    Load the client or supplier referenced by a quote/invoice payload.

    Raises:
        ValidationError: missing or malformed id
        NotFoundError: no such client/supplier
    """
    counterparty_id = parse_id(counterparty_id, 'counterparty_id')
    if counterparty_id is None:
        raise ValidationError('counterparty_id is required.')

    model = Client if side == Side.CLIENT else Supplier
    party = session.get(model, counterparty_id)
    if party is None:
        raise NotFoundError(f'{side.value.capitalize()} {counterparty_id} not found.')
    return party


def counterparty_columns(side: Side, counterparty_id: int) -> Dict[str, Any]:
    if side == Side.CLIENT:
        return {'client_id': counterparty_id, 'supplier_id': None}
    return {'client_id': None, 'supplier_id': counterparty_id}


def build_line_items(items, side: Side, session: Session) -> Tuple[List[Dict[str, Any]], Decimal]:
    """
    Validate raw items and compute their totals.

    Each raw item is ``{product_id, quantity, unit_price?}``. When unit_price is
    omitted the product's current price for the side is used (selling price
    for clients, supplier cost for suppliers).

    Returns:
        (lines, total_amount) where each line carries product_id, quantity,
        unit_price and total_price = quantity * unit_price.

    Raises:
        ValidationError: empty list, bad quantity or price
        NotFoundError: unknown product
    """
    if not items or not isinstance(items, (list, tuple)):
        raise ValidationError('At least one item is required.')

    product_ids = []
    for item in items:
        product_id = parse_id(item.get('product_id'), 'product_id') if isinstance(item, dict) else None
        if product_id is None:
            raise ValidationError('product_id is required on every item.')
        product_ids.append(product_id)

    # Batch fetch products
    products = session.query(Product).filter(Product.id.in_(set(product_ids))).all()
    products_dict = {p.id: p for p in products}
    missing = sorted(set(product_ids) - set(products_dict))
    if missing:
        raise NotFoundError(f"Product(s) not found: {', '.join(str(pid) for pid in missing)}")

    lines = []
    total = Decimal('0.00')
    for product_id, item in zip(product_ids, items):
        product = products_dict[product_id]

        try:
            quantity = parse_quantity(item.get('quantity'))
        except ValueError as e:
            raise ValidationError(f'{e} (product {product.reference})')

        raw_price = item.get('unit_price')
        if raw_price is None or raw_price == '':
            raw_price = product.selling_price if side == Side.CLIENT else product.supplier_price
        try:
            unit_price = parse_price(raw_price)
        except ValueError as e:
            raise ValidationError(f'{e} (product {product.reference})')

        total_price = (quantity * unit_price).quantize(Decimal('0.01'))
        if total_price >= MAX_AMOUNT:
            raise ValidationError(f'Line total too large (product {product.reference})')
        lines.append({
            'product_id': product_id,
            'quantity': quantity,
            'unit_price': unit_price,
            'total_price': total_price,
        })
        total += total_price

    if total >= MAX_AMOUNT:
        raise ValidationError('Total amount too large.')

    return lines, total.quantize(Decimal('0.01'))
