"""
Stock ledger - the single code path that mutates product stock counters.

Every adjustment is expressed as a relative SQL update
(``stock_quantity = stock_quantity + :delta``) so concurrent writers to the
same product row are serialized by the database instead of overwriting each
other from application memory.

adjust_on_hand / adjust_provisional join the caller's unit of work and never
commit. adjust_stock is the boundary operation and commits on its own.
"""
import logging

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backoffice.models import Product
from backoffice.exceptions import (
    BackofficeError, NotFoundError, InsufficientStockError, ValidationError, PersistenceError
)
from backoffice.utils.number_format import parse_delta

logger = logging.getLogger(__name__)


def _reload(product_id: int, session: Session) -> Product:
    """Read the product again so the identity map reflects the SQL update."""
    product = session.get(Product, product_id, populate_existing=True)
    if product is None:
        raise NotFoundError(f'Product {product_id} not found.')
    return product


def adjust_on_hand(product_id: int, delta: int, session: Session) -> Product:
    """
    Add ``delta`` to a product's on-hand stock.

    A decrement that would leave the stock negative matches no row and is
    reported as InsufficientStockError; the counter is left untouched.

    Raises:
        NotFoundError: unknown product
        InsufficientStockError: resulting stock would be negative
    """
    query = session.query(Product).filter(Product.id == product_id)
    if delta < 0:
        query = query.filter(Product.stock_quantity + delta >= 0)

    updated = query.update(
        {
            Product.stock_quantity: Product.stock_quantity + delta,
            Product.updated_at: func.now(),
        },
        synchronize_session=False
    )

    if updated == 0:
        product = _reload(product_id, session)
        raise InsufficientStockError(product.name, -delta, product.stock_quantity)

    product = _reload(product_id, session)
    logger.debug(f"On-hand stock of product {product_id} adjusted by {delta} -> {product.stock_quantity}")
    return product


def adjust_provisional(product_id: int, delta: int, session: Session) -> Product:
    """
    Add ``delta`` to a product's provisional stock (goods expected from
    suppliers). No lower bound is enforced; a negative result is logged.

    Raises:
        NotFoundError: unknown product
    """
    updated = session.query(Product).filter(Product.id == product_id).update(
        {
            Product.provisional_stock: Product.provisional_stock + delta,
            Product.updated_at: func.now(),
        },
        synchronize_session=False
    )
    if updated == 0:
        raise NotFoundError(f'Product {product_id} not found.')

    product = _reload(product_id, session)
    if product.provisional_stock < 0:
        logger.warning(
            f"Provisional stock of product {product_id} ({product.reference}) is negative: "
            f"{product.provisional_stock}"
        )
    return product


def adjust_stock(product_id: int, session: Session, on_hand_delta=None, provisional_delta=None) -> Product:
    """
    Apply on-hand and/or provisional deltas to a product as one unit of work.

    Args:
        product_id: product to adjust
        session: SQLAlchemy session
        on_hand_delta: signed whole-unit change of on-hand stock
        provisional_delta: signed whole-unit change of provisional stock

    Returns:
        The updated Product.

    Raises:
        ValidationError: no delta given or malformed delta
        NotFoundError: unknown product
        InsufficientStockError: on-hand stock would become negative
        PersistenceError: database failure
    """
    if on_hand_delta is None and provisional_delta is None:
        raise ValidationError('No stock delta provided.')

    try:
        on_hand = parse_delta(on_hand_delta)
        provisional = parse_delta(provisional_delta)
    except ValueError as e:
        raise ValidationError(str(e))

    try:
        product = _reload(product_id, session)
        if on_hand:
            product = adjust_on_hand(product_id, on_hand, session)
        if provisional:
            product = adjust_provisional(product_id, provisional, session)

        session.commit()
        logger.info(
            f"Stock adjusted for product {product_id}: on_hand {on_hand:+d}, provisional {provisional:+d}"
        )
        return product
    except BackofficeError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"Database error adjusting stock of product {product_id}")
        raise PersistenceError('Error adjusting stock.') from e
    except Exception:
        session.rollback()
        raise
