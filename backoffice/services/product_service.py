"""Catalog lookups used by the order lifecycle (read-only apart from stock)."""
from typing import Optional

from sqlalchemy.orm import Session

from backoffice.models import Product
from backoffice.exceptions import NotFoundError, ValidationError


def get_product(product_id: int, session: Session) -> Product:
    product = session.get(Product, product_id)
    if product is None:
        raise NotFoundError(f'Product {product_id} not found.')
    return product


def is_reference_available(reference: str, session: Session, exclude_id: Optional[int] = None) -> bool:
    """
    Check whether a product reference is free.

    Args:
        reference: business key to check
        exclude_id: product being edited, ignored in the lookup
    """
    reference = (reference or '').strip()
    if not reference:
        raise ValidationError('reference is required.')

    query = session.query(Product.id).filter(Product.reference == reference)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    return query.first() is None
