"""QuoteItem model for quote line items."""
from sqlalchemy import Column, BigInteger, Integer, Numeric, ForeignKey
from sqlalchemy.orm import relationship
from backoffice.database import Base, BigIntPK
from backoffice.models.side import Side
from backoffice.utils.serializers import money


class QuoteItem(Base):
    """
    Quote line item.

    unit_price is frozen when the item is written. current_price reads the
    product's live price and is informational only.
    """

    __tablename__ = 'quote_item'

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    quote_id = Column(BigInteger, ForeignKey('quote.id'), nullable=False)
    product_id = Column(BigInteger, ForeignKey('product.id'), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(14, 2), nullable=False)
    total_price = Column(Numeric(14, 2), nullable=False)

    # Relationships
    quote = relationship('Quote', back_populates='items')
    product = relationship('Product', foreign_keys=[product_id])

    def __repr__(self):
        return f"<QuoteItem(id={self.id}, quote_id={self.quote_id}, product_id={self.product_id}, qty={self.quantity}, total={self.total_price})>"

    @property
    def current_price(self):
        if not self.product:
            return None
        if self.quote is not None and self.quote.side == Side.SUPPLIER:
            return self.product.supplier_price
        return self.product.selling_price

    def to_dict(self):
        return {
            'id': self.id,
            'product_id': self.product_id,
            'product_name': self.product.name if self.product else None,
            'product_reference': self.product.reference if self.product else None,
            'quantity': self.quantity,
            'unit_price': money(self.unit_price),
            'total_price': money(self.total_price),
            'current_price': money(self.current_price),
        }
