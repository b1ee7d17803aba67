"""Invoice Item model."""
from sqlalchemy import Column, BigInteger, Integer, Numeric, ForeignKey
from sqlalchemy.orm import relationship
from backoffice.database import Base, BigIntPK
from backoffice.utils.serializers import money


class InvoiceItem(Base):
    """Invoice line item (mirrors QuoteItem)."""

    __tablename__ = 'invoice_item'

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    invoice_id = Column(BigInteger, ForeignKey('invoice.id'), nullable=False)
    product_id = Column(BigInteger, ForeignKey('product.id'), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(14, 2), nullable=False)
    total_price = Column(Numeric(14, 2), nullable=False)

    # Relationships
    invoice = relationship('Invoice', back_populates='items')
    product = relationship('Product')

    def __repr__(self):
        return f"<InvoiceItem(id={self.id}, product_id={self.product_id}, qty={self.quantity})>"

    def to_dict(self):
        return {
            'id': self.id,
            'product_id': self.product_id,
            'product_name': self.product.name if self.product else None,
            'product_reference': self.product.reference if self.product else None,
            'quantity': self.quantity,
            'unit_price': money(self.unit_price),
            'total_price': money(self.total_price),
        }
