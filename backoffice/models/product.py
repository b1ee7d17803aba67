"""Product model."""
from sqlalchemy import Column, String, Text, Integer, Numeric, DateTime
from sqlalchemy.sql import func
from backoffice.database import Base, BigIntPK
from backoffice.utils.serializers import money, iso


class Product(Base):
    """
    Catalog product.

    stock_quantity is the physically available count; provisional_stock counts
    goods expected from open supplier invoices that have not been received.
    Both are only mutated through the stock ledger or direct catalog edits.
    """

    __tablename__ = 'product'

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    reference = Column(String(64), nullable=False, unique=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    supplier_price = Column(Numeric(14, 2), nullable=False, default=0)
    selling_price = Column(Numeric(14, 2), nullable=False, default=0)
    stock_quantity = Column(Integer, nullable=False, default=0)
    provisional_stock = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Product(id={self.id}, reference='{self.reference}', stock={self.stock_quantity}, provisional={self.provisional_stock})>"

    def to_dict(self):
        return {
            'id': self.id,
            'reference': self.reference,
            'name': self.name,
            'description': self.description,
            'supplier_price': money(self.supplier_price),
            'selling_price': money(self.selling_price),
            'stock_quantity': self.stock_quantity,
            'provisional_stock': self.provisional_stock,
            'updated_at': iso(self.updated_at),
        }
