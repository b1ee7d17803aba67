"""Supplier model."""
from sqlalchemy import Column, String, Text, DateTime
from sqlalchemy.sql import func
from backoffice.database import Base, BigIntPK


class Supplier(Base):
    """Supplier (proveedor)."""

    __tablename__ = 'supplier'

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    address = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    def __repr__(self):
        return f"<Supplier(id={self.id}, name='{self.name}')>"
