"""Invoice model for client sales and supplier purchases."""
import enum
from sqlalchemy import Column, BigInteger, Numeric, DateTime, Date, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from backoffice.database import Base, BigIntPK
from backoffice.models.side import Side, side_type
from backoffice.utils.serializers import money, iso, enum_value


class PaymentStatus(enum.Enum):
    """Invoice payment status enum."""
    UNPAID = "UNPAID"
    PAID = "PAID"


class DeliveryStatus(enum.Enum):
    """Invoice delivery status enum."""
    IN_PROCESS = "IN_PROCESS"
    SENDING = "SENDING"
    DELIVERED = "DELIVERED"


class Invoice(Base):
    """
    Invoice for a committed sale (client) or purchase (supplier).

    Items are a snapshot: an invoice created from a quote carries copies of
    that quote's items, not references to them.
    """

    __tablename__ = 'invoice'

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    side = Column(side_type, nullable=False)
    client_id = Column(BigInteger, ForeignKey('client.id'), nullable=True)
    supplier_id = Column(BigInteger, ForeignKey('supplier.id'), nullable=True)
    quote_id = Column(BigInteger, ForeignKey('quote.id'), nullable=True)
    date_created = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    delivery_date = Column(Date, nullable=True)
    total_amount = Column(Numeric(14, 2), nullable=False)
    payment_status = Column(
        SQLEnum(PaymentStatus, name='payment_status'),
        nullable=False,
        default=PaymentStatus.UNPAID
    )
    delivery_status = Column(
        SQLEnum(DeliveryStatus, name='delivery_status'),
        nullable=False,
        default=DeliveryStatus.IN_PROCESS
    )
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    client = relationship('Client')
    supplier = relationship('Supplier')
    quote = relationship('Quote', foreign_keys=[quote_id])
    items = relationship(
        'InvoiceItem',
        back_populates='invoice',
        cascade='all, delete-orphan',
        order_by='InvoiceItem.id'
    )

    def __repr__(self):
        return (
            f"<Invoice(id={self.id}, side={self.side.value}, payment={self.payment_status.value}, "
            f"delivery={self.delivery_status.value})>"
        )

    @property
    def counterparty_id(self):
        return self.client_id if self.side == Side.CLIENT else self.supplier_id

    @property
    def counterparty_name(self):
        party = self.client if self.side == Side.CLIENT else self.supplier
        return party.name if party else None

    def to_dict(self, include_items=True):
        data = {
            'id': self.id,
            'side': enum_value(self.side),
            'counterparty_id': self.counterparty_id,
            'counterparty_name': self.counterparty_name,
            'quote_id': self.quote_id,
            'date_created': iso(self.date_created),
            'delivery_date': iso(self.delivery_date),
            'total_amount': money(self.total_amount),
            'payment_status': enum_value(self.payment_status),
            'delivery_status': enum_value(self.delivery_status),
        }
        if include_items:
            data['items'] = [item.to_dict() for item in self.items]
        else:
            data['items_count'] = len(self.items)
        return data
