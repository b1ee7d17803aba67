"""Quote model for client and supplier quotes."""
import enum
from sqlalchemy import Column, BigInteger, Numeric, DateTime, Date, Text, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from backoffice.database import Base, BigIntPK
from backoffice.models.side import Side, side_type
from backoffice.utils.serializers import money, iso, enum_value


class QuoteStatus(enum.Enum):
    """Quote status enum."""
    DRAFT = "DRAFT"
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CONVERTED = "CONVERTED"


class Quote(Base):
    """
    Quote issued to a client or requested from a supplier.

    Once APPROVED a quote can be converted into exactly one invoice, at which
    point its status becomes CONVERTED and converted_invoice_id is populated.
    CONVERTED is terminal.
    """

    __tablename__ = 'quote'

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    side = Column(side_type, nullable=False)
    client_id = Column(BigInteger, ForeignKey('client.id'), nullable=True)
    supplier_id = Column(BigInteger, ForeignKey('supplier.id'), nullable=True)
    date_created = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    valid_until = Column(Date, nullable=True)
    total_amount = Column(Numeric(14, 2), nullable=False, default=0)
    status = Column(SQLEnum(QuoteStatus, name='quote_status'), nullable=False, default=QuoteStatus.PENDING)
    notes = Column(Text, nullable=True)
    # Plain column: invoice.quote_id already points the other way
    converted_invoice_id = Column(BigInteger, nullable=True, unique=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    client = relationship('Client')
    supplier = relationship('Supplier')
    items = relationship(
        'QuoteItem',
        back_populates='quote',
        cascade='all, delete-orphan',
        order_by='QuoteItem.id'
    )

    def __repr__(self):
        return f"<Quote(id={self.id}, side={self.side.value}, status={self.status.value}, total={self.total_amount})>"

    @property
    def counterparty_id(self):
        return self.client_id if self.side == Side.CLIENT else self.supplier_id

    @property
    def counterparty_name(self):
        party = self.client if self.side == Side.CLIENT else self.supplier
        return party.name if party else None

    @property
    def is_editable(self):
        return self.status == QuoteStatus.DRAFT

    @property
    def is_convertible(self):
        return self.status == QuoteStatus.APPROVED and self.converted_invoice_id is None

    def to_dict(self, include_items=True):
        data = {
            'id': self.id,
            'side': enum_value(self.side),
            'counterparty_id': self.counterparty_id,
            'counterparty_name': self.counterparty_name,
            'date_created': iso(self.date_created),
            'valid_until': iso(self.valid_until),
            'total_amount': money(self.total_amount),
            'status': enum_value(self.status),
            'notes': self.notes,
            'converted_invoice_id': self.converted_invoice_id,
        }
        if include_items:
            data['items'] = [item.to_dict() for item in self.items]
        else:
            data['items_count'] = len(self.items)
        return data
