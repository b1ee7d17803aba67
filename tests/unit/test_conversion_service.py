"""
Unit tests for quote to invoice conversion.
"""

import pytest
from datetime import date
from decimal import Decimal

from sqlalchemy.exc import OperationalError

from backoffice.models import Invoice, Quote, QuoteStatus, PaymentStatus, DeliveryStatus, Side
from backoffice.exceptions import InvalidStateError, NotFoundError, PersistenceError, ValidationError
from backoffice.services import stock_ledger
from backoffice.services.conversion_service import convert_quote_to_invoice
from backoffice.services.invoice_service import get_invoice
from backoffice.services.quote_service import create_quote, set_quote_status, get_quote


@pytest.fixture
def approved_quote(session, customer, widget, gadget):
    quote = create_quote(
        Side.CLIENT,
        {
            'counterparty_id': customer.id,
            'items': [
                {'product_id': widget.id, 'quantity': 3, 'unit_price': '10.00'},
                {'product_id': gadget.id, 'quantity': 1, 'unit_price': '25.00'},
            ],
        },
        session
    )
    set_quote_status(quote.id, 'APPROVED', session)
    return quote.id


@pytest.fixture
def approved_supplier_quote(session, supplier, widget):
    quote = create_quote(
        Side.SUPPLIER,
        {'counterparty_id': supplier.id, 'items': [{'product_id': widget.id, 'quantity': 8}]},
        session
    )
    set_quote_status(quote.id, 'APPROVED', session)
    return quote.id


class TestConvertQuote:

    def test_invoice_mirrors_quote(self, session, approved_quote):
        invoice_id = convert_quote_to_invoice(approved_quote, '2025-01-15', session)

        invoice = get_invoice(invoice_id, session)
        quote = get_quote(approved_quote, session)

        assert invoice.total_amount == Decimal('55.00')
        assert invoice.delivery_date == date(2025, 1, 15)
        assert invoice.payment_status == PaymentStatus.UNPAID
        assert invoice.delivery_status == DeliveryStatus.IN_PROCESS
        assert invoice.quote_id == approved_quote
        assert invoice.client_id == quote.client_id
        assert [(i.product_id, i.quantity, i.unit_price, i.total_price) for i in invoice.items] == \
            [(i.product_id, i.quantity, i.unit_price, i.total_price) for i in quote.items]

        assert quote.status == QuoteStatus.CONVERTED
        assert quote.converted_invoice_id == invoice_id

    def test_second_conversion_refused(self, session, approved_quote):
        convert_quote_to_invoice(approved_quote, '2025-01-15', session)

        with pytest.raises(InvalidStateError) as exc_info:
            convert_quote_to_invoice(approved_quote, '2025-01-15', session)

        assert exc_info.value.current_status == QuoteStatus.CONVERTED
        assert session.query(Invoice).count() == 1

    def test_only_approved(self, session, customer, widget):
        quote = create_quote(
            Side.CLIENT,
            {'counterparty_id': customer.id, 'items': [{'product_id': widget.id, 'quantity': 1}]},
            session
        )

        with pytest.raises(InvalidStateError):
            convert_quote_to_invoice(quote.id, '2025-01-15', session)
        assert session.query(Invoice).count() == 0

    def test_client_conversion_leaves_stock(self, session, approved_quote, widget, reload_product):
        convert_quote_to_invoice(approved_quote, '2025-01-15', session)

        product = reload_product(widget.id)
        assert (product.stock_quantity, product.provisional_stock) == (10, 0)

    def test_supplier_conversion_books_provisional(self, session, approved_supplier_quote, widget, reload_product):
        convert_quote_to_invoice(approved_supplier_quote, date(2025, 2, 1), session)

        product = reload_product(widget.id)
        assert (product.stock_quantity, product.provisional_stock) == (10, 8)

    def test_snapshot_independent_of_quote(self, session, approved_quote, widget):
        """Invoice items are copies: later price changes do not reach them."""
        invoice_id = convert_quote_to_invoice(approved_quote, '2025-01-15', session)

        product = session.get(type(widget), widget.id)
        product.selling_price = Decimal('99.00')
        session.commit()

        invoice = get_invoice(invoice_id, session)
        assert invoice.items[0].unit_price == Decimal('10.00')
        assert get_quote(approved_quote, session).items[0].current_price == Decimal('99.00')

    def test_delivery_date_required(self, session, approved_quote):
        with pytest.raises(ValidationError):
            convert_quote_to_invoice(approved_quote, None, session)

    def test_unknown_quote(self, session):
        with pytest.raises(NotFoundError):
            convert_quote_to_invoice(999, '2025-01-15', session)

    def test_wrong_side(self, session, approved_quote):
        with pytest.raises(NotFoundError):
            convert_quote_to_invoice(approved_quote, '2025-01-15', session, side='supplier')

    def test_failure_rolls_back_everything(self, session, approved_supplier_quote, widget, reload_product,
                                           monkeypatch):
        def broken_adjust(product_id, delta, session):
            raise OperationalError('UPDATE product', {}, Exception('connection lost'))

        monkeypatch.setattr(stock_ledger, 'adjust_provisional', broken_adjust)

        with pytest.raises(PersistenceError) as exc_info:
            convert_quote_to_invoice(approved_supplier_quote, '2025-01-15', session)

        # Driver detail stays in the log
        assert 'connection lost' not in exc_info.value.to_dict()['message']

        quote = get_quote(approved_supplier_quote, session)
        assert quote.status == QuoteStatus.APPROVED
        assert quote.converted_invoice_id is None
        assert session.query(Invoice).count() == 0
        assert reload_product(widget.id).provisional_stock == 0

        # Retrying after the failure succeeds
        monkeypatch.undo()
        invoice_id = convert_quote_to_invoice(approved_supplier_quote, '2025-01-15', session)
        assert get_quote(approved_supplier_quote, session).converted_invoice_id == invoice_id

    def test_status_changed_after_lock_refused(self, session, approved_supplier_quote, widget, reload_product,
                                               monkeypatch):
        """The CONVERTED flip only applies to a quote that is still APPROVED."""
        original_adjust = stock_ledger.adjust_provisional

        def reject_meanwhile(product_id, delta, session):
            session.query(Quote).filter(Quote.id == approved_supplier_quote).update(
                {Quote.status: QuoteStatus.REJECTED}, synchronize_session=False
            )
            return original_adjust(product_id, delta, session)

        monkeypatch.setattr(stock_ledger, 'adjust_provisional', reject_meanwhile)

        with pytest.raises(InvalidStateError):
            convert_quote_to_invoice(approved_supplier_quote, '2025-01-15', session)

        assert session.query(Invoice).count() == 0
        assert reload_product(widget.id).provisional_stock == 0
        quote = get_quote(approved_supplier_quote, session)
        assert quote.converted_invoice_id is None
