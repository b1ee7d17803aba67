"""
Unit tests for the quote store.
"""

import pytest
from datetime import date, timedelta
from decimal import Decimal

from backoffice.models import QuoteStatus, Side
from backoffice.exceptions import InvalidStateError, NotFoundError, ValidationError
from backoffice.services.quote_service import (
    create_quote, update_quote, set_quote_status, get_quote, list_quotes
)


def _items(widget, gadget):
    return [
        {'product_id': widget.id, 'quantity': 3, 'unit_price': '10.00'},
        {'product_id': gadget.id, 'quantity': 1, 'unit_price': '25.00'},
    ]


class TestCreateQuote:

    def test_total_is_sum_of_items(self, session, customer, widget, gadget):
        quote = create_quote(
            Side.CLIENT,
            {'counterparty_id': customer.id, 'items': _items(widget, gadget)},
            session
        )

        assert quote.id is not None
        assert quote.status == QuoteStatus.PENDING
        assert quote.total_amount == Decimal('55.00')
        assert [item.total_price for item in quote.items] == [Decimal('30.00'), Decimal('25.00')]
        assert quote.client_id == customer.id
        assert quote.supplier_id is None

    def test_draft_and_defaults(self, session, supplier, widget):
        quote = create_quote(
            'supplier',
            {
                'counterparty_id': supplier.id,
                'items': [{'product_id': widget.id, 'quantity': 2}],
                'status': 'DRAFT',
                'notes': '  urgent  ',
            },
            session,
            valid_days=30
        )

        assert quote.status == QuoteStatus.DRAFT
        assert quote.notes == 'urgent'
        assert quote.valid_until == date.today() + timedelta(days=30)
        # Supplier lines default to the supplier price
        assert quote.items[0].unit_price == Decimal('6.00')
        assert quote.total_amount == Decimal('12.00')

    def test_comma_decimal_price(self, session, customer, widget):
        quote = create_quote(
            Side.CLIENT,
            {'counterparty_id': customer.id, 'items': [{'product_id': widget.id, 'quantity': 2, 'unit_price': '7,25'}]},
            session
        )
        assert quote.total_amount == Decimal('14.50')

    def test_empty_items(self, session, customer):
        with pytest.raises(ValidationError):
            create_quote(Side.CLIENT, {'counterparty_id': customer.id, 'items': []}, session)

    @pytest.mark.parametrize('quantity', [0, -1, '1.5', 'abc'])
    def test_bad_quantity(self, session, customer, widget, quantity):
        with pytest.raises(ValidationError):
            create_quote(
                Side.CLIENT,
                {'counterparty_id': customer.id, 'items': [{'product_id': widget.id, 'quantity': quantity}]},
                session
            )

    def test_negative_price(self, session, customer, widget):
        with pytest.raises(ValidationError):
            create_quote(
                Side.CLIENT,
                {'counterparty_id': customer.id,
                 'items': [{'product_id': widget.id, 'quantity': 1, 'unit_price': '-1'}]},
                session
            )

    def test_missing_counterparty(self, session, widget):
        with pytest.raises(ValidationError):
            create_quote(Side.CLIENT, {'items': [{'product_id': widget.id, 'quantity': 1}]}, session)

    def test_unknown_counterparty(self, session, widget):
        with pytest.raises(NotFoundError):
            create_quote(
                Side.CLIENT,
                {'counterparty_id': 999, 'items': [{'product_id': widget.id, 'quantity': 1}]},
                session
            )

    def test_unknown_product(self, session, customer):
        with pytest.raises(NotFoundError):
            create_quote(
                Side.CLIENT,
                {'counterparty_id': customer.id, 'items': [{'product_id': 999, 'quantity': 1}]},
                session
            )

    def test_cannot_create_converted(self, session, customer, widget):
        with pytest.raises(ValidationError):
            create_quote(
                Side.CLIENT,
                {'counterparty_id': customer.id, 'status': 'CONVERTED',
                 'items': [{'product_id': widget.id, 'quantity': 1}]},
                session
            )


class TestUpdateQuote:

    def test_replace_items_recomputes_total(self, session, customer, widget, gadget):
        quote = create_quote(
            Side.CLIENT,
            {'counterparty_id': customer.id, 'items': _items(widget, gadget), 'status': 'DRAFT'},
            session
        )

        updated = update_quote(
            quote.id,
            {'items': [{'product_id': gadget.id, 'quantity': 2, 'unit_price': '20.00'}]},
            session
        )

        assert len(updated.items) == 1
        assert updated.items[0].product_id == gadget.id
        assert updated.total_amount == Decimal('40.00')

    def test_only_draft_is_editable(self, session, customer, widget, gadget):
        quote = create_quote(Side.CLIENT, {'counterparty_id': customer.id, 'items': _items(widget, gadget)}, session)

        with pytest.raises(InvalidStateError) as exc_info:
            update_quote(quote.id, {'items': [{'product_id': widget.id, 'quantity': 1}]}, session)

        assert exc_info.value.current_status == QuoteStatus.PENDING
        assert get_quote(quote.id, session).total_amount == Decimal('55.00')

    def test_unknown_quote(self, session, widget):
        with pytest.raises(NotFoundError):
            update_quote(999, {'items': [{'product_id': widget.id, 'quantity': 1}]}, session)


class TestQuoteStatus:

    def test_lenient_writes(self, session, customer, widget, gadget):
        quote = create_quote(Side.CLIENT, {'counterparty_id': customer.id, 'items': _items(widget, gadget)}, session)

        assert set_quote_status(quote.id, 'APPROVED', session).status == QuoteStatus.APPROVED
        assert set_quote_status(quote.id, 'REJECTED', session).status == QuoteStatus.REJECTED
        assert set_quote_status(quote.id, QuoteStatus.DRAFT, session).status == QuoteStatus.DRAFT

    def test_converted_is_not_writable(self, session, customer, widget, gadget):
        quote = create_quote(Side.CLIENT, {'counterparty_id': customer.id, 'items': _items(widget, gadget)}, session)

        with pytest.raises(ValidationError):
            set_quote_status(quote.id, 'CONVERTED', session)

    def test_unknown_status(self, session, customer, widget, gadget):
        quote = create_quote(Side.CLIENT, {'counterparty_id': customer.id, 'items': _items(widget, gadget)}, session)

        with pytest.raises(ValidationError):
            set_quote_status(quote.id, 'SHIPPED', session)

    def test_strict_mode_refuses_unlisted_move(self, session, customer, widget, gadget):
        quote = create_quote(Side.CLIENT, {'counterparty_id': customer.id, 'items': _items(widget, gadget)}, session)
        set_quote_status(quote.id, 'REJECTED', session)

        with pytest.raises(InvalidStateError):
            set_quote_status(quote.id, 'APPROVED', session, strict=True)

    def test_wrong_side_is_not_found(self, session, customer, widget, gadget):
        quote = create_quote(Side.CLIENT, {'counterparty_id': customer.id, 'items': _items(widget, gadget)}, session)

        with pytest.raises(NotFoundError):
            get_quote(quote.id, session, side='supplier')


class TestListQuotes:

    def test_filters(self, session, customer, supplier, widget, gadget):
        first = create_quote(Side.CLIENT, {'counterparty_id': customer.id, 'items': _items(widget, gadget)}, session)
        second = create_quote(Side.CLIENT, {'counterparty_id': customer.id, 'items': _items(widget, gadget)}, session)
        create_quote(Side.SUPPLIER, {'counterparty_id': supplier.id, 'items': _items(widget, gadget)}, session)
        set_quote_status(first.id, 'APPROVED', session)

        client_quotes = list_quotes(session, Side.CLIENT)
        assert [q.id for q in client_quotes] == [second.id, first.id]

        approved = list_quotes(session, 'client', status='APPROVED')
        assert [q.id for q in approved] == [first.id]

        by_name = list_quotes(session, 'client', search='acme')
        assert len(by_name) == 2

        assert list_quotes(session, 'supplier', counterparty_id=supplier.id)[0].supplier_id == supplier.id


class TestQuoteInputBounds:

    @pytest.mark.parametrize('notes', [5, ['a'], {'text': 'x'}])
    def test_non_text_notes_on_create(self, session, customer, widget, notes):
        with pytest.raises(ValidationError):
            create_quote(
                Side.CLIENT,
                {'counterparty_id': customer.id, 'notes': notes,
                 'items': [{'product_id': widget.id, 'quantity': 1}]},
                session
            )

    def test_non_text_notes_on_update(self, session, customer, widget):
        quote = create_quote(
            Side.CLIENT,
            {'counterparty_id': customer.id, 'status': 'DRAFT', 'notes': 'keep',
             'items': [{'product_id': widget.id, 'quantity': 1}]},
            session
        )

        with pytest.raises(ValidationError):
            update_quote(quote.id, {'notes': 5, 'items': [{'product_id': widget.id, 'quantity': 2}]}, session)

        assert get_quote(quote.id, session).notes == 'keep'

    def test_blank_notes_become_none(self, session, customer, widget):
        quote = create_quote(
            Side.CLIENT,
            {'counterparty_id': customer.id, 'notes': '   ',
             'items': [{'product_id': widget.id, 'quantity': 1}]},
            session
        )
        assert quote.notes is None

    @pytest.mark.parametrize('item', [
        {'quantity': 10**20},
        {'quantity': 2**31},
        {'quantity': 1, 'unit_price': '1000000000000'},
        {'quantity': 2**31 - 1, 'unit_price': '999999'},
    ])
    def test_out_of_range_lines(self, session, customer, widget, item):
        with pytest.raises(ValidationError):
            create_quote(
                Side.CLIENT,
                {'counterparty_id': customer.id, 'items': [dict(item, product_id=widget.id)]},
                session
            )

    def test_out_of_range_product_id(self, session, customer):
        with pytest.raises(ValidationError):
            create_quote(
                Side.CLIENT,
                {'counterparty_id': customer.id, 'items': [{'product_id': 10**20, 'quantity': 1}]},
                session
            )
