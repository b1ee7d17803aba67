"""Quotes blueprint - JSON API for client and supplier quotes."""
from flask import Blueprint, request, jsonify, current_app

from backoffice.database import get_session
from backoffice.services.quote_service import (
    create_quote,
    update_quote,
    set_quote_status,
    get_quote,
    list_quotes
)
from backoffice.services.conversion_service import convert_quote_to_invoice
from backoffice.blueprints.metrics import quote_conversions_total

quotes_bp = Blueprint('quotes', __name__, url_prefix='/api/quotes')


def _json_body():
    return request.get_json(silent=True) or {}


@quotes_bp.route('/<any(client, supplier):side>', methods=['GET'])
def list_quotes_view(side):
    """List quotes with filters."""
    db_session = get_session()

    status = request.args.get('status', '').strip()
    quotes = list_quotes(
        db_session,
        side,
        status=None if status.lower() in ('', 'all') else status,
        counterparty_id=request.args.get('counterparty_id', type=int),
        search=request.args.get('search', '').strip() or None,
        date_from=request.args.get('date_from'),
        date_to=request.args.get('date_to')
    )
    return jsonify([quote.to_dict(include_items=False) for quote in quotes])


@quotes_bp.route('/<any(client, supplier):side>', methods=['POST'])
def create_quote_view(side):
    """Create a quote."""
    db_session = get_session()

    quote = create_quote(
        side,
        _json_body(),
        db_session,
        valid_days=current_app.config.get('QUOTE_VALID_DAYS')
    )
    return jsonify(quote.to_dict()), 201


@quotes_bp.route('/<any(client, supplier):side>/<int:quote_id>', methods=['GET'])
def view_quote(side, quote_id):
    """Quote detail with items."""
    quote = get_quote(quote_id, get_session(), side=side)
    return jsonify(quote.to_dict())


@quotes_bp.route('/<any(client, supplier):side>/<int:quote_id>', methods=['PUT'])
def edit_quote(side, quote_id):
    """Replace the items of a DRAFT quote."""
    quote = update_quote(quote_id, _json_body(), get_session(), side=side)
    return jsonify(quote.to_dict())


@quotes_bp.route('/<any(client, supplier):side>/<int:quote_id>/status', methods=['PATCH'])
def change_status(side, quote_id):
    """Write a quote status."""
    quote = set_quote_status(
        quote_id,
        _json_body().get('status'),
        get_session(),
        side=side,
        strict=current_app.config.get('STRICT_STATUS_TRANSITIONS', False)
    )
    return jsonify(quote.to_dict(include_items=False))


@quotes_bp.route('/<any(client, supplier):side>/<int:quote_id>/convert', methods=['POST'])
def convert_to_invoice(side, quote_id):
    """Convert an approved quote into an invoice."""
    invoice_id = convert_quote_to_invoice(
        quote_id,
        _json_body().get('delivery_date'),
        get_session(),
        side=side
    )
    quote_conversions_total.labels(side=side.upper()).inc()
    current_app.logger.info(f"Quote {quote_id} converted to invoice #{invoice_id}")
    return jsonify({
        'success': True,
        'invoice_id': invoice_id,
        'message': 'Quote successfully converted to invoice'
    })
