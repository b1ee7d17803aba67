"""Invoices blueprint - JSON API for client and supplier invoices."""
from flask import Blueprint, request, jsonify, current_app

from backoffice.database import get_session
from backoffice.services.invoice_service import (
    create_invoice,
    get_invoice,
    update_invoice_status,
    list_invoices
)

invoices_bp = Blueprint('invoices', __name__, url_prefix='/api/invoices')


@invoices_bp.route('/<any(client, supplier):side>', methods=['GET'])
def list_invoices_view(side):
    """List invoices with filters."""
    invoices = list_invoices(
        get_session(),
        side,
        counterparty_id=request.args.get('counterparty_id', type=int),
        payment_status=request.args.get('payment_status', '').strip() or None,
        delivery_status=request.args.get('delivery_status', '').strip() or None,
        start_date=request.args.get('start_date'),
        end_date=request.args.get('end_date')
    )
    return jsonify([invoice.to_dict(include_items=False) for invoice in invoices])


@invoices_bp.route('/<any(client, supplier):side>', methods=['POST'])
def create_invoice_view(side):
    """Create an invoice directly."""
    invoice = create_invoice(side, request.get_json(silent=True) or {}, get_session())
    return jsonify(invoice.to_dict()), 201


@invoices_bp.route('/<any(client, supplier):side>/<int:invoice_id>', methods=['GET'])
def view_invoice(side, invoice_id):
    """Invoice detail with items."""
    invoice = get_invoice(invoice_id, get_session(), side=side)
    return jsonify(invoice.to_dict())


@invoices_bp.route('/<any(client, supplier):side>/<int:invoice_id>', methods=['PUT'])
def update_status(side, invoice_id):
    """Update payment and/or delivery status (stock effects applied by the guard)."""
    data = request.get_json(silent=True) or {}
    invoice = update_invoice_status(
        invoice_id,
        get_session(),
        side=side,
        payment_status=data.get('payment_status'),
        delivery_status=data.get('delivery_status'),
        strict=current_app.config.get('STRICT_STATUS_TRANSITIONS', False)
    )
    return jsonify(invoice.to_dict())
