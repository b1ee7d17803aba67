"""Products blueprint - stock adjustments and reference checks."""
from flask import Blueprint, request, jsonify

from backoffice.database import get_session
from backoffice.services.product_service import get_product, is_reference_available
from backoffice.services.stock_ledger import adjust_stock

products_bp = Blueprint('products', __name__, url_prefix='/api/products')


@products_bp.route('/check-reference')
def check_reference():
    """Tell whether a product reference is still free."""
    available = is_reference_available(
        request.args.get('reference', ''),
        get_session(),
        exclude_id=request.args.get('exclude_id', type=int)
    )
    return jsonify({'available': available})


@products_bp.route('/<int:product_id>')
def view_product(product_id):
    product = get_product(product_id, get_session())
    return jsonify(product.to_dict())


@products_bp.route('/<int:product_id>/stock', methods=['POST'])
def adjust_product_stock(product_id):
    """Apply on-hand and/or provisional deltas."""
    data = request.get_json(silent=True) or {}
    product = adjust_stock(
        product_id,
        get_session(),
        on_hand_delta=data.get('on_hand_delta'),
        provisional_delta=data.get('provisional_delta')
    )
    return jsonify(product.to_dict())
