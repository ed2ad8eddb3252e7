"""
routes/inventory.py — Stock ("Available Stock") routes.

Provides:
- GET  /inventory/                 — JSON: stock items, newest first (?q= name search)
- POST /inventory/                 — Create an item (name, remaining, unit)
- POST /inventory/<item_id>/use    — Take a quantity out (item removed at zero)
- POST /inventory/<item_id>/add    — Put a quantity back
- POST /inventory/<item_id>/delete — Delete an item
"""

from flask import Blueprint, jsonify, request

from inventory import create_stock_item, use_stock, add_stock, delete_stock_item, search_stock
from utils.context import get_user_context, request_data

inventory_bp = Blueprint('inventory', __name__, url_prefix='/inventory')


@inventory_bp.route('/')
def index():
    """List stock items, optionally filtered by name."""
    ctx = get_user_context()
    items = search_stock(ctx, request.args.get('q', ''))
    return jsonify({'items': [i.to_dict() for i in items]})


@inventory_bp.route('/', methods=['POST'])
def create():
    """Create a new stock item."""
    ctx = get_user_context()
    data = request_data()
    item = create_stock_item(
        ctx,
        name=data.get('name'),
        remaining=data.get('remaining'),
        unit=data.get('unit'),
        used=data.get('used', 0),
    )
    return jsonify({'item': item.to_dict(), 'message': 'Item added.'}), 201


@inventory_bp.route('/<int:item_id>/use', methods=['POST'])
def use(item_id):
    """Use a quantity of an item."""
    ctx = get_user_context()
    item = use_stock(ctx, item_id, request_data().get('value'))
    return jsonify({
        'item': item.to_dict() if item else None,
        'deleted': item is None,
    })


@inventory_bp.route('/<int:item_id>/add', methods=['POST'])
def add(item_id):
    """Add a quantity to an item."""
    ctx = get_user_context()
    item = add_stock(ctx, item_id, request_data().get('value'))
    return jsonify({'item': item.to_dict()})


@inventory_bp.route('/<int:item_id>/delete', methods=['POST'])
def delete(item_id):
    ctx = get_user_context()
    delete_stock_item(ctx, item_id)
    return jsonify({'deleted': True})
