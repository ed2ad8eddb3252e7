"""
inventory.py — Stock item operations triggered directly by the user.

Provides:
- create_stock_item: add a new named item with starting stock
- use_stock: take a quantity out (deletes the item once nothing is left)
- add_stock: put a quantity back in
- delete_stock_item / search_stock

Quantities entered here are positive with at most one decimal place.
Schedule-driven deductions go through reservation.py instead.
"""

import logging

from database import (
    get_item, get_item_by_id, create_item, update_item, delete_item, list_items
)
from errors import ValidationError, NotFoundError, InsufficientStockError
from units import parse_number
from utils.validators import parse_one_decimal

logger = logging.getLogger(__name__)


def _load(ctx, item_id):
    item = get_item_by_id(ctx.user_id, item_id)
    if item is None:
        raise NotFoundError("Item not found.")
    return item


def create_stock_item(ctx, name, remaining, unit, used=0):
    """
    Create a stock item.

    Args:
        ctx: UserContext
        name: Item name, unique per user regardless of case
        remaining: Starting stock (non-negative number)
        unit: Display unit (e.g. "kg", "gram", "liter", "ml")
        used: Starting used counter, normally 0

    Returns:
        The new InventoryItem.
    """
    name = (name or '').strip()
    unit = (unit or '').strip()
    remaining_num = parse_number(remaining)
    used_num = parse_number(used)
    if not name or not unit or remaining_num is None or used_num is None:
        raise ValidationError("All fields are required.")
    if remaining_num < 0 or used_num < 0:
        raise ValidationError("Stock values cannot be negative.")

    if get_item(ctx.user_id, name) is not None:
        raise ValidationError(f'An item named "{name}" already exists.', item=name)

    item_id = create_item(ctx.user_id, name, round(remaining_num, 1), round(used_num, 1), unit)
    logger.info("Stock item %s created for user %s", name, ctx.user_id)
    return get_item_by_id(ctx.user_id, item_id)


def use_stock(ctx, item_id, value):
    """
    Take value out of an item's stock.

    Returns:
        The updated InventoryItem, or None when the item ran out and was deleted.
    """
    amount = parse_one_decimal(value)
    item = _load(ctx, item_id)
    if amount > item.remaining:
        raise InsufficientStockError("Not enough remaining.", item=item.name)

    used = round(item.used + amount, 1)
    remaining = round(item.remaining - amount, 1)

    if remaining <= 0:
        delete_item(ctx.user_id, item.id)
        logger.info("Stock item %s used up and removed", item.name)
        return None

    update_item(ctx.user_id, item.id, remaining, used)
    return get_item_by_id(ctx.user_id, item.id)


def add_stock(ctx, item_id, value):
    """Add value to an item's remaining stock. Returns the updated item."""
    amount = parse_one_decimal(value)
    item = _load(ctx, item_id)
    update_item(ctx.user_id, item.id, round(item.remaining + amount, 1), item.used)
    return get_item_by_id(ctx.user_id, item.id)


def delete_stock_item(ctx, item_id):
    """Delete an item. NotFoundError if it does not exist."""
    item = _load(ctx, item_id)
    delete_item(ctx.user_id, item.id)
    logger.info("Stock item %s deleted", item.name)


def search_stock(ctx, query=None):
    """Stock items, newest first, whose name contains query (case-insensitive)."""
    return list_items(ctx.user_id, search=(query or '').strip() or None)
