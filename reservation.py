"""
reservation.py — Stock deduction and restore on schedule completion.

A schedule is either pending (completed = false) or completed. Marking it
complete takes every line item's final_qty out of stock; marking it
incomplete puts it back. Both directions are reversible.

complete:
1. Match every line item to a stock item (captured item_id first, then
   case-insensitive name). Any miss → NotFoundError, nothing changes.
2. Sum requirements per stock item. Any item short → InsufficientStockError,
   nothing changes.
3. remaining -= required, used += required (one decimal place).
4. Flip completed to true, only if it is still false.

uncomplete mirrors it without the sufficiency check.

All of steps 1-4 run inside one BEGIN IMMEDIATE transaction, so a failure at
any point (including a lost compare-and-swap on the completed flag) rolls
back every stock change. A schedule already being toggled in this process
is rejected with ConflictError instead of waiting.
"""

import logging
import sqlite3
import threading
from collections import OrderedDict
from contextlib import contextmanager

from database import (
    transaction, fetch_schedule, fetch_items, write_item_quantities,
    swap_schedule_completed, notify_inventory, notify_schedules, get_schedule
)
from errors import (
    FarmError, NotFoundError, InsufficientStockError, ConflictError, StoreError
)
from units import parse_number

logger = logging.getLogger(__name__)

_in_flight = set()
_in_flight_lock = threading.Lock()


@contextmanager
def _exclusive(schedule_id):
    """Reject a second toggle of the same schedule while one is running."""
    with _in_flight_lock:
        if schedule_id in _in_flight:
            raise ConflictError("This schedule is already being updated. Try again.")
        _in_flight.add(schedule_id)
    try:
        yield
    finally:
        with _in_flight_lock:
            _in_flight.discard(schedule_id)


def required_quantity(item) -> float:
    """Quantity a line item takes from stock: final_qty, else the raw quantity, else 0."""
    if item.final_qty is not None:
        return item.final_qty
    qty = parse_number(item.quantity)
    return qty if qty is not None else 0.0


def _match_stock(item, stock_by_id, stock_by_name):
    if item.item_id is not None and item.item_id in stock_by_id:
        return stock_by_id[item.item_id]
    return stock_by_name.get(item.key)


def _gather_requirements(schedule, stock_items):
    """
    Match line items to stock and total the requirement per stock item.

    Returns:
        OrderedDict {stock_id: [stock_item, total_required, first_line_item_name]}
        in line-item order (spray items, then drip items).

    Raises:
        NotFoundError naming the first line item with no stock record.
    """
    stock_by_id = {s.id: s for s in stock_items}
    stock_by_name = {s.key: s for s in stock_items}

    requirements = OrderedDict()
    for item in schedule.all_items:
        stock = _match_stock(item, stock_by_id, stock_by_name)
        if stock is None:
            raise NotFoundError(f'Item "{item.name}" not found in stock.', item=item.name)
        entry = requirements.setdefault(stock.id, [stock, 0.0, item.name])
        entry[1] = round(entry[1] + required_quantity(item), 2)
    return requirements


def _transition(ctx, plot_id, schedule_id, complete):
    with _exclusive(schedule_id):
        try:
            with transaction() as conn:
                schedule = fetch_schedule(conn, ctx.user_id, plot_id, schedule_id)
                if schedule is None:
                    raise NotFoundError("Schedule not found.")
                if schedule.completed == complete:
                    state = 'complete' if complete else 'incomplete'
                    raise ConflictError(f"Schedule is already marked {state}.")

                requirements = _gather_requirements(schedule, fetch_items(conn, ctx.user_id))

                # Validate everything before the first write
                if complete:
                    for stock, required, name in requirements.values():
                        if stock.remaining < required:
                            raise InsufficientStockError(
                                f'Insufficient stock for "{name}".', item=name
                            )

                for stock, required, _ in requirements.values():
                    if complete:
                        remaining = round(stock.remaining - required, 1)
                        used = round(stock.used + required, 1)
                    else:
                        remaining = round(stock.remaining + required, 1)
                        used = round(max(0.0, stock.used - required), 1)
                    write_item_quantities(conn, ctx.user_id, stock.id, remaining, used)

                if not swap_schedule_completed(conn, ctx.user_id, schedule_id,
                                               expected=not complete, new=complete):
                    raise ConflictError("Schedule was changed by another request. Reload and try again.")

        except FarmError as e:
            logger.warning("Schedule %s %s rejected: %s", schedule_id,
                           'complete' if complete else 'uncomplete', e.message)
            raise
        except sqlite3.Error as e:
            logger.exception("Store failure toggling schedule %s", schedule_id)
            raise StoreError("Failed to update completion status.") from e

    logger.info("Schedule %s marked %s, %d stock item(s) %s",
                schedule_id, 'complete' if complete else 'incomplete',
                len(requirements), 'deducted' if complete else 'restored')
    notify_inventory(ctx.user_id)
    notify_schedules(ctx.user_id, plot_id)
    return get_schedule(ctx.user_id, plot_id, schedule_id)


def complete_schedule(ctx, plot_id, schedule_id):
    """Deduct the schedule's items from stock and mark it complete."""
    return _transition(ctx, plot_id, schedule_id, complete=True)


def uncomplete_schedule(ctx, plot_id, schedule_id):
    """Restore the schedule's items to stock and mark it incomplete."""
    return _transition(ctx, plot_id, schedule_id, complete=False)


def toggle_completion(ctx, plot_id, schedule_id):
    """Flip a schedule between pending and completed."""
    schedule = get_schedule(ctx.user_id, plot_id, schedule_id)
    if schedule is None:
        raise NotFoundError("Schedule not found.")
    if schedule.completed:
        return uncomplete_schedule(ctx, plot_id, schedule_id)
    return complete_schedule(ctx, plot_id, schedule_id)
