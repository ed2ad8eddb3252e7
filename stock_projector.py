"""
stock_projector.py — Read-only preview of stock across upcoming schedules.

Replays schedules in date order against the current stock and records, for
every schedule and item, how much stock would be available when that
schedule runs. Later schedules see stock already depleted by earlier ones,
which is how cascading shortages show up before anything is committed.

Algorithm:
- Working copy of stock keyed by lower-cased item name
- Schedules sorted by schedule_date (stable: ties keep input order)
- For each item of a schedule (spray items, then drip items):
    1. record working[name] as the available figure for this schedule
    2. working[name] = max(0, available - final_qty)
- Items with no stock record report remaining 0 and unit ""

Nothing passed in is modified.
"""

from typing import Dict, Iterable, List

from models import InventoryItem, LineItem, Schedule, StockEntry, normalize_item_name


def project(inventory_snapshot: Iterable[InventoryItem],
            schedules: Iterable[Schedule]) -> Dict[int, Dict[str, StockEntry]]:
    """
    Project available stock for each schedule.

    Args:
        inventory_snapshot: Current stock items
        schedules: Schedules to replay (any order; sorted here by date)

    Returns:
        {schedule_id: {line_item_name: StockEntry(remaining, unit)}}
    """
    working = {}
    units = {}
    for stock in inventory_snapshot:
        working[stock.key] = stock.remaining
        units[stock.key] = stock.unit

    projection = {}
    for schedule in sorted(schedules, key=lambda s: s.schedule_date):
        availability = {}
        for item in schedule.all_items:
            key = normalize_item_name(item.name)
            available = working.get(key, 0)
            availability[item.name] = StockEntry(remaining=available, unit=units.get(key, ''))
            working[key] = max(0, available - (item.final_qty or 0))
        projection[schedule.id] = availability

    return projection


def shortages(projection: Dict[int, Dict[str, StockEntry]], schedule: Schedule) -> List[LineItem]:
    """Line items of a schedule whose projected stock cannot cover final_qty."""
    availability = projection.get(schedule.id, {})
    short = []
    for item in schedule.all_items:
        entry = availability.get(item.name)
        if entry is None or entry.remaining < (item.final_qty or 0):
            short.append(item)
    return short
