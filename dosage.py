"""
dosage.py — Resolves schedule line items into absolute quantities.

Spray items are dosed per spray tank:
    final_qty = base_qty / area * spray_tank_level
where base_qty is the quantity in liters (volume units) or kilograms
(mass units), and area defaults to 200 when left blank.

Drip items are dosed per plot area:
    final_qty = quantity / area * plot_size
with the unit passed through unchanged. Drip items have no default area.

Resolution happens once, when a schedule is saved. The rounded final_qty is
stored with the schedule and every later computation starts from it.
"""

import math
from dataclasses import replace
from typing import Iterable, List, Tuple

from errors import ValidationError
from models import LineItem
from units import to_liters, to_kilograms, parse_number, canonical_unit

DEFAULT_SPRAY_AREA = 200.0
DEFAULT_SPRAY_TANK_LEVEL = 200.0


def round2(value: float) -> float:
    """Two-decimal rounding applied once at resolution time."""
    if math.isnan(value):
        return value
    return round(value, 2)


def _ratio(quantity, area, scale) -> float:
    """quantity / area * scale, NaN when any operand is missing or area is zero."""
    if quantity is None or area is None or scale is None or area == 0:
        return math.nan
    return round2(quantity / area * scale)


def _blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def resolve_spray_item(item: LineItem, spray_tank_level) -> LineItem:
    """Resolve a spray line item against the plot's spray tank capacity."""
    area = DEFAULT_SPRAY_AREA if _blank(item.area) else parse_number(item.area)
    if spray_tank_level is None:
        spray_tank_level = DEFAULT_SPRAY_TANK_LEVEL

    base_qty = to_liters(item.quantity, item.unit)
    if base_qty is None:
        base_qty = to_kilograms(item.quantity, item.unit)

    final_qty = _ratio(base_qty, area, parse_number(spray_tank_level))
    return replace(item, final_qty=final_qty, final_unit=canonical_unit(item.unit))


def resolve_drip_item(item: LineItem, plot_size) -> LineItem:
    """Resolve a drip line item against the plot's area."""
    final_qty = _ratio(parse_number(item.quantity), parse_number(item.area),
                       parse_number(plot_size))
    return replace(item, final_qty=final_qty, final_unit=item.unit)


def resolve_items(spray_items: Iterable[LineItem], drip_items: Iterable[LineItem],
                  plot) -> Tuple[List[LineItem], List[LineItem]]:
    """
    Resolve every line item of a schedule for the given plot.

    Args:
        spray_items: Raw spray line items (may be empty)
        drip_items: Raw drip line items (may be empty)
        plot: Plot supplying spray_tank_level and size

    Returns:
        (resolved_spray_items, resolved_drip_items)

    Raises:
        ValidationError naming the first item whose quantity could not be
        resolved (unknown unit, non-numeric input, zero area) or came out negative.
    """
    resolved_spray = [resolve_spray_item(i, plot.spray_tank_level) for i in spray_items]
    resolved_drip = [resolve_drip_item(i, plot.size) for i in drip_items]

    for item in resolved_spray + resolved_drip:
        if not item.is_resolved:
            raise ValidationError(
                f'Could not compute a quantity for "{item.name}". '
                f'Check the quantity, unit and area.',
                item=item.name,
            )
        if item.final_qty < 0:
            raise ValidationError(f'Quantity for "{item.name}" cannot be negative.', item=item.name)

    return resolved_spray, resolved_drip
