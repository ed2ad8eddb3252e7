"""
utils/validators.py — Input validation helpers.

Validates:
- Stock quantities (positive, at most one decimal place)
- Plot forms (name/size/location/spray tank, 20 characters max each)
- Schedule forms (at least one method, items per method, known units)
- Dates (ISO YYYY-MM-DD)

Every helper raises ValidationError with a message fit to show the user.
"""

import re
from datetime import date, datetime

from errors import ValidationError
from models import LineItem
from units import VOLUME_UNITS, MASS_UNITS, parse_number

ONE_DECIMAL = re.compile(r'^(\d+(\.\d{1})?)$')
DECIMAL = re.compile(r'^\d+(\.\d+)?$')
SCHEDULE_UNITS = VOLUME_UNITS + MASS_UNITS
MAX_FIELD_LENGTH = 20


def parse_bool(value):
    """Checkbox/JSON flag: "false", "0", "off" and "" are False."""
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes', 'on')
    return bool(value)


def parse_one_decimal(value, label='Value'):
    """Parse a positive stock quantity with at most one decimal place."""
    text = str(value).strip() if value is not None else ''
    if not ONE_DECIMAL.match(text):
        raise ValidationError("Enter a valid number (1 decimal max).")
    num = round(float(text), 1)
    if num <= 0:
        raise ValidationError(f"{label} must be > 0.")
    return num


def parse_iso_date(value, default_today=False):
    """Normalize a date or ISO datetime string to YYYY-MM-DD."""
    if value in (None, ''):
        if default_today:
            return date.today().isoformat()
        raise ValidationError("Date is required.")
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    text = str(value).strip()
    try:
        return datetime.fromisoformat(text[:10]).date().isoformat()
    except ValueError:
        raise ValidationError(f'Invalid date "{text}". Use YYYY-MM-DD.')


def _required_text(data, key, label):
    value = str(data.get(key) or '').strip()
    if not value:
        raise ValidationError(f"{label} is required.")
    if len(value) > MAX_FIELD_LENGTH:
        raise ValidationError(f"{label} must be {MAX_FIELD_LENGTH} characters or less.")
    return value


def validate_plot_form(data, editing=False):
    """
    Validate and normalize a plot create/edit form.

    Args:
        data: Mapping with name, size, location, spray_tank_level, session_start
        editing: Creation requires a spray tank level and defaults session_start
                 to today. Editing may clear the tank level and leaves
                 session_start out when the form does not send one.

    Returns:
        Dict with name, size, location, spray_tank_level and (unless editing
        without one) session_start.
    """
    name = _required_text(data, 'name', 'Plot name')
    size_text = _required_text(data, 'size', 'Plot size')
    if not DECIMAL.match(size_text):
        raise ValidationError("Enter a valid plot name and number area size.")
    location = _required_text(data, 'location', 'Location')

    tank_text = str(data.get('spray_tank_level') or '').strip()
    if tank_text:
        if len(tank_text) > MAX_FIELD_LENGTH:
            raise ValidationError(f"Spray tank level must be {MAX_FIELD_LENGTH} characters or less.")
        spray_tank_level = parse_number(tank_text)
        if spray_tank_level is None or spray_tank_level <= 0:
            raise ValidationError("Spray tank level must be a positive number.")
    elif not editing:
        raise ValidationError("Spray tank level is required.")
    else:
        spray_tank_level = None

    fields = {
        'name': name,
        'size': float(size_text),
        'location': location,
        'spray_tank_level': spray_tank_level,
    }
    session_start = data.get('session_start')
    if session_start not in (None, '') or not editing:
        fields['session_start'] = parse_iso_date(session_start, default_today=True)
    return fields


def _parse_line_item(raw, method):
    if not isinstance(raw, dict):
        raise ValidationError(f"Invalid {method} item.")
    name = str(raw.get('name') or '').strip()
    if not name:
        raise ValidationError(f"Every {method} item needs a name.")

    quantity = raw.get('quantity')
    if parse_number(quantity) is None:
        raise ValidationError(f'Quantity for "{name}" must be a number.', item=name)

    unit = raw.get('unit') or 'liters'
    if unit not in SCHEDULE_UNITS:
        raise ValidationError(f'Unrecognized unit "{unit}" for "{name}".', item=name)

    area = raw.get('area')
    if method == 'drip' and parse_number(area) is None:
        raise ValidationError(f'Drip item "{name}" needs an area.', item=name)

    return LineItem(
        name=name,
        quantity=str(quantity).strip(),
        unit=unit,
        area=str(area).strip() if area not in (None, '') else None,
    )


def _parse_line_items(raw_items, method):
    if raw_items in (None, ''):
        return []
    if not isinstance(raw_items, list):
        raise ValidationError(f"Invalid {method} items. Send a list of items.")
    return [_parse_line_item(raw, method) for raw in raw_items]


def validate_schedule_form(data):
    """
    Validate a schedule form.

    Args:
        data: Mapping with schedule_date, spray, drip, spray_items, drip_items

    Returns:
        (schedule_date, spray, drip, spray_items, drip_items) with raw,
        unresolved LineItems. A method that is switched off keeps no items.
    """
    spray = parse_bool(data.get('spray'))
    drip = parse_bool(data.get('drip'))
    if not spray and not drip:
        raise ValidationError("Select at least one option: Spray or Drip.")

    spray_items = _parse_line_items(data.get('spray_items'), 'spray') if spray else []
    drip_items = _parse_line_items(data.get('drip_items'), 'drip') if drip else []

    if spray and not spray_items:
        raise ValidationError("Add at least one Spray item.")
    if drip and not drip_items:
        raise ValidationError("Add at least one Drip item.")

    schedule_date = parse_iso_date(data.get('schedule_date'), default_today=True)
    return schedule_date, spray, drip, spray_items, drip_items
