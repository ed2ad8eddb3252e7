"""
models.py — Python dataclasses for the farm stock application.

Maps to the SQLite tables created in database.py. Schedule line items are
embedded documents: they live as JSON inside the schedules table and have
no lifecycle of their own.
"""

import json
import math
from dataclasses import dataclass, field, asdict
from typing import Optional, List


def normalize_item_name(name) -> str:
    """Case-insensitive key used to match line items against stock items."""
    return (name or '').strip().lower()


@dataclass
class InventoryItem:
    """Stock record: how much of an item is left and how much was used."""
    id: Optional[int] = None
    user_id: str = ""
    name: str = ""
    remaining: float = 0.0
    used: float = 0.0
    unit: str = ""
    created_at: Optional[str] = None

    @property
    def key(self) -> str:
        return normalize_item_name(self.name)

    @classmethod
    def from_row(cls, row):
        return cls(
            id=row['id'],
            user_id=row['user_id'],
            name=row['name'],
            remaining=row['remaining'],
            used=row['used'],
            unit=row['unit'],
            created_at=row['created_at'],
        )

    def to_dict(self):
        return asdict(self)


@dataclass
class Plot:
    """User-owned land parcel with its own area and spray-tank capacity."""
    id: Optional[int] = None
    user_id: str = ""
    name: str = ""
    size: float = 0.0
    location: str = ""
    spray_tank_level: Optional[float] = None
    session_start: Optional[str] = None
    end_date: Optional[str] = None
    created_at: Optional[str] = None

    @property
    def is_ended(self) -> bool:
        return self.end_date is not None

    @classmethod
    def from_row(cls, row):
        return cls(
            id=row['id'],
            user_id=row['user_id'],
            name=row['name'],
            size=row['size'],
            location=row['location'],
            spray_tank_level=row['spray_tank_level'],
            session_start=row['session_start'],
            end_date=row['end_date'],
            created_at=row['created_at'],
        )

    def to_dict(self):
        return asdict(self)


@dataclass
class LineItem:
    """One fertilizer entry of a schedule, raw as entered plus resolved quantity."""
    name: str = ""
    quantity: Optional[str] = None
    unit: str = ""
    area: Optional[str] = None
    final_qty: Optional[float] = None
    final_unit: Optional[str] = None
    item_id: Optional[int] = None

    @property
    def key(self) -> str:
        return normalize_item_name(self.name)

    @property
    def is_resolved(self) -> bool:
        return self.final_qty is not None and not math.isnan(self.final_qty)

    @classmethod
    def from_dict(cls, data):
        final_qty = data.get('final_qty')
        return cls(
            name=data.get('name', ''),
            quantity=data.get('quantity'),
            unit=data.get('unit', ''),
            area=data.get('area'),
            final_qty=float(final_qty) if final_qty is not None else None,
            final_unit=data.get('final_unit'),
            item_id=data.get('item_id'),
        )

    def to_dict(self):
        return asdict(self)


@dataclass
class Schedule:
    """Planned spray and/or drip application for a plot on a given date."""
    id: Optional[int] = None
    user_id: str = ""
    plot_id: int = 0
    plot_name: str = ""
    schedule_date: str = ""
    spray: bool = False
    drip: bool = False
    spray_items: List[LineItem] = field(default_factory=list)
    drip_items: List[LineItem] = field(default_factory=list)
    completed: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def all_items(self) -> List[LineItem]:
        """Spray items then drip items, in list order."""
        return list(self.spray_items) + list(self.drip_items)

    @classmethod
    def from_row(cls, row):
        return cls(
            id=row['id'],
            user_id=row['user_id'],
            plot_id=row['plot_id'],
            plot_name=row['plot_name'],
            schedule_date=row['schedule_date'],
            spray=bool(row['spray']),
            drip=bool(row['drip']),
            spray_items=[LineItem.from_dict(d) for d in json.loads(row['spray_items'] or '[]')],
            drip_items=[LineItem.from_dict(d) for d in json.loads(row['drip_items'] or '[]')],
            completed=bool(row['completed']),
            created_at=row['created_at'],
            updated_at=row['updated_at'],
        )

    def to_dict(self):
        return asdict(self)


@dataclass
class StockEntry:
    """Projected stock for one item at the point a schedule runs."""
    remaining: float = 0.0
    unit: str = ""
