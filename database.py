"""
database.py — SQLite schema creation and store operations.

Holds three collections, every row scoped by the owning user id:
- inventory_items: stock records (name unique per user, case-insensitive)
- plots: land parcels (name unique per user)
- schedules: fertilizer applications per plot, line items embedded as JSON

Uses WAL mode for concurrent read performance. Functions named fetch_*/
write_*/swap_* take an open connection so several of them can share one
transaction (see transaction() and reservation.py); the public functions
open and close their own connection and notify change-feed listeners after
every committed write.
"""

import json
import logging
import os
import sqlite3
from contextlib import contextmanager
from typing import Optional, List

from errors import ValidationError
from events import feed
from models import InventoryItem, Plot, Schedule, normalize_item_name

logger = logging.getLogger(__name__)

SCHEDULE_FIELDS = ('schedule_date', 'spray', 'drip', 'spray_items', 'drip_items', 'completed')
PLOT_FIELDS = ('name', 'size', 'location', 'spray_tank_level', 'session_start')


def get_db_path() -> str:
    """Get the database path from environment or default."""
    default_path = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'data', 'farm.db')
    return os.environ.get('FARM_DB_PATH', default_path)


def get_db():
    """Get a database connection with WAL mode and foreign keys enabled."""
    db_path = get_db_path()
    os.makedirs(os.path.dirname(db_path) or '.', exist_ok=True)
    conn = sqlite3.connect(db_path)
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    conn.row_factory = sqlite3.Row
    return conn


@contextmanager
def transaction():
    """
    Open a connection holding the write lock for the whole block.

    BEGIN IMMEDIATE makes concurrent writers wait, so reads done inside the
    block stay valid until commit. Any exception rolls everything back.
    """
    conn = get_db()
    try:
        conn.execute("BEGIN IMMEDIATE")
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def init_db():
    """Create all tables and indexes if they don't exist."""
    conn = get_db()
    cursor = conn.cursor()

    # Table: inventory_items
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS inventory_items (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id TEXT NOT NULL,
            name TEXT NOT NULL,
            name_norm TEXT NOT NULL,
            remaining REAL NOT NULL DEFAULT 0,
            used REAL NOT NULL DEFAULT 0,
            unit TEXT NOT NULL DEFAULT '',
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            UNIQUE(user_id, name_norm)
        )
    """)

    # Table: plots
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS plots (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id TEXT NOT NULL,
            name TEXT NOT NULL,
            size REAL NOT NULL,
            location TEXT NOT NULL DEFAULT '',
            spray_tank_level REAL,
            session_start TEXT,
            end_date TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            UNIQUE(user_id, name)
        )
    """)

    # Table: schedules (spray_items / drip_items hold JSON arrays of line items)
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS schedules (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id TEXT NOT NULL,
            plot_id INTEGER NOT NULL REFERENCES plots(id) ON DELETE CASCADE,
            schedule_date TEXT NOT NULL,
            spray BOOLEAN NOT NULL DEFAULT 0,
            drip BOOLEAN NOT NULL DEFAULT 0,
            spray_items TEXT NOT NULL DEFAULT '[]',
            drip_items TEXT NOT NULL DEFAULT '[]',
            completed BOOLEAN NOT NULL DEFAULT 0,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)

    # Performance indexes
    cursor.execute("""
        CREATE INDEX IF NOT EXISTS idx_schedules_user_date
        ON schedules(user_id, schedule_date)
    """)
    cursor.execute("""
        CREATE INDEX IF NOT EXISTS idx_schedules_plot
        ON schedules(plot_id)
    """)

    conn.commit()
    conn.close()
    logger.info("Database initialized at %s", get_db_path())


# ========================================
# Change feed
# ========================================

def subscribe_inventory(user_id, on_change):
    """Listen to the user's stock list. Returns unsubscribe()."""
    return feed.subscribe(('inventory', user_id), lambda: list_items(user_id), on_change)


def subscribe_schedules(user_id, plot_id, on_change):
    """Listen to one plot's schedule list. Returns unsubscribe()."""
    return feed.subscribe(('schedules', user_id, plot_id),
                          lambda: list_schedules_for_plot(user_id, plot_id), on_change)


def notify_inventory(user_id):
    feed.notify(('inventory', user_id))


def notify_schedules(user_id, plot_id):
    feed.notify(('schedules', user_id, plot_id))


# ========================================
# Inventory items
# ========================================

def fetch_items(conn, user_id) -> List[InventoryItem]:
    rows = conn.execute(
        "SELECT * FROM inventory_items WHERE user_id = ? ORDER BY id DESC",
        (user_id,)
    ).fetchall()
    return [InventoryItem.from_row(r) for r in rows]


def fetch_item_by_id(conn, user_id, item_id) -> Optional[InventoryItem]:
    row = conn.execute(
        "SELECT * FROM inventory_items WHERE user_id = ? AND id = ?",
        (user_id, item_id)
    ).fetchone()
    return InventoryItem.from_row(row) if row else None


def write_item_quantities(conn, user_id, item_id, remaining, used):
    conn.execute(
        "UPDATE inventory_items SET remaining = ?, used = ? WHERE user_id = ? AND id = ?",
        (remaining, used, user_id, item_id)
    )


def list_items(user_id, search=None) -> List[InventoryItem]:
    """Retrieve the user's stock items, newest first, optionally filtered by name substring."""
    conn = get_db()
    try:
        items = fetch_items(conn, user_id)
    finally:
        conn.close()
    if search:
        needle = search.lower()
        items = [i for i in items if needle in i.name.lower()]
    return items


def get_item(user_id, name) -> Optional[InventoryItem]:
    """Retrieve a stock item by case-insensitive name."""
    conn = get_db()
    row = conn.execute(
        "SELECT * FROM inventory_items WHERE user_id = ? AND name_norm = ?",
        (user_id, normalize_item_name(name))
    ).fetchone()
    conn.close()
    return InventoryItem.from_row(row) if row else None


def get_item_by_id(user_id, item_id) -> Optional[InventoryItem]:
    """Retrieve a single stock item by ID."""
    conn = get_db()
    try:
        return fetch_item_by_id(conn, user_id, item_id)
    finally:
        conn.close()


def create_item(user_id, name, remaining, used, unit) -> int:
    """Insert a stock item. Returns the new item id."""
    name = name.strip()
    conn = get_db()
    try:
        cursor = conn.execute(
            """INSERT INTO inventory_items (user_id, name, name_norm, remaining, used, unit)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (user_id, name, normalize_item_name(name), remaining, used, unit)
        )
        conn.commit()
        item_id = cursor.lastrowid
    except sqlite3.IntegrityError:
        conn.rollback()
        raise ValidationError(f'An item named "{name}" already exists.', item=name)
    finally:
        conn.close()

    notify_inventory(user_id)
    return item_id


def update_item(user_id, item_id, remaining, used):
    """Set the remaining and used quantities of a stock item."""
    conn = get_db()
    try:
        write_item_quantities(conn, user_id, item_id, remaining, used)
        conn.commit()
    finally:
        conn.close()
    notify_inventory(user_id)


def delete_item(user_id, item_id) -> bool:
    """Delete a stock item. Returns False if it did not exist."""
    conn = get_db()
    try:
        cursor = conn.execute(
            "DELETE FROM inventory_items WHERE user_id = ? AND id = ?",
            (user_id, item_id)
        )
        conn.commit()
        deleted = cursor.rowcount > 0
    finally:
        conn.close()
    if deleted:
        notify_inventory(user_id)
    return deleted


# ========================================
# Plots
# ========================================

def list_plots(user_id) -> List[Plot]:
    """Retrieve all plots of a user, in creation order."""
    conn = get_db()
    rows = conn.execute(
        "SELECT * FROM plots WHERE user_id = ? ORDER BY id", (user_id,)
    ).fetchall()
    conn.close()
    return [Plot.from_row(r) for r in rows]


def get_plot(user_id, plot_id) -> Optional[Plot]:
    """Retrieve a single plot by ID."""
    conn = get_db()
    row = conn.execute(
        "SELECT * FROM plots WHERE user_id = ? AND id = ?", (user_id, plot_id)
    ).fetchone()
    conn.close()
    return Plot.from_row(row) if row else None


def find_plot_by_name(user_id, name, exclude_id=None) -> Optional[Plot]:
    """Find a plot with exactly this (trimmed) name, ignoring exclude_id."""
    conn = get_db()
    row = conn.execute(
        "SELECT * FROM plots WHERE user_id = ? AND name = ? AND id IS NOT ?",
        (user_id, name.strip(), exclude_id)
    ).fetchone()
    conn.close()
    return Plot.from_row(row) if row else None


def create_plot(user_id, name, size, location, spray_tank_level, session_start) -> int:
    """Insert a plot. Returns the new plot id."""
    conn = get_db()
    try:
        cursor = conn.execute(
            """INSERT INTO plots (user_id, name, size, location, spray_tank_level, session_start)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (user_id, name, size, location, spray_tank_level, session_start)
        )
        conn.commit()
        return cursor.lastrowid
    except sqlite3.IntegrityError:
        conn.rollback()
        raise ValidationError("A plot with this name already exists.", item=name)
    finally:
        conn.close()


def update_plot(user_id, plot_id, fields) -> bool:
    """Update editable plot fields. Unknown keys are ignored."""
    updates = {k: v for k, v in fields.items() if k in PLOT_FIELDS}
    if not updates:
        return False

    assignments = ', '.join(f"{k} = ?" for k in updates)
    conn = get_db()
    try:
        cursor = conn.execute(
            f"UPDATE plots SET {assignments} WHERE user_id = ? AND id = ?",
            (*updates.values(), user_id, plot_id)
        )
        conn.commit()
        return cursor.rowcount > 0
    except sqlite3.IntegrityError:
        conn.rollback()
        raise ValidationError("A plot with this name already exists.", item=updates.get('name'))
    finally:
        conn.close()


def set_plot_end_date(user_id, plot_id, end_date) -> bool:
    """End a plot's session (end_date=ISO date) or reopen it (end_date=None)."""
    conn = get_db()
    cursor = conn.execute(
        "UPDATE plots SET end_date = ? WHERE user_id = ? AND id = ?",
        (end_date, user_id, plot_id)
    )
    conn.commit()
    conn.close()
    return cursor.rowcount > 0


def delete_plot(user_id, plot_id) -> bool:
    """Delete a plot and, through the foreign key, all of its schedules."""
    conn = get_db()
    cursor = conn.execute(
        "DELETE FROM plots WHERE user_id = ? AND id = ?", (user_id, plot_id)
    )
    conn.commit()
    conn.close()
    deleted = cursor.rowcount > 0
    if deleted:
        notify_schedules(user_id, plot_id)
    return deleted


# ========================================
# Schedules
# ========================================

_SCHEDULE_SELECT = """
    SELECT s.*, p.name AS plot_name
    FROM schedules s
    JOIN plots p ON s.plot_id = p.id
"""


def _serialize_items(items):
    return json.dumps([i.to_dict() for i in items])


def fetch_schedule(conn, user_id, plot_id, schedule_id) -> Optional[Schedule]:
    row = conn.execute(
        _SCHEDULE_SELECT + " WHERE s.user_id = ? AND s.plot_id = ? AND s.id = ?",
        (user_id, plot_id, schedule_id)
    ).fetchone()
    return Schedule.from_row(row) if row else None


def swap_schedule_completed(conn, user_id, schedule_id, expected, new) -> bool:
    """Set completed=new only if it is still expected. False when it was not."""
    cursor = conn.execute(
        """UPDATE schedules SET completed = ?, updated_at = CURRENT_TIMESTAMP
           WHERE user_id = ? AND id = ? AND completed = ?""",
        (int(new), user_id, schedule_id, int(expected))
    )
    return cursor.rowcount == 1


def get_schedule(user_id, plot_id, schedule_id) -> Optional[Schedule]:
    """Retrieve a single schedule by ID."""
    conn = get_db()
    try:
        return fetch_schedule(conn, user_id, plot_id, schedule_id)
    finally:
        conn.close()


def list_schedules_for_plot(user_id, plot_id) -> List[Schedule]:
    """Retrieve a plot's schedules ordered by date, then creation."""
    conn = get_db()
    rows = conn.execute(
        _SCHEDULE_SELECT + " WHERE s.user_id = ? AND s.plot_id = ? ORDER BY s.schedule_date, s.id",
        (user_id, plot_id)
    ).fetchall()
    conn.close()
    return [Schedule.from_row(r) for r in rows]


def list_schedules_for_user(user_id) -> List[Schedule]:
    """Retrieve every schedule across the user's plots ordered by date, then creation."""
    conn = get_db()
    rows = conn.execute(
        _SCHEDULE_SELECT + " WHERE s.user_id = ? ORDER BY s.schedule_date, s.id",
        (user_id,)
    ).fetchall()
    conn.close()
    return [Schedule.from_row(r) for r in rows]


def create_schedule(user_id, plot_id, schedule: Schedule) -> int:
    """Insert a schedule with already-resolved line items. Returns the new id."""
    conn = get_db()
    try:
        cursor = conn.execute(
            """INSERT INTO schedules (user_id, plot_id, schedule_date, spray, drip,
                                      spray_items, drip_items, completed)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (user_id, plot_id, schedule.schedule_date, int(schedule.spray), int(schedule.drip),
             _serialize_items(schedule.spray_items), _serialize_items(schedule.drip_items),
             int(schedule.completed))
        )
        conn.commit()
        schedule_id = cursor.lastrowid
    finally:
        conn.close()

    notify_schedules(user_id, plot_id)
    return schedule_id


def _schedule_updates(patch):
    updates = {}
    for key, value in patch.items():
        if key not in SCHEDULE_FIELDS:
            continue
        if key in ('spray_items', 'drip_items'):
            value = _serialize_items(value)
        elif key in ('spray', 'drip', 'completed'):
            value = int(bool(value))
        updates[key] = value
    return updates


def write_pending_schedule(conn, user_id, plot_id, schedule_id, patch) -> bool:
    """
    Apply patch to a schedule only while it is still pending.

    Returns False when no pending row matched (missing, or completed in the
    meantime).
    """
    updates = _schedule_updates(patch)
    updates.pop('completed', None)
    if not updates:
        return False
    assignments = ', '.join(f"{k} = ?" for k in updates)
    cursor = conn.execute(
        f"""UPDATE schedules SET {assignments}, updated_at = CURRENT_TIMESTAMP
            WHERE user_id = ? AND plot_id = ? AND id = ? AND completed = 0""",
        (*updates.values(), user_id, plot_id, schedule_id)
    )
    return cursor.rowcount == 1


def update_schedule(user_id, plot_id, schedule_id, patch) -> bool:
    """
    Apply a partial update to a schedule.

    Args:
        patch: Dict with any of schedule_date, spray, drip, spray_items,
               drip_items (lists of LineItem), completed. Other keys are ignored.

    Returns:
        True if the schedule existed and was updated.
    """
    updates = _schedule_updates(patch)
    if not updates:
        return False

    assignments = ', '.join(f"{k} = ?" for k in updates)
    conn = get_db()
    try:
        cursor = conn.execute(
            f"""UPDATE schedules SET {assignments}, updated_at = CURRENT_TIMESTAMP
                WHERE user_id = ? AND plot_id = ? AND id = ?""",
            (*updates.values(), user_id, plot_id, schedule_id)
        )
        conn.commit()
        updated = cursor.rowcount > 0
    finally:
        conn.close()

    if updated:
        notify_schedules(user_id, plot_id)
    return updated


def delete_schedule(user_id, plot_id, schedule_id) -> bool:
    """Delete a schedule. Returns False if it did not exist."""
    conn = get_db()
    try:
        cursor = conn.execute(
            "DELETE FROM schedules WHERE user_id = ? AND plot_id = ? AND id = ?",
            (user_id, plot_id, schedule_id)
        )
        conn.commit()
        deleted = cursor.rowcount > 0
    finally:
        conn.close()

    if deleted:
        notify_schedules(user_id, plot_id)
    return deleted
