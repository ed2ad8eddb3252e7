"""
utils/backup.py — Database backup and restore operations.

Copies the farm database to the backup directory with timestamped filenames.
Backup triggers: on export, manual from Settings.
Format: farm_YYYYMMDD_HHMMSS_{reason}.db

Copies go through SQLite's online backup API so pages still sitting in the
WAL file are included.
"""

import logging
import os
import sqlite3
from datetime import datetime

from database import get_db, get_db_path

logger = logging.getLogger(__name__)

BACKUP_PREFIX = 'farm_'


def get_backup_dir():
    """Backup directory from environment or default (backups/ beside the code)."""
    base_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    return os.environ.get('FARM_BACKUP_DIR', os.path.join(base_dir, 'backups'))


def backup_db(reason='manual'):
    """
    Copy the current database to the backup directory.

    Args:
        reason: Short tag for the backup trigger (e.g., 'manual', 'export').

    Returns:
        The filename of the created backup, or None on failure.
    """
    backup_dir = get_backup_dir()
    os.makedirs(backup_dir, exist_ok=True)

    if not os.path.exists(get_db_path()):
        return None

    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    # Sanitize reason string
    safe_reason = reason.replace(' ', '_').replace('/', '_')[:30]
    filename = f'{BACKUP_PREFIX}{timestamp}_{safe_reason}.db'
    dest_path = os.path.join(backup_dir, filename)

    src = get_db()
    dest = sqlite3.connect(dest_path)
    try:
        src.backup(dest)
        logger.info("Backup written: %s", filename)
        return filename
    except sqlite3.Error:
        logger.exception("Backup %s failed", filename)
        return None
    finally:
        dest.close()
        src.close()


def list_backups():
    """
    List all backup files in the backup directory.

    Returns:
        List of dicts with keys: filename, timestamp, size_bytes, reason.
        Sorted by timestamp descending (newest first).
    """
    backup_dir = get_backup_dir()
    os.makedirs(backup_dir, exist_ok=True)

    backups = []
    for f in os.listdir(backup_dir):
        if not (f.startswith(BACKUP_PREFIX) and f.endswith('.db')):
            continue

        # Format: farm_YYYYMMDD_HHMMSS_reason.db
        parts = f[len(BACKUP_PREFIX):-len('.db')].split('_')
        timestamp_str = ''
        reason = ''
        if len(parts) >= 2:
            date_part, time_part = parts[0], parts[1]
            timestamp_str = (f'{date_part[:4]}-{date_part[4:6]}-{date_part[6:8]} '
                             f'{time_part[:2]}:{time_part[2:4]}:{time_part[4:6]}')
            reason = '_'.join(parts[2:])

        backups.append({
            'filename': f,
            'timestamp': timestamp_str,
            'size_bytes': os.stat(os.path.join(backup_dir, f)).st_size,
            'reason': reason,
        })

    # Sort newest first
    backups.sort(key=lambda b: b['filename'], reverse=True)
    return backups


def restore_db(filename):
    """
    Replace the current database contents with a backup file.

    DANGEROUS: This overwrites the current database entirely.

    Returns:
        True on success, False on failure.
    """
    # Only plain backup filenames from the backup directory
    if os.path.basename(filename) != filename:
        return False
    if not filename.startswith(BACKUP_PREFIX) or not filename.endswith('.db'):
        return False

    backup_path = os.path.join(get_backup_dir(), filename)
    if not os.path.exists(backup_path):
        return False

    src = sqlite3.connect(backup_path)
    dest = get_db()
    try:
        src.backup(dest)
        logger.warning("Database restored from %s", filename)
        return True
    except sqlite3.Error:
        logger.exception("Restore from %s failed", filename)
        return False
    finally:
        dest.close()
        src.close()
