"""
routes/settings.py — Preferences and administration routes.

Provides:
- GET  /settings/             — JSON: current user context (theme, language, CSRF token)
- POST /settings/preferences  — Save theme (is_dark) and language for the session
- GET  /settings/backups      — JSON: available backups, newest first (admin)
- POST /settings/backup/create  — Create a manual backup (admin)
- POST /settings/backup/restore — Restore from backup (admin)

A backup holds every user's data, so the backup routes are open only to the
user ids in ADMIN_USER_IDS.
"""

import logging

from flask import Blueprint, jsonify, session
from flask_wtf.csrf import generate_csrf

from errors import StoreError, ValidationError
from utils.backup import backup_db, list_backups, restore_db
from utils.context import get_user_context, get_admin_context, request_data
from utils.validators import parse_bool

logger = logging.getLogger(__name__)

settings_bp = Blueprint('settings', __name__, url_prefix='/settings')

LANGUAGES = ('en', 'gn')


@settings_bp.route('/')
def index():
    ctx = get_user_context()
    return jsonify({
        'user_id': ctx.user_id,
        'is_dark': ctx.is_dark,
        'language': ctx.language,
        'csrf_token': generate_csrf(),
    })


@settings_bp.route('/preferences', methods=['POST'])
def preferences():
    """Update theme and language preferences."""
    get_user_context()
    data = request_data()

    if 'is_dark' in data:
        session['is_dark'] = parse_bool(data['is_dark'])
    if 'language' in data:
        if data['language'] not in LANGUAGES:
            raise ValidationError(f"Unsupported language \"{data['language']}\".")
        session['language'] = data['language']

    ctx = get_user_context()
    return jsonify({'is_dark': ctx.is_dark, 'language': ctx.language})


@settings_bp.route('/backups')
def backups():
    get_admin_context()
    return jsonify({'backups': list_backups()})


@settings_bp.route('/backup/create', methods=['POST'])
def create_backup():
    """Create a manual backup."""
    get_admin_context()
    filename = backup_db('manual')
    if not filename:
        raise StoreError("Backup failed.")
    return jsonify({'filename': filename}), 201


@settings_bp.route('/backup/restore', methods=['POST'])
def restore_backup():
    """Restore the whole database from a backup file."""
    ctx = get_admin_context()
    filename = request_data().get('filename', '')
    if not restore_db(filename):
        raise ValidationError("Could not restore this backup.", item=filename)
    logger.warning("Database restored from %s by %s", filename, ctx.user_id)
    return jsonify({'restored': filename})
