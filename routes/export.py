"""
routes/export.py — Excel export route.

Provides:
- GET /export/excel — Download the user's stock and schedules as Excel

Auto-backup is triggered before every export.
"""

from flask import Blueprint, jsonify, send_file

from utils.backup import backup_db
from utils.context import get_user_context
from utils.export import generate_excel

export_bp = Blueprint('export', __name__, url_prefix='/export')


@export_bp.route('/excel')
def export_excel():
    """Export stock and schedules as a two-sheet workbook."""
    ctx = get_user_context()

    # Auto-backup before export
    backup_db('export')

    buffer, filename = generate_excel(ctx.user_id)
    if not buffer:
        return jsonify({'error': 'empty', 'message': 'Nothing to export yet.', 'item': None}), 404

    return send_file(
        buffer,
        as_attachment=True,
        download_name=filename,
        mimetype='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
    )
