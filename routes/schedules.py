"""
routes/schedules.py — Schedule routes: authoring, listing, completion.

Provides:
- GET  /schedules/?filter=...                         — JSON: all schedules with projected stock
                                                        (filter: all, today, upcoming,
                                                        completed, not_completed)
- GET  /schedules/plot/<plot_id>                      — JSON: one plot's schedules
- POST /schedules/plot/<plot_id>                      — Create a schedule
- POST /schedules/plot/<plot_id>/<schedule_id>/edit   — Edit a pending schedule
- POST /schedules/plot/<plot_id>/<schedule_id>/delete — Delete a schedule
- POST /schedules/plot/<plot_id>/<schedule_id>/toggle — Complete / uncomplete (moves stock)
"""

from flask import Blueprint, jsonify, request

from database import get_plot, list_schedules_for_plot
from errors import NotFoundError
from reservation import toggle_completion
from schedules import (
    create_schedule_for_plot, edit_schedule, remove_schedule, schedules_with_availability
)
from utils.context import get_user_context, request_data

schedules_bp = Blueprint('schedules', __name__, url_prefix='/schedules')


@schedules_bp.route('/')
def index():
    """Every schedule across the user's plots, by date, with stock projection."""
    ctx = get_user_context()
    filter_type = request.args.get('filter', 'all')
    return jsonify({
        'filter': filter_type,
        'schedules': schedules_with_availability(ctx, filter_type),
    })


@schedules_bp.route('/plot/<int:plot_id>')
def plot_schedules(plot_id):
    ctx = get_user_context()
    plot = get_plot(ctx.user_id, plot_id)
    if plot is None:
        raise NotFoundError("Plot not found.")
    schedules = list_schedules_for_plot(ctx.user_id, plot_id)
    return jsonify({'plot': plot.to_dict(), 'schedules': [s.to_dict() for s in schedules]})


@schedules_bp.route('/plot/<int:plot_id>', methods=['POST'])
def create(plot_id):
    """Save a new schedule with resolved quantities."""
    ctx = get_user_context()
    schedule = create_schedule_for_plot(ctx, plot_id, request_data())
    return jsonify({'schedule': schedule.to_dict(), 'message': 'Schedule saved!'}), 201


@schedules_bp.route('/plot/<int:plot_id>/<int:schedule_id>/edit', methods=['POST'])
def edit(plot_id, schedule_id):
    ctx = get_user_context()
    schedule = edit_schedule(ctx, plot_id, schedule_id, request_data())
    return jsonify({'schedule': schedule.to_dict(), 'message': 'Schedule updated successfully!'})


@schedules_bp.route('/plot/<int:plot_id>/<int:schedule_id>/delete', methods=['POST'])
def delete(plot_id, schedule_id):
    ctx = get_user_context()
    remove_schedule(ctx, plot_id, schedule_id)
    return jsonify({'deleted': True, 'message': 'Schedule deleted successfully.'})


@schedules_bp.route('/plot/<int:plot_id>/<int:schedule_id>/toggle', methods=['POST'])
def toggle(plot_id, schedule_id):
    """Mark complete (deducts stock) or incomplete (restores stock)."""
    ctx = get_user_context()
    schedule = toggle_completion(ctx, plot_id, schedule_id)
    if schedule.completed:
        message = "Schedule marked as complete and stock updated."
    else:
        message = "Schedule marked as incomplete and stock restored."
    return jsonify({'schedule': schedule.to_dict(), 'message': message})
