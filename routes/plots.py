"""
routes/plots.py — Plot management routes.

Provides:
- GET  /plots/                   — JSON: the user's plots
- POST /plots/                   — Create a plot (name unique, 20 chars max)
- POST /plots/<plot_id>/edit     — Edit a plot in place
- POST /plots/<plot_id>/end      — End the plot's session (end_date = today)
- POST /plots/<plot_id>/undo-end — Reopen an ended plot
- POST /plots/<plot_id>/delete   — Delete a plot and its schedules
"""

import logging
from datetime import date

from flask import Blueprint, jsonify

from database import (
    list_plots, get_plot, find_plot_by_name, create_plot, update_plot,
    set_plot_end_date, delete_plot
)
from errors import NotFoundError, ValidationError
from utils.context import get_user_context, request_data
from utils.validators import validate_plot_form

logger = logging.getLogger(__name__)

plots_bp = Blueprint('plots', __name__, url_prefix='/plots')


def _load_plot(ctx, plot_id):
    plot = get_plot(ctx.user_id, plot_id)
    if plot is None:
        raise NotFoundError("Plot not found.")
    return plot


@plots_bp.route('/')
def index():
    ctx = get_user_context()
    return jsonify({'plots': [p.to_dict() for p in list_plots(ctx.user_id)]})


@plots_bp.route('/', methods=['POST'])
def create():
    """Create a new plot."""
    ctx = get_user_context()
    fields = validate_plot_form(request_data())

    if find_plot_by_name(ctx.user_id, fields['name']):
        raise ValidationError("A plot with this name already exists.", item=fields['name'])

    plot_id = create_plot(ctx.user_id, **fields)
    logger.info("Plot %s created for user %s", fields['name'], ctx.user_id)
    return jsonify({'plot': get_plot(ctx.user_id, plot_id).to_dict()}), 201


@plots_bp.route('/<int:plot_id>/edit', methods=['POST'])
def edit(plot_id):
    """Edit name, size, location, session start and spray tank level."""
    ctx = get_user_context()
    _load_plot(ctx, plot_id)
    fields = validate_plot_form(request_data(), editing=True)

    if find_plot_by_name(ctx.user_id, fields['name'], exclude_id=plot_id):
        raise ValidationError("A plot with this name already exists.", item=fields['name'])

    update_plot(ctx.user_id, plot_id, fields)
    return jsonify({'plot': get_plot(ctx.user_id, plot_id).to_dict()})


@plots_bp.route('/<int:plot_id>/end', methods=['POST'])
def end(plot_id):
    """Mark the plot's session as ended today."""
    ctx = get_user_context()
    _load_plot(ctx, plot_id)
    set_plot_end_date(ctx.user_id, plot_id, date.today().isoformat())
    return jsonify({'plot': get_plot(ctx.user_id, plot_id).to_dict()})


@plots_bp.route('/<int:plot_id>/undo-end', methods=['POST'])
def undo_end(plot_id):
    """Clear the end date of an ended plot."""
    ctx = get_user_context()
    _load_plot(ctx, plot_id)
    set_plot_end_date(ctx.user_id, plot_id, None)
    return jsonify({'plot': get_plot(ctx.user_id, plot_id).to_dict()})


@plots_bp.route('/<int:plot_id>/delete', methods=['POST'])
def delete(plot_id):
    ctx = get_user_context()
    if not delete_plot(ctx.user_id, plot_id):
        raise NotFoundError("Plot not found.")
    logger.info("Plot %s deleted", plot_id)
    return jsonify({'deleted': True})
