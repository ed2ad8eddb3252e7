"""
schedules.py — Authoring, editing and listing fertilizer schedules.

Provides:
- create_schedule_for_plot: validate the form, resolve quantities, save
- edit_schedule: same as create for an existing pending schedule
- remove_schedule: delete a schedule
- list_schedules: every schedule of a user, optionally filtered
- schedules_with_availability: list plus projected stock per line item

Line items are resolved once here, at save time (see dosage.py), and each
one captures the id of the stock item it matches so later lookups do not
depend on the name alone.
"""

import logging
from datetime import date
from typing import List

from database import (
    transaction, fetch_schedule, write_pending_schedule, notify_schedules,
    get_plot, get_schedule, list_items, list_schedules_for_user,
    create_schedule, delete_schedule
)
from dosage import resolve_items
from errors import NotFoundError, ValidationError, ConflictError
from models import Schedule
from stock_projector import project, shortages
from utils.validators import validate_schedule_form

logger = logging.getLogger(__name__)

FILTERS = ('all', 'today', 'upcoming', 'completed', 'not_completed')


def _load_plot(ctx, plot_id):
    plot = get_plot(ctx.user_id, plot_id)
    if plot is None:
        raise NotFoundError("Plot not found.")
    return plot


def _attach_stock_ids(ctx, items):
    """Record the matching stock item id on each line item (None when unmatched)."""
    stock_by_name = {s.key: s.id for s in list_items(ctx.user_id)}
    for item in items:
        item.item_id = stock_by_name.get(item.key)


def _build(ctx, plot, form):
    schedule_date, spray, drip, spray_items, drip_items = validate_schedule_form(form)
    spray_items, drip_items = resolve_items(spray_items, drip_items, plot)
    _attach_stock_ids(ctx, spray_items + drip_items)
    return Schedule(
        user_id=ctx.user_id,
        plot_id=plot.id,
        plot_name=plot.name,
        schedule_date=schedule_date,
        spray=spray,
        drip=drip,
        spray_items=spray_items,
        drip_items=drip_items,
    )


def create_schedule_for_plot(ctx, plot_id, form) -> Schedule:
    """Validate, resolve and save a new schedule for a plot."""
    plot = _load_plot(ctx, plot_id)
    schedule = _build(ctx, plot, form)
    schedule_id = create_schedule(ctx.user_id, plot.id, schedule)
    logger.info("Schedule %s saved for plot %s on %s", schedule_id, plot.name, schedule.schedule_date)
    return get_schedule(ctx.user_id, plot.id, schedule_id)


def edit_schedule(ctx, plot_id, schedule_id, form) -> Schedule:
    """
    Replace a pending schedule's date, methods and items, re-resolving quantities.

    A completed schedule has already taken its items out of stock, so it has
    to be marked incomplete before it can be edited.
    """
    plot = _load_plot(ctx, plot_id)
    schedule = _build(ctx, plot, form)

    with transaction() as conn:
        existing = fetch_schedule(conn, ctx.user_id, plot.id, schedule_id)
        if existing is None:
            raise NotFoundError("Schedule not found.")
        if existing.completed:
            raise ValidationError("Mark the schedule incomplete before editing it.")

        # The write only lands while the row is still pending
        if not write_pending_schedule(conn, ctx.user_id, plot.id, schedule_id, {
            'schedule_date': schedule.schedule_date,
            'spray': schedule.spray,
            'drip': schedule.drip,
            'spray_items': schedule.spray_items,
            'drip_items': schedule.drip_items,
        }):
            raise ConflictError("Schedule was completed by another request. Reload and try again.")

    notify_schedules(ctx.user_id, plot.id)
    return get_schedule(ctx.user_id, plot.id, schedule_id)


def remove_schedule(ctx, plot_id, schedule_id):
    """Delete a schedule. Stock already deducted by a completed schedule stays used."""
    if not delete_schedule(ctx.user_id, plot_id, schedule_id):
        raise NotFoundError("Schedule not found.")
    logger.info("Schedule %s deleted", schedule_id)


def filter_schedules(schedules, filter_type='all', today=None) -> List[Schedule]:
    """
    Filter schedules for the list view.

    - today: scheduled for today
    - upcoming: scheduled after today
    - completed / not_completed: by completion flag
    - all: unchanged
    """
    if filter_type not in FILTERS:
        raise ValidationError(f'Unknown filter "{filter_type}".')
    today = (today or date.today()).isoformat()

    if filter_type == 'today':
        return [s for s in schedules if s.schedule_date == today]
    if filter_type == 'upcoming':
        return [s for s in schedules if s.schedule_date > today]
    if filter_type == 'completed':
        return [s for s in schedules if s.completed]
    if filter_type == 'not_completed':
        return [s for s in schedules if not s.completed]
    return list(schedules)


def list_schedules(ctx, filter_type='all', today=None) -> List[Schedule]:
    """All schedules across the user's plots, by date, filtered."""
    return filter_schedules(list_schedules_for_user(ctx.user_id), filter_type, today)


def schedules_with_availability(ctx, filter_type='all', today=None):
    """
    Schedules with the projected stock each line item will find.

    Pending schedules are replayed in date order against current stock.
    Completed schedules have already left stock and get no projection.

    Returns:
        List of dicts: schedule fields plus 'availability'
        ({item_name: {remaining, unit}}) and 'shortages' (item names).
    """
    all_schedules = list_schedules_for_user(ctx.user_id)
    pending = [s for s in all_schedules if not s.completed]
    projection = project(list_items(ctx.user_id), pending)

    result = []
    for schedule in filter_schedules(all_schedules, filter_type, today):
        data = schedule.to_dict()
        availability = projection.get(schedule.id, {})
        data['availability'] = {
            name: {'remaining': entry.remaining, 'unit': entry.unit}
            for name, entry in availability.items()
        }
        data['shortages'] = (
            [i.name for i in shortages(projection, schedule)] if not schedule.completed else []
        )
        result.append(data)
    return result
