"""
utils/context.py — Per-request user context.

Authentication lives outside this application; it hands over an opaque user
id, either in the X-User-Id header or as session['user_id']. Theme and
language preferences come from the session. The resulting UserContext is
passed explicitly into every service call instead of being read from
global state.

Backups cover the whole database, every user included, so they are limited
to the user ids listed in the ADMIN_USER_IDS config (env FARM_ADMIN_USERS,
comma-separated).
"""

import os
from dataclasses import dataclass

from flask import current_app, request, session

from errors import UnauthorizedError, ForbiddenError

USER_HEADER = 'X-User-Id'


@dataclass(frozen=True)
class UserContext:
    user_id: str
    is_dark: bool = False
    language: str = 'en'


def header_user_id():
    return request.headers.get(USER_HEADER)


def get_user_context() -> UserContext:
    """Build the context for the current request. 401 when no user is known."""
    user_id = header_user_id() or session.get('user_id')
    if not user_id:
        raise UnauthorizedError("Sign in to continue.")
    return UserContext(
        user_id=str(user_id),
        is_dark=bool(session.get('is_dark', False)),
        language=session.get('language', 'en'),
    )


def admin_user_ids():
    """User ids allowed to back up and restore the database."""
    configured = current_app.config.get('ADMIN_USER_IDS')
    if configured is None:
        configured = os.environ.get('FARM_ADMIN_USERS', '').split(',')
    return {str(u).strip() for u in configured if str(u).strip()}


def get_admin_context() -> UserContext:
    """Context for install-wide operations. 403 unless the user is an admin."""
    ctx = get_user_context()
    if ctx.user_id not in admin_user_ids():
        raise ForbiddenError("Only an administrator can manage backups.")
    return ctx


def request_data() -> dict:
    """JSON body when present, otherwise the submitted form fields."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()
