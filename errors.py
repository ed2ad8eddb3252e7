"""
errors.py — Error taxonomy for stock, plot and schedule operations.

Every error carries a human-readable message and, where one applies, the
name of the offending item so the caller can show it in a notification.
The Flask error handler in app.py turns these into JSON responses.
"""


class FarmError(Exception):
    """Base class for all errors surfaced to the user."""
    kind = 'error'
    status_code = 400

    def __init__(self, message, item=None):
        super().__init__(message)
        self.message = message
        self.item = item

    def to_dict(self):
        return {'error': self.kind, 'message': self.message, 'item': self.item}


class ValidationError(FarmError):
    """Malformed input: bad number, unknown unit, missing or duplicate field."""
    kind = 'validation'
    status_code = 400


class NotFoundError(FarmError):
    """A referenced record (usually a stock item) does not exist."""
    kind = 'not_found'
    status_code = 404


class InsufficientStockError(FarmError):
    """A line item requires more than the stock item has remaining."""
    kind = 'insufficient_stock'
    status_code = 409


class ConflictError(FarmError):
    """The schedule changed state underneath the caller, or is mid-toggle."""
    kind = 'conflict'
    status_code = 409


class StoreError(FarmError):
    """The database call itself failed."""
    kind = 'store'
    status_code = 503


class UnauthorizedError(FarmError):
    """No user id came with the request."""
    kind = 'unauthorized'
    status_code = 401


class ForbiddenError(FarmError):
    """The user is known but may not run an install-wide operation."""
    kind = 'forbidden'
    status_code = 403
