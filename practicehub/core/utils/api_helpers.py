"""Shared API utilities: decorators, error helpers, rate limiter, request parsing.

All JSON errors use the same body: {"success": false, "error": "..."}.
"""
import time
import logging
from collections import defaultdict
from functools import wraps

from flask import jsonify, request
from flask_login import current_user

logger = logging.getLogger('practicehub.api')


# ============== Decorators ==============

def api_login_required(f):
    """Like @login_required but returns JSON 401 instead of a redirect."""
    @wraps(f)
    def decorated(*args, **kwargs):
        if not current_user.is_authenticated:
            return jsonify({'success': False, 'error': 'Authentication required'}), 401
        return f(*args, **kwargs)
    return decorated


def admin_required(f):
    """Require an authenticated tenant admin or super admin."""
    @wraps(f)
    def decorated(*args, **kwargs):
        if not current_user.is_authenticated:
            return jsonify({'success': False, 'error': 'Authentication required'}), 401
        if not (current_user.is_admin or current_user.is_super_admin):
            return jsonify({'success': False, 'error': 'Permission denied'}), 403
        return f(*args, **kwargs)
    return decorated


def handle_api_errors(f):
    """Turn uncaught exceptions in a route into JSON error responses.

    Exceptions that carry a `status_code` attribute (domain errors) are
    returned with that status and their message.
    """
    @wraps(f)
    def decorated(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except Exception as e:
            status_code = getattr(e, 'status_code', None)
            if status_code:
                return error_response(str(e), status_code)
            return safe_error_response(e)
    return decorated


# ============== Request Validation ==============

def get_json_or_error():
    """Get the JSON body. Returns (data, error_response).

        data, error = get_json_or_error()
        if error:
            return error
    """
    data = request.get_json(silent=True)
    if data is None:
        return None, (jsonify({
            'success': False,
            'error': 'Invalid or missing JSON body',
        }), 400)
    return data, None


def parse_int_arg(name, default=None, minimum=None, maximum=None):
    """Read an integer query arg, clamped to [minimum, maximum]."""
    value = request.args.get(name, default, type=int)
    if value is None:
        return None
    if minimum is not None:
        value = max(minimum, value)
    if maximum is not None:
        value = min(maximum, value)
    return value


# ============== Error Handling ==============

def error_response(message, status_code=400):
    return jsonify({'success': False, 'error': message}), status_code


def safe_error_response(e, status_code=500):
    """Return an error response without leaking DB internals.

    ValueError/KeyError are business validation and are shown as 400.
    Everything else is logged with traceback and returned as a generic message.
    """
    if isinstance(e, (ValueError, KeyError)):
        return jsonify({'success': False, 'error': str(e)}), 400

    logger.exception('Unhandled error in API route')
    return jsonify({'success': False, 'error': 'An internal error occurred'}), status_code


# ============== Rate Limiter ==============

class RateLimiter:
    """In-memory sliding-window rate limiter (per worker process)."""

    def __init__(self):
        self._requests = defaultdict(list)

    def is_allowed(self, key, max_requests=10, window_seconds=60):
        """Returns (is_allowed, retry_after_seconds)."""
        now = time.time()
        window_start = now - window_seconds

        self._requests[key] = [ts for ts in self._requests[key] if ts > window_start]

        if len(self._requests[key]) >= max_requests:
            oldest = min(self._requests[key])
            retry_after = int(oldest + window_seconds - now) + 1
            return False, max(1, retry_after)

        self._requests[key].append(now)
        return True, 0
