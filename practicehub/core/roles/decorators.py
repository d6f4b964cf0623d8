"""Route decorator for resource/action permission checks."""
from functools import wraps

from flask import jsonify
from flask_login import current_user

from .repositories import PermissionRepository

_perm_repo = PermissionRepository()


def require_permission(resource, action):
    """Return JSON 401/403 unless the current user may `action` on `resource`."""
    def decorator(f):
        @wraps(f)
        def decorated(*args, **kwargs):
            if not current_user.is_authenticated:
                return jsonify({'success': False, 'error': 'Authentication required'}), 401
            if not _perm_repo.check_permission(current_user, resource, action):
                return jsonify({'success': False, 'error': f'Permission denied: {resource}.{action}'}), 403
            return f(*args, **kwargs)
        return decorated
    return decorator
