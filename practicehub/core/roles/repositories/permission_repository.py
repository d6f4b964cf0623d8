"""Permission repository.

Permissions are (resource, action) pairs, e.g. ('workflow-automation', 'create').
Roles grant them; user_permissions rows override the role for one user
(granted=FALSE is an explicit deny).
"""

import logging
import time

from core.base_repository import BaseRepository

logger = logging.getLogger('practicehub.core.roles.permission_repository')

RESOURCES = {
    'clients': ('read', 'create', 'update', 'delete'),
    'tasks': ('read', 'create', 'update', 'delete', 'approve'),
    'finance': ('read', 'create', 'update', 'delete'),
    'payment-gateways': ('read', 'create', 'update', 'delete'),
    'workflow-automation': ('read', 'create', 'update', 'delete'),
    'reports': ('read', 'export'),
    'setup': ('read', 'create', 'update', 'delete'),
}

_perm_cache = {}
_PERM_CACHE_TTL = 300  # seconds


def _cache_get(key):
    cached = _perm_cache.get(key)
    if cached and (time.time() - cached[1]) < _PERM_CACHE_TTL:
        return cached[0]
    return None


def _cache_set(key, value):
    _perm_cache[key] = (value, time.time())


def clear_permission_cache():
    _perm_cache.clear()


class PermissionRepository(BaseRepository):

    def get_catalog(self) -> list[dict]:
        return [{'resource': r, 'actions': list(a)} for r, a in RESOURCES.items()]

    def get_role_permissions(self, role_id: int) -> set:
        """Set of (resource, action) tuples granted to a role."""
        cache_key = f'role_{role_id}'
        cached = _cache_get(cache_key)
        if cached is not None:
            return cached

        rows = self.query_all(
            'SELECT resource, action FROM role_permissions WHERE role_id = %s', (role_id,))
        result = {(r['resource'], r['action']) for r in rows}
        _cache_set(cache_key, result)
        return result

    def get_user_overrides(self, user_id: int) -> dict:
        """{(resource, action): granted} for one user."""
        cache_key = f'user_{user_id}'
        cached = _cache_get(cache_key)
        if cached is not None:
            return cached

        rows = self.query_all(
            'SELECT resource, action, granted FROM user_permissions WHERE user_id = %s', (user_id,))
        result = {(r['resource'], r['action']): r['granted'] for r in rows}
        _cache_set(cache_key, result)
        return result

    def set_role_permissions(self, role_id: int, permissions: list[str]) -> int:
        """Replace a role's permissions with 'resource.action' strings. Unknown pairs are skipped."""
        def _work(cursor):
            cursor.execute('DELETE FROM role_permissions WHERE role_id = %s', (role_id,))
            count = 0
            for perm_str in permissions:
                resource, _, action = perm_str.partition('.')
                if action not in RESOURCES.get(resource, ()):
                    logger.warning(f'Skipping unknown permission {perm_str}')
                    continue
                cursor.execute(
                    'INSERT INTO role_permissions (role_id, resource, action) VALUES (%s, %s, %s)',
                    (role_id, resource, action))
                count += 1
            return count

        result = self.execute_many(_work)
        clear_permission_cache()
        return result

    def set_user_override(self, user_id: int, resource: str, action: str, granted) -> bool:
        """granted=None removes the override."""
        if granted is None:
            result = self.execute(
                'DELETE FROM user_permissions WHERE user_id = %s AND resource = %s AND action = %s',
                (user_id, resource, action)) > 0
        else:
            result = self.execute('''
                INSERT INTO user_permissions (user_id, resource, action, granted)
                VALUES (%s, %s, %s, %s)
                ON CONFLICT (user_id, resource, action) DO UPDATE SET granted = EXCLUDED.granted
            ''', (user_id, resource, action, bool(granted))) > 0
        clear_permission_cache()
        return result

    def check_permission(self, user, resource: str, action: str) -> bool:
        """Super admins and tenant admins pass; a user override wins over the role."""
        if getattr(user, 'is_super_admin', False) or getattr(user, 'is_admin', False):
            return True

        override = self.get_user_overrides(user.id).get((resource, action))
        if override is not None:
            return bool(override)

        role_id = getattr(user, 'role_id', None)
        if not role_id:
            return False
        return (resource, action) in self.get_role_permissions(role_id)
