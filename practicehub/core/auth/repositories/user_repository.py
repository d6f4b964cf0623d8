"""User Repository - data access for users and authentication."""
from typing import Optional, Dict, Any, List
from werkzeug.security import generate_password_hash, check_password_hash

from core.base_repository import BaseRepository

_USER_COLUMNS = '''
    u.id, u.tenant_id, u.email, u.display_name, u.password_hash, u.role_id,
    u.is_admin, u.is_super_admin, u.is_active, u.last_login, u.created_at,
    r.name AS role_name
'''


class UserRepository(BaseRepository):
    """Repository for user data access operations."""

    def get_by_id(self, user_id: int) -> Optional[Dict[str, Any]]:
        return self.query_one(f'''
            SELECT {_USER_COLUMNS}
            FROM users u
            LEFT JOIN roles r ON u.role_id = r.id
            WHERE u.id = %s
        ''', (user_id,))

    def get_by_email(self, email: str, tenant_id: int = None) -> Optional[Dict[str, Any]]:
        """Get a user by e-mail. Without tenant_id the first active match wins."""
        if tenant_id is not None:
            return self.query_one(f'''
                SELECT {_USER_COLUMNS}
                FROM users u
                LEFT JOIN roles r ON u.role_id = r.id
                WHERE lower(u.email) = lower(%s) AND u.tenant_id = %s
            ''', (email, tenant_id))
        return self.query_one(f'''
            SELECT {_USER_COLUMNS}
            FROM users u
            LEFT JOIN roles r ON u.role_id = r.id
            WHERE lower(u.email) = lower(%s)
            ORDER BY u.is_active DESC, u.id
            LIMIT 1
        ''', (email,))

    def list_for_tenant(self, tenant_id: int, active_only: bool = False) -> List[Dict[str, Any]]:
        where = 'WHERE u.tenant_id = %s'
        if active_only:
            where += ' AND u.is_active = TRUE'
        rows = self.query_all(f'''
            SELECT {_USER_COLUMNS}
            FROM users u
            LEFT JOIN roles r ON u.role_id = r.id
            {where}
            ORDER BY u.display_name
        ''', (tenant_id,))
        for row in rows:
            row.pop('password_hash', None)
        return rows

    def get_ids_by_role(self, tenant_id: int, role_name: str) -> List[int]:
        rows = self.query_all('''
            SELECT u.id FROM users u
            JOIN roles r ON r.id = u.role_id
            WHERE u.tenant_id = %s AND lower(r.name) = lower(%s) AND u.is_active = TRUE
        ''', (tenant_id, role_name))
        return [r['id'] for r in rows]

    def get_admin_ids(self, tenant_id: int) -> List[int]:
        rows = self.query_all(
            'SELECT id FROM users WHERE tenant_id = %s AND is_admin = TRUE AND is_active = TRUE',
            (tenant_id,))
        return [r['id'] for r in rows]

    def create(self, tenant_id: int, email: str, display_name: str, password: str = None,
               role_id: int = None, is_admin: bool = False) -> int:
        """Create a user. Duplicate e-mail within the tenant raises ValueError."""
        row = self.execute('''
            INSERT INTO users (tenant_id, email, display_name, password_hash, role_id, is_admin)
            VALUES (%s, %s, %s, %s, %s, %s)
            RETURNING id
        ''', (
            tenant_id, email.strip().lower(), display_name,
            generate_password_hash(password) if password else None,
            role_id, is_admin,
        ), returning=True)
        return row['id']

    def update(self, tenant_id: int, user_id: int, **fields) -> bool:
        sql, params = self.build_update(
            'users', {'display_name', 'role_id', 'is_admin', 'is_active'},
            fields, 'tenant_id = %s AND id = %s', (tenant_id, user_id))
        if not sql:
            return False
        return self.execute(sql, params) > 0

    def update_password(self, user_id: int, password: str) -> bool:
        password_hash = generate_password_hash(password)
        return self.execute('''
            UPDATE users SET password_hash = %s, updated_at = CURRENT_TIMESTAMP
            WHERE id = %s
        ''', (password_hash, user_id)) > 0

    def update_last_login(self, user_id: int) -> bool:
        return self.execute(
            'UPDATE users SET last_login = CURRENT_TIMESTAMP WHERE id = %s', (user_id,)
        ) > 0

    # --- Authentication ---

    def authenticate(self, email: str, password: str) -> Optional[Dict[str, Any]]:
        """Return the user row when the password matches an active account."""
        user = self.get_by_email(email)
        if not user or not user.get('is_active', False) or not user.get('password_hash'):
            return None
        if not check_password_hash(user['password_hash'], password):
            return None
        return user
