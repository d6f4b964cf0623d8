"""Auth Service - business logic for authentication and tenant sign-up.

Routes call these methods instead of touching repositories directly.
"""
from dataclasses import dataclass
from typing import Optional, Dict, Any

from werkzeug.security import generate_password_hash

from core.utils.logging_config import get_logger
from core.tenants.repositories.tenant_repository import slugify
from database import transaction, get_cursor, dict_from_row

from ..repositories.user_repository import UserRepository
from ..repositories.event_repository import EventRepository

logger = get_logger('practicehub.auth')

DEFAULT_TASK_STATUSES = (
    ('New', 1),
    ('In Progress', 2),
    ('Pending', 3),
    ('Completed', 4),
)

MIN_PASSWORD_LENGTH = 8


@dataclass
class AuthResult:
    """Result of an authentication attempt."""
    success: bool
    user_data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


class AuthService:
    """Service for authentication-related business logic."""

    def __init__(self):
        self.user_repo = UserRepository()
        self.event_repo = EventRepository()

    def authenticate(self, email: str, password: str) -> AuthResult:
        if not email or not password:
            return AuthResult(success=False, error='Email and password are required')

        user = self.user_repo.authenticate(email.strip(), password)
        if not user:
            return AuthResult(success=False, error='Invalid email or password')
        return AuthResult(success=True, user_data=user)

    def change_password(self, user_id: int, user_email: str,
                        current_password: str, new_password: str) -> AuthResult:
        if not current_password or not new_password:
            return AuthResult(success=False, error='Both current and new password required')
        if len(new_password) < MIN_PASSWORD_LENGTH:
            return AuthResult(success=False, error=f'New password must be at least {MIN_PASSWORD_LENGTH} characters')

        if not self.user_repo.authenticate(user_email, current_password):
            return AuthResult(success=False, error='Current password is incorrect')

        if self.user_repo.update_password(user_id, new_password):
            return AuthResult(success=True)
        return AuthResult(success=False, error='Failed to update password')

    def register_tenant(self, tenant_name: str, display_name: str,
                        email: str, password: str) -> AuthResult:
        """Create a tenant with its first admin user and default task statuses.

        Everything is written in one transaction.
        """
        tenant_name = (tenant_name or '').strip()
        email = (email or '').strip().lower()
        if not tenant_name or not email or not password:
            return AuthResult(success=False, error='Tenant name, email and password are required')
        if len(password) < MIN_PASSWORD_LENGTH:
            return AuthResult(success=False, error=f'Password must be at least {MIN_PASSWORD_LENGTH} characters')
        if self.user_repo.get_by_email(email):
            return AuthResult(success=False, error='An account with this email already exists')

        with transaction() as conn:
            cursor = get_cursor(conn)
            slug = slugify(tenant_name)
            cursor.execute('SELECT COUNT(*) AS cnt FROM tenants WHERE slug LIKE %s', (slug + '%',))
            taken = cursor.fetchone()['cnt']
            if taken:
                slug = f'{slug}-{taken + 1}'

            cursor.execute(
                'INSERT INTO tenants (name, slug) VALUES (%s, %s) RETURNING id',
                (tenant_name, slug))
            tenant_id = cursor.fetchone()['id']

            cursor.execute(
                "INSERT INTO roles (tenant_id, name, description) VALUES (%s, 'Admin', 'Full access') RETURNING id",
                (tenant_id,))
            role_id = cursor.fetchone()['id']

            cursor.execute('''
                INSERT INTO users (tenant_id, email, display_name, password_hash, role_id, is_admin)
                VALUES (%s, %s, %s, %s, %s, TRUE)
                RETURNING id, tenant_id, email, display_name, role_id, is_admin, is_super_admin, is_active
            ''', (tenant_id, email, display_name or email, generate_password_hash(password), role_id))
            user = dict_from_row(cursor.fetchone())

            for name, rank in DEFAULT_TASK_STATUSES:
                cursor.execute(
                    'INSERT INTO task_statuses (tenant_id, name, rank) VALUES (%s, %s, %s)',
                    (tenant_id, name, rank))

        user['role_name'] = 'Admin'
        logger.info(f'Registered tenant {tenant_id} ({slug}) with admin {email}')
        self.event_repo.log_event(
            'tenant_registered', f'Tenant {tenant_name} registered',
            tenant_id=tenant_id, user_id=user['id'], user_email=email,
            entity_type='tenant', entity_id=tenant_id)
        return AuthResult(success=True, user_data=user)
