"""PracticeHub auth models.

User model for Flask-Login authentication.
"""
from flask_login import UserMixin


class User(UserMixin):
    """User class for Flask-Login. Always bound to one tenant."""

    def __init__(self, user_data):
        self.id = user_data['id']
        self.tenant_id = user_data['tenant_id']
        self.email = user_data['email']
        self.display_name = user_data.get('display_name') or user_data['email']
        self.role_id = user_data.get('role_id')
        self.role_name = user_data.get('role_name')
        self.is_admin = bool(user_data.get('is_admin', False))
        self.is_super_admin = bool(user_data.get('is_super_admin', False))
        self.is_active_user = user_data.get('is_active', True)

    @property
    def is_active(self):
        return self.is_active_user

    def to_dict(self):
        return {
            'id': self.id,
            'tenant_id': self.tenant_id,
            'email': self.email,
            'display_name': self.display_name,
            'role_id': self.role_id,
            'role_name': self.role_name,
            'is_admin': self.is_admin,
            'is_super_admin': self.is_super_admin,
            'is_active': self.is_active,
        }
