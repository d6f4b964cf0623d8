"""Types shared by every service layer."""
from dataclasses import dataclass
from typing import Optional


@dataclass
class UserContext:
    """Lightweight user context passed from route handlers to services."""
    user_id: Optional[int]
    tenant_id: int
    email: Optional[str] = None
    is_super_admin: bool = False
    ip_address: Optional[str] = None

    @classmethod
    def from_user(cls, user, ip_address=None):
        return cls(
            user_id=user.id,
            tenant_id=user.tenant_id,
            email=user.email,
            is_super_admin=user.is_super_admin,
            ip_address=ip_address,
        )

    @classmethod
    def system(cls, tenant_id):
        """Context for scheduler jobs and workflow actions with no acting user."""
        return cls(user_id=None, tenant_id=tenant_id, email='system')
