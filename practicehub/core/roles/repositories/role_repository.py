"""Role repository.

Roles are tenant-scoped; each tenant starts with an 'Admin' role.
"""

import logging

from core.base_repository import BaseRepository

logger = logging.getLogger('practicehub.core.roles.role_repository')


class RoleRepository(BaseRepository):

    def get_all(self, tenant_id: int) -> list[dict]:
        return self.query_all(
            'SELECT * FROM roles WHERE tenant_id = %s ORDER BY name', (tenant_id,))

    def get(self, tenant_id: int, role_id: int) -> dict | None:
        return self.query_one(
            'SELECT * FROM roles WHERE tenant_id = %s AND id = %s', (tenant_id, role_id))

    def save(self, tenant_id: int, name: str, description: str = None) -> int:
        """Create a role. Returns role ID; duplicate name raises ValueError."""
        try:
            result = self.execute('''
                INSERT INTO roles (tenant_id, name, description)
                VALUES (%s, %s, %s)
                RETURNING id
            ''', (tenant_id, name, description), returning=True)
        except ValueError:
            raise ValueError(f"Role '{name}' already exists")
        return result['id']

    def update(self, tenant_id: int, role_id: int, **fields) -> bool:
        sql, params = self.build_update(
            'roles', {'name', 'description'}, fields,
            'tenant_id = %s AND id = %s', (tenant_id, role_id))
        if not sql:
            return False
        return self.execute(sql, params) > 0

    def delete(self, tenant_id: int, role_id: int) -> bool:
        return self.execute(
            'DELETE FROM roles WHERE tenant_id = %s AND id = %s', (tenant_id, role_id)
        ) > 0
