"""Repository for the tenants table."""

import re
import logging

from core.base_repository import BaseRepository

logger = logging.getLogger('practicehub.core.tenants.tenant_repo')


def slugify(name):
    slug = re.sub(r'[^a-z0-9]+', '-', (name or '').lower()).strip('-')
    return slug or 'tenant'


class TenantRepository(BaseRepository):

    def get_by_id(self, tenant_id):
        return self.query_one('SELECT * FROM tenants WHERE id = %s', (tenant_id,))

    def get_by_slug(self, slug):
        return self.query_one('SELECT * FROM tenants WHERE slug = %s', (slug,))

    def get_active_ids(self):
        rows = self.query_all('SELECT id FROM tenants WHERE is_active = TRUE ORDER BY id')
        return [r['id'] for r in rows]

    def update(self, tenant_id, **fields):
        sql, params = self.build_update(
            'tenants', {'name', 'is_active'}, fields, 'id = %s', (tenant_id,))
        if not sql:
            return False
        return self.execute(sql, params) > 0
