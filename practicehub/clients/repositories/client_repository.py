"""Client Repository: tenant-scoped CRUD for clients."""

from core.base_repository import BaseRepository

CLIENT_FIELDS = {'display_name', 'email', 'mobile', 'status', 'country_id'}


class ClientRepository(BaseRepository):

    _ALLOWED_SORT = {'display_name', 'created_at', 'updated_at', 'status', 'id'}

    def get(self, tenant_id, client_id):
        return self.query_one('''
            SELECT c.*, co.name AS country_name
            FROM clients c
            LEFT JOIN countries co ON co.id = c.country_id
            WHERE c.tenant_id = %s AND c.id = %s
        ''', (tenant_id, client_id))

    def list(self, tenant_id, status=None, search=None, country_id=None, sort_by=None):
        conditions, params = ['c.tenant_id = %s'], [tenant_id]
        if status:
            conditions.append('c.status = %s')
            params.append(status)
        if country_id:
            conditions.append('c.country_id = %s')
            params.append(country_id)
        if search:
            conditions.append('(c.display_name ILIKE %s OR c.email ILIKE %s OR c.mobile ILIKE %s)')
            params.extend([f'%{search}%'] * 3)
        col = sort_by if sort_by in self._ALLOWED_SORT else 'display_name'
        return self.query_all(f'''
            SELECT c.*, co.name AS country_name,
                   (SELECT COUNT(*) FROM entities e WHERE e.client_id = c.id) AS entity_count
            FROM clients c
            LEFT JOIN countries co ON co.id = c.country_id
            WHERE {' AND '.join(conditions)}
            ORDER BY c.{col}
        ''', params)

    def create(self, tenant_id, display_name, email=None, mobile=None, status='Active', country_id=None):
        """Insert a client. Returns the new row; duplicates raise ValueError."""
        return self.execute('''
            INSERT INTO clients (tenant_id, display_name, email, mobile, status, country_id)
            VALUES (%s, %s, %s, %s, %s, %s)
            RETURNING *
        ''', (tenant_id, display_name, email or None, mobile or None, status or 'Active', country_id),
            returning=True)

    def update(self, tenant_id, client_id, **fields):
        sql, params = self.build_update(
            'clients', CLIENT_FIELDS, fields, 'tenant_id = %s AND id = %s', (tenant_id, client_id))
        if not sql:
            return False
        return self.execute(sql, params) > 0

    def delete(self, tenant_id, client_id):
        return self.execute(
            'DELETE FROM clients WHERE tenant_id = %s AND id = %s', (tenant_id, client_id)) > 0

    def count_by_status(self, tenant_id):
        rows = self.query_all(
            'SELECT status, COUNT(*) AS count FROM clients WHERE tenant_id = %s GROUP BY status',
            (tenant_id,))
        return {r['status']: r['count'] for r in rows}
