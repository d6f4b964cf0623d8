"""Entity Repository: the legal entities (companies, trusts, individuals) a client owns."""

from core.base_repository import BaseRepository

ENTITY_FIELDS = {
    'name', 'country_id', 'state_id', 'entity_type_id', 'tax_jurisdiction_id',
    'business_tax_id', 'is_vat_registered', 'vat_id', 'address',
    'file_access_link', 'revenue_account_id',
}


class EntityRepository(BaseRepository):

    def get(self, tenant_id, entity_id):
        return self.query_one('''
            SELECT e.*, c.display_name AS client_name, et.name AS entity_type_name,
                   tj.name AS tax_jurisdiction_name, co.name AS country_name
            FROM entities e
            JOIN clients c ON c.id = e.client_id
            LEFT JOIN entity_types et ON et.id = e.entity_type_id
            LEFT JOIN tax_jurisdictions tj ON tj.id = e.tax_jurisdiction_id
            LEFT JOIN countries co ON co.id = e.country_id
            WHERE e.tenant_id = %s AND e.id = %s
        ''', (tenant_id, entity_id))

    def list(self, tenant_id, client_id=None):
        params = [tenant_id]
        where = 'e.tenant_id = %s'
        if client_id:
            where += ' AND e.client_id = %s'
            params.append(client_id)
        return self.query_all(f'''
            SELECT e.*, c.display_name AS client_name, et.name AS entity_type_name,
                   tj.name AS tax_jurisdiction_name
            FROM entities e
            JOIN clients c ON c.id = e.client_id
            LEFT JOIN entity_types et ON et.id = e.entity_type_id
            LEFT JOIN tax_jurisdictions tj ON tj.id = e.tax_jurisdiction_id
            WHERE {where}
            ORDER BY c.display_name, e.name
        ''', params)

    def create(self, tenant_id, client_id, data):
        """Insert an entity for `client_id`. Returns the new row."""
        columns = ['tenant_id', 'client_id'] + [k for k in sorted(ENTITY_FIELDS) if k in data]
        values = [tenant_id, client_id] + [data[k] for k in sorted(ENTITY_FIELDS) if k in data]
        placeholders = ', '.join(['%s'] * len(columns))
        return self.execute(
            f'INSERT INTO entities ({", ".join(columns)}) VALUES ({placeholders}) RETURNING *',
            values, returning=True)

    def update(self, tenant_id, entity_id, **fields):
        sql, params = self.build_update(
            'entities', ENTITY_FIELDS, fields, 'tenant_id = %s AND id = %s', (tenant_id, entity_id))
        if not sql:
            return False
        return self.execute(sql, params) > 0

    def delete(self, tenant_id, entity_id):
        return self.execute(
            'DELETE FROM entities WHERE tenant_id = %s AND id = %s', (tenant_id, entity_id)) > 0
