"""Setup lookups: countries, entity types, tax jurisdictions, service types, task categories."""

from core.base_repository import BaseRepository

# table -> columns a caller may set besides name
LOOKUP_TABLES = {
    'countries': ('code',),
    'entity_types': ('country_id',),
    'tax_jurisdictions': ('country_id', 'description'),
    'service_types': ('country_id', 'rate', 'currency', 'billing_basis'),
    'task_categories': (),
}


class SetupRepository(BaseRepository):

    def list(self, tenant_id, table):
        if table not in LOOKUP_TABLES:
            raise ValueError(f'Unknown lookup: {table}')
        return self.query_all(
            f'SELECT * FROM {table} WHERE tenant_id = %s ORDER BY name', (tenant_id,))

    def create(self, tenant_id, table, name, **fields):
        if table not in LOOKUP_TABLES:
            raise ValueError(f'Unknown lookup: {table}')
        if not (name or '').strip():
            raise ValueError('name is required')
        extra = [k for k in LOOKUP_TABLES[table] if k in fields]
        columns = ['tenant_id', 'name'] + extra
        values = [tenant_id, name.strip()] + [fields[k] for k in extra]
        return self.execute(
            f'INSERT INTO {table} ({", ".join(columns)}) VALUES ({", ".join(["%s"] * len(columns))}) RETURNING *',
            values, returning=True)

    def delete(self, tenant_id, table, row_id):
        if table not in LOOKUP_TABLES:
            raise ValueError(f'Unknown lookup: {table}')
        return self.execute(
            f'DELETE FROM {table} WHERE tenant_id = %s AND id = %s', (tenant_id, row_id)) > 0
