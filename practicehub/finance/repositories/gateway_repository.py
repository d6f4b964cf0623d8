"""Payment gateway settings. config_data holds the Fernet-encrypted JSON config."""

from core.base_repository import BaseRepository


class GatewayRepository(BaseRepository):

    def list(self, tenant_id):
        return self.query_all(
            'SELECT * FROM payment_gateway_settings WHERE tenant_id = %s ORDER BY gateway_type',
            (tenant_id,))

    def get(self, tenant_id, gateway_id):
        return self.query_one(
            'SELECT * FROM payment_gateway_settings WHERE tenant_id = %s AND id = %s',
            (tenant_id, gateway_id))

    def get_by_type(self, tenant_id, gateway_type):
        return self.query_one(
            'SELECT * FROM payment_gateway_settings WHERE tenant_id = %s AND gateway_type = %s',
            (tenant_id, gateway_type))

    def create(self, tenant_id, gateway_type, is_enabled, config_data):
        """Insert a gateway. A second gateway of the same type raises ValueError."""
        return self.execute('''
            INSERT INTO payment_gateway_settings (tenant_id, gateway_type, is_enabled, config_data)
            VALUES (%s, %s, %s, %s)
            RETURNING *
        ''', (tenant_id, gateway_type, is_enabled, config_data), returning=True)

    def update(self, tenant_id, gateway_id, **fields):
        sql, params = self.build_update(
            'payment_gateway_settings', {'is_enabled', 'config_data'}, fields,
            'tenant_id = %s AND id = %s', (tenant_id, gateway_id))
        if not sql:
            return False
        return self.execute(sql, params) > 0

    def delete(self, tenant_id, gateway_id):
        return self.execute(
            'DELETE FROM payment_gateway_settings WHERE tenant_id = %s AND id = %s',
            (tenant_id, gateway_id)) > 0
