"""Per-tenant key/value settings.

Known keys and their defaults live in DEFAULT_SETTINGS; callers may still
pass their own default.
"""

import logging

from core.base_repository import BaseRepository

logger = logging.getLogger('practicehub.core.tenants.settings_repo')

DEFAULT_SETTINGS = {
    'recurring_task_lead_days': '14',
    'invoice_prefix': 'INV',
    'default_currency': 'USD',
    'invoice_due_days': '30',
}


class TenantSettingsRepository(BaseRepository):

    def get_setting(self, tenant_id, key, default=None):
        row = self.query_one(
            'SELECT setting_value FROM tenant_settings WHERE tenant_id = %s AND setting_key = %s',
            (tenant_id, key))
        if row and row['setting_value'] is not None:
            return row['setting_value']
        if default is not None:
            return default
        return DEFAULT_SETTINGS.get(key)

    def get_int_setting(self, tenant_id, key, default):
        """Integer setting; falls back to `default` when missing or not a number."""
        value = self.get_setting(tenant_id, key, default)
        try:
            return int(value)
        except (TypeError, ValueError):
            logger.warning(f'Setting {key} for tenant {tenant_id} is not an integer: {value!r}')
            return default

    def get_all(self, tenant_id):
        rows = self.query_all(
            'SELECT setting_key, setting_value FROM tenant_settings WHERE tenant_id = %s ORDER BY setting_key',
            (tenant_id,))
        settings = dict(DEFAULT_SETTINGS)
        settings.update({r['setting_key']: r['setting_value'] for r in rows})
        return settings

    def set_setting(self, tenant_id, key, value):
        return self.execute('''
            INSERT INTO tenant_settings (tenant_id, setting_key, setting_value)
            VALUES (%s, %s, %s)
            ON CONFLICT (tenant_id, setting_key)
            DO UPDATE SET setting_value = EXCLUDED.setting_value, updated_at = NOW()
        ''', (tenant_id, key, None if value is None else str(value))) > 0

    def set_many(self, tenant_id, values):
        def _work(cursor):
            for key, value in values.items():
                cursor.execute('''
                    INSERT INTO tenant_settings (tenant_id, setting_key, setting_value)
                    VALUES (%s, %s, %s)
                    ON CONFLICT (tenant_id, setting_key)
                    DO UPDATE SET setting_value = EXCLUDED.setting_value, updated_at = NOW()
                ''', (tenant_id, key, None if value is None else str(value)))
            return len(values)
        return self.execute_many(_work)
